# warehouse_sim/batch/day_tick.py
from typing import Dict

from warehouse_sim.config import config
from warehouse_sim.db import session_scope
from warehouse_sim.services.order_service import OrderService
from warehouse_sim.services.fulfillment_service import FulfillmentService
from warehouse_sim.utils.date_utils import normalize_day_key
from warehouse_sim.logging_setup import get_logger

logger = get_logger('day_tick')

def run_warehouse_day_tick(company_id: int, warehouse_id: int, day_key) -> Dict:
    """Run order generation then fulfillment for one warehouse and day.

    Both steps share one bounded transaction; any failure rolls back the
    whole tick and propagates.

    Args:
        company_id: Company ID
        warehouse_id: Warehouse ID
        day_key: Day key (date, datetime or 'YYYY-MM-DD')

    Returns:
        Dictionary with order_created, lines_fulfilled, units_shipped and
        capacity
    """
    day = normalize_day_key(day_key)
    timeout = config.batch_config['tick_timeout_seconds']

    logger.info(f"Running day tick for warehouse {warehouse_id} (company {company_id}) on {day}")

    with session_scope(timeout_seconds=timeout) as session:
        order_results = OrderService(session).generate_daily_order(company_id, warehouse_id, day)
        fulfillment_results = FulfillmentService(session).fulfill_backlog(company_id, warehouse_id, day)

    results = {
        'order_created': order_results['order_created'],
        'lines_fulfilled': fulfillment_results['lines_fulfilled'],
        'units_shipped': fulfillment_results['units_shipped'],
        'capacity': fulfillment_results['capacity']
    }

    logger.info(f"Day tick for warehouse {warehouse_id} on {day} done: {results}")
    return results
