# warehouse_sim/batch/settlement_job.py
from datetime import datetime
from typing import Dict, Optional

from warehouse_sim.config import config
from warehouse_sim.db import session_scope
from warehouse_sim.models import Warehouse
from warehouse_sim.services.settlement_service import SettlementService
from warehouse_sim.services.notification_service import NotificationService
from warehouse_sim.utils.date_utils import normalize_day_key
from warehouse_sim.logging_setup import get_logger, logger as log_manager

logger = get_logger('settlement')

def send_settlement_notifications(settlement_id: int, returned_units: Optional[Dict] = None) -> Dict:
    """Send the player messages of a posted settlement.

    Best effort: runs after the financial transaction committed, and any
    failure is logged and reported in the result instead of raised.
    """
    try:
        with session_scope() as session:
            notifications = NotificationService(session)
            results = notifications.notify_settlement_completed(settlement_id)
            if returned_units and notifications.notify_returns_restocked(settlement_id, returned_units):
                results['messages_created'] += 1
        return {'success': True, **results}
    except Exception as e:
        logger.error(f"Notifications for settlement {settlement_id} failed: {str(e)}", exc_info=True)
        return {'success': False, 'error': str(e), 'messages_created': 0}

def settle_warehouse(company_id: int, warehouse_id: int, payout_day_key) -> Optional[Dict]:
    """Build and post one warehouse's settlement, then notify the player.

    Args:
        company_id: Company ID
        warehouse_id: Warehouse ID
        payout_day_key: Payout day key

    Returns:
        Settlement result, or None when the period had no fulfilled sales
    """
    day = normalize_day_key(payout_day_key)
    timeout = config.batch_config['settlement_timeout_seconds']

    with session_scope(timeout_seconds=timeout) as session:
        result = SettlementService(session).build_and_post_settlement(company_id, warehouse_id, day)

    if result is None:
        return None

    # Messages carry dedupe keys, so a rerun only fills in what is missing
    result['notifications'] = send_settlement_notifications(
        result['settlement_id'], result.get('returned_units')
    )

    return result

def run_settlement_job(company_id: int, payout_day_key, warehouse_id: Optional[int] = None) -> Dict:
    """Run the settlement for every active warehouse of a company.

    A failing warehouse is logged and does not stop the others.

    Args:
        company_id: Company ID
        payout_day_key: Payout day key
        warehouse_id: Optional warehouse ID to settle only one warehouse

    Returns:
        Dictionary with job results
    """
    day = normalize_day_key(payout_day_key)
    log_info = log_manager.batch_start_log('settlement_job', {'company_id': company_id, 'payout_day': str(day)})

    results = {
        'company_id': company_id,
        'payout_day_key': day,
        'start_time': datetime.now(),
        'settlements': {},
        'errors': {},
        'success': True
    }

    with session_scope() as session:
        query = session.query(Warehouse.id).filter(
            Warehouse.company_id == company_id,
            Warehouse.is_active == True
        )
        if warehouse_id is not None:
            query = query.filter(Warehouse.id == warehouse_id)
        warehouse_ids = [row[0] for row in query.order_by(Warehouse.id).all()]

    for wid in warehouse_ids:
        try:
            results['settlements'][wid] = settle_warehouse(company_id, wid, day)
        except Exception as e:
            logger.error(f"Settlement failed for warehouse {wid}: {str(e)}", exc_info=True)
            results['errors'][wid] = str(e)
            results['success'] = False

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - results['start_time']

    log_manager.batch_end_log(log_info, success=results['success'], result_info={
        'settled': len([r for r in results['settlements'].values() if r]),
        'errors': len(results['errors'])
    })
    return results
