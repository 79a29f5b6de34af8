# warehouse_sim/batch/advance_day.py
from datetime import datetime
from typing import Dict

from warehouse_sim.config import config
from warehouse_sim.db import session_scope
from warehouse_sim.models import Company, GameClock, Warehouse
from warehouse_sim.services.listing_service import ListingService
from warehouse_sim.batch.day_tick import run_warehouse_day_tick
from warehouse_sim.batch.settlement_job import run_settlement_job
from warehouse_sim.utils.date_utils import add_days, is_payout_day, parse_day_key
from warehouse_sim.exceptions import NotFoundError
from warehouse_sim.logging_setup import get_logger, logger as log_manager

logger = get_logger('advance_day')

def get_or_create_clock(session, company_id: int) -> GameClock:
    """Get the company game clock, starting it at the configured day when missing."""
    clock = session.query(GameClock).filter(GameClock.company_id == company_id).first()
    if clock is None:
        start = parse_day_key(config.simulation_config['game_start_day'])
        clock = GameClock(
            company_id=company_id,
            current_day_key=start,
            started_at_day_key=start,
            version=0
        )
        session.add(clock)
        session.flush()
        logger.info(f"Started game clock for company {company_id} at {start}")
    return clock

def advance_clock(company_id: int) -> Dict:
    """Move the company game clock one day forward.

    Returns:
        Dictionary with previous_day_key, day_key and payout_days
    """
    with session_scope() as session:
        company = session.get(Company, company_id)
        if company is None:
            raise NotFoundError(f"Company {company_id} not found")

        clock = get_or_create_clock(session, company_id)
        previous = clock.current_day_key
        clock.current_day_key = add_days(previous, 1)
        clock.version = (clock.version or 0) + 1
        clock.last_advanced_at = datetime.now()

        payout_days = company.payout_days or config.settlement_config['payout_days']
        return {
            'previous_day_key': previous,
            'day_key': clock.current_day_key,
            'payout_days': payout_days
        }

def advance_company_day(company_id: int) -> Dict:
    """Advance a company by one in-game day.

    Moves the clock, refreshes listing snapshots, runs the day tick for
    every active warehouse and, on payout days, the settlement job. A
    warehouse whose tick fails is logged and skipped; its tick can be
    retried for the same day.

    Args:
        company_id: Company ID

    Returns:
        Dictionary with the new day and per-warehouse results
    """
    clock = advance_clock(company_id)
    day = clock['day_key']

    log_info = log_manager.batch_start_log('advance_day', {'company_id': company_id, 'day_key': str(day)})

    results = {
        'company_id': company_id,
        'day_key': day,
        'ticks': {},
        'errors': {},
        'settlement': None,
        'success': True
    }

    with session_scope() as session:
        warehouse_ids = [row[0] for row in session.query(Warehouse.id).filter(
            Warehouse.company_id == company_id,
            Warehouse.is_active == True
        ).order_by(Warehouse.id).all()]

    for warehouse_id in warehouse_ids:
        try:
            with session_scope() as session:
                ListingService(session).refresh_snapshots(warehouse_id, day)
            results['ticks'][warehouse_id] = run_warehouse_day_tick(company_id, warehouse_id, day)
        except Exception as e:
            logger.error(f"Day tick failed for warehouse {warehouse_id} on {day}: {str(e)}", exc_info=True)
            results['errors'][warehouse_id] = str(e)
            results['success'] = False

    if is_payout_day(day, clock['payout_days']):
        logger.info(f"{day} is a payout day for company {company_id}; running settlements")
        settlement = run_settlement_job(company_id, day)
        results['settlement'] = settlement
        if not settlement['success']:
            results['success'] = False

    log_manager.batch_end_log(log_info, success=results['success'], result_info={
        'ticks': len(results['ticks']),
        'errors': len(results['errors'])
    })
    return results
