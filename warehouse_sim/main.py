import argparse
import sys

from tabulate import tabulate

from warehouse_sim.config import config
from warehouse_sim.db import db
from warehouse_sim.logging_setup import logger, get_logger
from warehouse_sim.exceptions import BatchProcessError, SimulationError

def init_application(connection_string=None):
    """Initialize application components."""
    db.initialize(connection_string)

    log = logger.app_logger
    log.info("Warehouse Sales Simulation initialized")
    log.info(f"Using database: {config.get('DATABASE', 'engine')} at {config.get('DATABASE', 'host')}:{config.get('DATABASE', 'port')}")
    log.info(f"Database name: {config.get('DATABASE', 'database')}")

    return True

def setup_database(drop_existing=False):
    """Create the schema, optionally dropping existing tables first."""
    log = get_logger('setup_db')
    if drop_existing:
        log.info("Dropping existing tables")
        db.drop_all_tables()
    db.create_all_tables()
    log.info("Database tables created")
    print("Database tables created")

def run_tick(args):
    """Run one warehouse day tick and print its result."""
    from warehouse_sim.batch.day_tick import run_warehouse_day_tick

    results = run_warehouse_day_tick(args.company_id, args.warehouse_id, args.day)
    print(tabulate(sorted(results.items()), headers=['Field', 'Value']))
    return results

def run_settle(args):
    """Run the settlement job and print one row per warehouse."""
    from warehouse_sim.batch.settlement_job import run_settlement_job

    results = run_settlement_job(args.company_id, args.day, warehouse_id=args.warehouse_id)

    rows = []
    for warehouse_id, settlement in results['settlements'].items():
        if settlement is None:
            rows.append([warehouse_id, '-', '-', '-', 'no sales'])
            continue
        rows.append([
            warehouse_id,
            settlement['settlement_id'],
            f"{settlement['period_start']}..{settlement['period_end']}",
            f"{settlement['total_net']:.2f}",
            'already posted' if settlement['already_posted'] else 'posted'
        ])
    for warehouse_id, error in results['errors'].items():
        rows.append([warehouse_id, '-', '-', '-', f"error: {error}"])

    print(tabulate(rows, headers=['Warehouse', 'Settlement', 'Period', 'Net USD', 'Status']))
    if not results['success']:
        raise BatchProcessError(f"Settlement failed for {len(results['errors'])} warehouse(s)")
    return results

def run_advance(args):
    """Advance a company by one day and print the tick results."""
    from warehouse_sim.batch.advance_day import advance_company_day

    results = advance_company_day(args.company_id)

    rows = [
        [warehouse_id, tick['order_created'], tick['lines_fulfilled'], tick['units_shipped'], tick['capacity']]
        for warehouse_id, tick in results['ticks'].items()
    ]
    print(f"Day: {results['day_key']}")
    print(tabulate(rows, headers=['Warehouse', 'Order created', 'Lines fulfilled', 'Units shipped', 'Capacity']))
    for warehouse_id, error in results['errors'].items():
        print(f"Warehouse {warehouse_id} failed: {error}")
    if not results['success']:
        raise BatchProcessError(f"Day {results['day_key']} finished with errors")
    return results

def show_calendar(args):
    """Print the sales season and collection windows of a day."""
    from warehouse_sim.core.calendar import (
        current_sales_window, open_collection_windows, next_collection_window
    )

    rows = []
    for hemisphere in (args.hemisphere,) if args.hemisphere else ('NORTH', 'SOUTH'):
        sales = current_sales_window(args.day, hemisphere)
        open_windows = open_collection_windows(args.day, hemisphere)
        upcoming = next_collection_window(args.day, hemisphere)
        rows.append([
            hemisphere,
            f"{sales.season} ({sales.label})" if sales else '-',
            ', '.join(w.label for w in open_windows) or '-',
            f"{upcoming.label} from {upcoming.start}" if upcoming else '-'
        ])

    print(tabulate(rows, headers=['Hemisphere', 'Sales season', 'Open collections', 'Next collection']))
    return rows

def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Warehouse Sales Simulation')

    parser.add_argument('--db-url', type=str, help='Database URL (overrides settings.ini)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    setup_parser = subparsers.add_parser('setup-db', help='Set up the database schema')
    setup_parser.add_argument('--drop', action='store_true', help='Drop existing tables before setup')

    tick_parser = subparsers.add_parser('tick', help='Run the day tick for one warehouse')
    tick_parser.add_argument('--company-id', type=int, required=True)
    tick_parser.add_argument('--warehouse-id', type=int, required=True)
    tick_parser.add_argument('--day', type=str, required=True, help='Day key (YYYY-MM-DD)')

    settle_parser = subparsers.add_parser('settle', help='Run settlements for a payout day')
    settle_parser.add_argument('--company-id', type=int, required=True)
    settle_parser.add_argument('--day', type=str, required=True, help='Payout day key (YYYY-MM-DD)')
    settle_parser.add_argument('--warehouse-id', type=int, help='Settle only this warehouse')

    advance_parser = subparsers.add_parser('advance-day', help='Advance a company by one day')
    advance_parser.add_argument('--company-id', type=int, required=True)

    calendar_parser = subparsers.add_parser('calendar', help='Show season windows for a day')
    calendar_parser.add_argument('--day', type=str, required=True, help='Day key (YYYY-MM-DD)')
    calendar_parser.add_argument('--hemisphere', type=str, choices=['NORTH', 'SOUTH'])

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == 'calendar':
        show_calendar(args)
        return 0

    handlers = {
        'tick': run_tick,
        'settle': run_settle,
        'advance-day': run_advance
    }

    try:
        init_application(args.db_url)
        if args.command == 'setup-db':
            setup_database(args.drop)
        else:
            handlers[args.command](args)
    except SimulationError as e:
        logger.app_logger.error(f"{args.command} failed: {str(e)}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
