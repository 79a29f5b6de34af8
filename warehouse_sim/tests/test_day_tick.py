"""
Tests for the warehouse day tick (order generation and fulfillment).
"""
import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch, MagicMock

from warehouse_sim.batch.day_tick import run_warehouse_day_tick
from warehouse_sim.db import db, session_scope
from warehouse_sim.exceptions import InvariantViolationError, NotFoundError, TransactionTimeoutError
from warehouse_sim.models import (
    DailySalesLog, InventoryItem, InventoryMovement, Listing, MetricLevelConfig, MetricState,
    MetricType, MovementSource, MovementType, SalesOrder, SalesOrderLine
)
from warehouse_sim.services.order_service import OrderService
from warehouse_sim.tests.fixtures import (
    DatabaseTestCase, create_company, create_warehouse, create_product, create_listing,
    set_stock, set_capacity
)

DAY = date(2026, 1, 12)


class TestWarehouseDayTick(DatabaseTestCase):
    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        company = create_company(self.session)
        warehouse = create_warehouse(self.session, company, awareness=Decimal('0.1'))
        product = create_product(self.session, 'COAT-1')
        listing = create_listing(
            self.session, warehouse, product, sale_price=25, base_qty=100,
            positive_boost_pct=20, season_score=50
        )
        set_stock(self.session, warehouse, product, 500)
        set_capacity(self.session, 1, 1000)
        self.session.commit()

        self.company_id = company.id
        self.warehouse_id = warehouse.id
        self.product_id = product.id
        self.listing_id = listing.id

    def _stock(self):
        item = db.session().query(InventoryItem).filter(
            InventoryItem.warehouse_id == self.warehouse_id,
            InventoryItem.product_id == self.product_id
        ).first()
        return item.qty_on_hand

    def test_tick_orders_and_ships(self):
        """Test a full tick with ample stock and capacity."""
        result = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertTrue(result['order_created'])
        self.assertEqual(result['lines_fulfilled'], 1)
        self.assertEqual(result['units_shipped'], 66)
        self.assertEqual(result['capacity'], 1000)
        self.assertEqual(self._stock(), 434)

        session = db.session()
        line = session.query(SalesOrderLine).one()
        self.assertEqual(line.qty_ordered, 66)
        self.assertEqual(line.qty_fulfilled, 66)
        self.assertEqual(line.qty_shipped, 66)
        self.assertEqual(line.sort_index, 1)

        log = session.query(DailySalesLog).one()
        self.assertEqual(log.day_key, DAY)
        self.assertEqual(log.desired_qty, 66)
        self.assertEqual(log.qty_ordered, 66)
        self.assertEqual(log.qty_shipped, 66)
        self.assertEqual(log.qty_on_hand, 500)
        self.assertEqual(log.sales_season, 'WINTER')
        self.assertEqual(log.season_score, 50)

        movement = session.query(InventoryMovement).one()
        self.assertEqual(movement.movement_type, MovementType.OUT)
        self.assertEqual(movement.qty_change, 66)

    def test_tick_is_idempotent(self):
        """Test that re-running a day changes nothing."""
        run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)
        second = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertFalse(second['order_created'])
        self.assertEqual(second['lines_fulfilled'], 0)
        self.assertEqual(second['units_shipped'], 0)
        self.assertEqual(self._stock(), 434)

        session = db.session()
        self.assertEqual(session.query(SalesOrder).count(), 1)
        self.assertEqual(session.query(SalesOrderLine).count(), 1)
        self.assertEqual(session.query(DailySalesLog).count(), 1)

        log = session.query(DailySalesLog).one()
        self.assertEqual(log.qty_ordered, 66)
        self.assertEqual(log.qty_shipped, 66)

    def test_rerun_does_not_exceed_daily_capacity(self):
        """Test that re-running a capacity-limited day ships nothing more."""
        with session_scope() as session:
            session.query(MetricLevelConfig).one().max_allowed = 10

        first = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)
        second = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertEqual(first['units_shipped'], 10)
        self.assertEqual(second['units_shipped'], 0)
        self.assertEqual(self._stock(), 490)

        session = db.session()
        line = session.query(SalesOrderLine).one()
        self.assertEqual(line.qty_ordered, 66)
        self.assertEqual(line.qty_fulfilled, 10)

        shipped_today = sum(m.qty_change for m in session.query(InventoryMovement).filter(
            InventoryMovement.source_type == MovementSource.SALES_FULFILLMENT,
            InventoryMovement.day_key == DAY
        ))
        self.assertEqual(shipped_today, 10)

        sales_count = session.query(MetricState).filter(
            MetricState.warehouse_id == self.warehouse_id,
            MetricState.metric_type == MetricType.SALES_COUNT
        ).one()
        self.assertEqual(sales_count.current_count, 10)

    def test_accepts_string_day_key(self):
        """Test that ISO strings are normalized."""
        result = run_warehouse_day_tick(self.company_id, self.warehouse_id, '2026-01-12')
        self.assertTrue(result['order_created'])
        self.assertEqual(db.session().query(SalesOrder).one().day_key, DAY)

    def test_order_clamped_to_stock_deletes_listing(self):
        """Test that ordering the last units removes the listing."""
        with session_scope() as session:
            item = session.query(InventoryItem).one()
            item.qty_on_hand = 40

        result = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertTrue(result['order_created'])
        self.assertEqual(result['units_shipped'], 40)
        self.assertEqual(self._stock(), 0)

        session = db.session()
        self.assertEqual(session.query(SalesOrderLine).one().qty_ordered, 40)
        self.assertIsNone(session.get(Listing, self.listing_id))

        log = session.query(DailySalesLog).one()
        self.assertEqual(log.desired_qty, 66)
        self.assertEqual(log.qty_ordered, 40)

    def test_no_stock_logs_but_creates_no_order(self):
        """Test a listing without stock."""
        with session_scope() as session:
            item = session.query(InventoryItem).one()
            item.qty_on_hand = 0

        result = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertFalse(result['order_created'])
        self.assertEqual(result['units_shipped'], 0)

        session = db.session()
        self.assertEqual(session.query(SalesOrder).count(), 0)
        log = session.query(DailySalesLog).one()
        self.assertEqual(log.desired_qty, 66)
        self.assertEqual(log.qty_ordered, 0)
        self.assertIsNone(session.get(Listing, self.listing_id))

    def test_negative_stock_is_fatal_and_rolls_back(self):
        """Test that a negative on-hand quantity aborts the whole tick."""
        with session_scope() as session:
            item = session.query(InventoryItem).one()
            item.qty_on_hand = -3

        with self.assertRaises(InvariantViolationError):
            run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        session = db.session()
        self.assertEqual(session.query(SalesOrder).count(), 0)
        self.assertEqual(session.query(DailySalesLog).count(), 0)
        self.assertIsNotNone(session.get(Listing, self.listing_id))

    def test_zero_demand_listing_is_logged_only(self):
        """Test that a season-blocked listing gets a log row and no line."""
        with session_scope() as session:
            listing = session.get(Listing, self.listing_id)
            listing.season_score = 0
            listing.season_blocked = True

        result = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertFalse(result['order_created'])
        log = db.session().query(DailySalesLog).one()
        self.assertTrue(log.season_blocked)
        self.assertEqual(log.desired_qty, 0)
        self.assertIsNotNone(db.session().get(Listing, self.listing_id))

    def test_backlog_carries_over_to_next_day(self):
        """Test that unshipped units are served first on the next day."""
        with session_scope() as session:
            session.query(MetricLevelConfig).one().max_allowed = 50

        first = run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)
        self.assertEqual(first['units_shipped'], 50)

        second = run_warehouse_day_tick(self.company_id, self.warehouse_id, date(2026, 1, 13))
        self.assertTrue(second['order_created'])
        self.assertEqual(second['units_shipped'], 50)

        session = db.session()
        lines = session.query(SalesOrderLine).join(SalesOrder).order_by(SalesOrder.day_key).all()
        self.assertEqual([l.qty_fulfilled for l in lines], [66, 34])

        # Shipped units are credited to the day the demand came from
        logs = session.query(DailySalesLog).order_by(DailySalesLog.day_key).all()
        self.assertEqual([l.qty_shipped for l in logs], [66, 34])

    def test_unknown_warehouse(self):
        """Test that a warehouse of another company is rejected."""
        with self.assertRaises(NotFoundError):
            run_warehouse_day_tick(self.company_id + 1, self.warehouse_id, DAY)

    def test_tick_past_time_ceiling_rolls_back(self):
        """Test that a tick running past its ceiling is not committed."""
        clock = MagicMock()
        clock.monotonic.side_effect = [0.0, 500.0]

        with patch('warehouse_sim.db.time', clock):
            with self.assertRaises(TransactionTimeoutError):
                run_warehouse_day_tick(self.company_id, self.warehouse_id, DAY)

        self.assertEqual(db.session().query(SalesOrder).count(), 0)
        self.assertEqual(self._stock(), 500)


class TestOrderServiceRerun(DatabaseTestCase):
    def test_rerun_mirrors_existing_line(self):
        """Test that logs on a re-run mirror the existing order lines."""
        company = create_company(self.session)
        warehouse = create_warehouse(self.session, company)
        product_a = create_product(self.session, 'A')
        product_b = create_product(self.session, 'B')
        listing_a = create_listing(self.session, warehouse, product_a, base_qty=5)
        set_stock(self.session, warehouse, product_a, 100)
        set_stock(self.session, warehouse, product_b, 100)

        service = OrderService(self.session)
        first = service.generate_daily_order(company.id, warehouse.id, DAY)
        self.assertTrue(first['order_created'])

        # A listing created after the order was placed gets a log but no line
        listing_b = create_listing(self.session, warehouse, product_b, base_qty=7)
        listing_a.base_qty = 9
        second = service.generate_daily_order(company.id, warehouse.id, DAY)

        self.assertFalse(second['order_created'])
        self.assertEqual(second['listings_evaluated'], 2)

        log_a = service.get_sales_log(listing_a.id, DAY)
        log_b = service.get_sales_log(listing_b.id, DAY)
        self.assertEqual(log_a.desired_qty, 9)
        self.assertEqual(log_a.qty_ordered, 5)
        self.assertEqual(log_b.desired_qty, 7)
        self.assertEqual(log_b.qty_ordered, 0)
        self.assertEqual(self.session.query(SalesOrderLine).count(), 1)


if __name__ == '__main__':
    unittest.main()
