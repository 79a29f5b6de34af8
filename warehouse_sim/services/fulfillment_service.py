# warehouse_sim/services/fulfillment_service.py
from datetime import date, datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from warehouse_sim.models import (
    DailySalesLog, InventoryItem, InventoryMovement, MetricLevelConfig, MetricState,
    MetricType, MovementSource, MovementType, SalesOrder, SalesOrderLine, Warehouse
)
from warehouse_sim.services.listing_service import ListingService
from warehouse_sim.config import config

logger = logging.getLogger(__name__)

class FulfillmentService:
    """Service for capacity-constrained backlog fulfillment and warehouse metrics."""

    def __init__(self, session: Session):
        """Initialize the fulfillment service.

        Args:
            session: Database session
        """
        self.session = session
        self.listing_service = ListingService(session)

    def get_metric_state(self, warehouse_id: int, metric_type: MetricType) -> Optional[MetricState]:
        return self.session.query(MetricState).filter(
            MetricState.warehouse_id == warehouse_id,
            MetricState.metric_type == metric_type
        ).first()

    def get_sales_level(self, warehouse_id: int) -> int:
        """Current SALES_COUNT level of a warehouse (configured default when unset)."""
        state = self.get_metric_state(warehouse_id, MetricType.SALES_COUNT)
        if state is None:
            return config.simulation_config['default_capacity_level']
        return state.current_level

    def get_daily_capacity(self, warehouse_id: int) -> int:
        """Maximum units the warehouse may ship in one day.

        Returns 0 when the level has no configuration row.
        """
        level = self.get_sales_level(warehouse_id)
        level_config = self.session.query(MetricLevelConfig).filter(
            MetricLevelConfig.metric_type == MetricType.SALES_COUNT,
            MetricLevelConfig.level == level
        ).first()

        if level_config is None:
            logger.warning(f"No SALES_COUNT capacity configured for level {level}; warehouse {warehouse_id} ships nothing")
            return 0

        return max(0, level_config.max_allowed)

    def get_backlog(self, warehouse_id: int) -> List[SalesOrderLine]:
        """Open order lines of a warehouse, oldest day first.

        Returns:
            Lines with fulfilled < ordered, ordered by order day, sort index, id
        """
        return self.session.query(SalesOrderLine).join(
            SalesOrder, SalesOrderLine.order_id == SalesOrder.id
        ).filter(
            SalesOrder.warehouse_id == warehouse_id,
            SalesOrderLine.qty_fulfilled < SalesOrderLine.qty_ordered
        ).order_by(
            SalesOrder.day_key.asc(),
            SalesOrderLine.sort_index.asc(),
            SalesOrderLine.id.asc()
        ).all()

    def get_backlog_units(self, warehouse_id: int) -> int:
        total = self.session.query(
            func.coalesce(func.sum(SalesOrderLine.qty_ordered - SalesOrderLine.qty_fulfilled), 0)
        ).join(
            SalesOrder, SalesOrderLine.order_id == SalesOrder.id
        ).filter(
            SalesOrder.warehouse_id == warehouse_id,
            SalesOrderLine.qty_fulfilled < SalesOrderLine.qty_ordered
        ).scalar()
        return int(total or 0)

    def _get_inventory_item(self, warehouse_id: int, product_id: int) -> Optional[InventoryItem]:
        return self.session.query(InventoryItem).filter(
            InventoryItem.warehouse_id == warehouse_id,
            InventoryItem.product_id == product_id
        ).first()

    def get_units_shipped_on(self, warehouse_id: int, day_key: date) -> int:
        """Units already shipped by the warehouse on a given day."""
        total = self.session.query(
            func.coalesce(func.sum(InventoryMovement.qty_change), 0)
        ).filter(
            InventoryMovement.warehouse_id == warehouse_id,
            InventoryMovement.source_type == MovementSource.SALES_FULFILLMENT,
            InventoryMovement.day_key == day_key
        ).scalar()
        return int(total or 0)

    def _record_shipped_on_log(self, line: SalesOrderLine, order: SalesOrder, shipped: int):
        if line.listing_id is None:
            return

        log = self.session.query(DailySalesLog).filter(
            DailySalesLog.listing_id == line.listing_id,
            DailySalesLog.day_key == order.day_key
        ).first()

        if log is None:
            warehouse = self.session.get(Warehouse, order.warehouse_id)
            log = DailySalesLog(
                company_id=order.company_id,
                warehouse_id=order.warehouse_id,
                listing_id=line.listing_id,
                product_id=line.product_id,
                market_zone=warehouse.market_zone if warehouse else None,
                day_key=order.day_key,
                qty_ordered=0,
                qty_shipped=0,
                sale_price=line.sale_price
            )
            self.session.add(log)

        log.qty_shipped = (log.qty_shipped or 0) + shipped

    def fulfill_backlog(self, company_id: int, warehouse_id: int, day_key: date) -> Dict:
        """Ship open order lines in FIFO order up to the daily capacity.

        Runs inside the caller's transaction. Units already shipped on
        day_key count against the capacity, so a rerun of the same day
        ships only what the first run left unused.

        Args:
            company_id: Company ID
            warehouse_id: Warehouse ID
            day_key: Day the shipments happen on

        Returns:
            Dictionary with fulfillment results
        """
        capacity = self.get_daily_capacity(warehouse_id)
        shipped_earlier = self.get_units_shipped_on(warehouse_id, day_key)
        remaining_capacity = max(0, capacity - shipped_earlier)

        results = {
            'warehouse_id': warehouse_id,
            'day_key': day_key,
            'capacity': capacity,
            'shipped_earlier': shipped_earlier,
            'lines_fulfilled': 0,
            'units_shipped': 0,
            'listings_deleted': 0,
            'backlog_units': 0
        }

        for line in self.get_backlog(warehouse_id):
            if remaining_capacity <= 0:
                break

            item = self._get_inventory_item(warehouse_id, line.product_id)
            available = item.qty_on_hand if item else 0
            ship = min(line.qty_remaining, remaining_capacity, available)
            if ship <= 0:
                continue

            order = line.order
            item.qty_on_hand -= ship

            self.session.add(InventoryMovement(
                warehouse_id=warehouse_id,
                product_id=line.product_id,
                movement_type=MovementType.OUT,
                source_type=MovementSource.SALES_FULFILLMENT,
                source_ref=str(order.id),
                qty_change=ship,
                unit_cost=item.avg_unit_cost,
                day_key=day_key
            ))

            line.qty_fulfilled += ship
            line.qty_shipped += ship
            remaining_capacity -= ship

            self._record_shipped_on_log(line, order, ship)

            results['lines_fulfilled'] += 1
            results['units_shipped'] += ship

            logger.debug(
                f"Shipped {ship} of line {line.id} (order {order.id}, day {order.day_key}); "
                f"capacity left {remaining_capacity}"
            )

            if item.qty_on_hand == 0:
                results['listings_deleted'] += self.listing_service.delete_listings_for_product(
                    warehouse_id, line.product_id
                )

        self.session.flush()
        self.update_metrics(warehouse_id, shipped_earlier + results['units_shipped'])
        results['backlog_units'] = self.get_backlog_units(warehouse_id)

        logger.info(
            f"Warehouse {warehouse_id} on {day_key}: shipped {results['units_shipped']} units "
            f"over {results['lines_fulfilled']} lines (capacity {capacity}, "
            f"backlog {results['backlog_units']})"
        )
        return results

    def get_stock_count(self, warehouse_id: int) -> int:
        """Live on-hand total over non-archived inventory items."""
        total = self.session.query(
            func.coalesce(func.sum(InventoryItem.qty_on_hand), 0)
        ).filter(
            InventoryItem.warehouse_id == warehouse_id,
            InventoryItem.is_archived == False
        ).scalar()
        return int(total or 0)

    def _upsert_metric(self, warehouse_id: int, metric_type: MetricType, count: int) -> MetricState:
        state = self.get_metric_state(warehouse_id, metric_type)
        if state is None:
            state = MetricState(
                warehouse_id=warehouse_id,
                metric_type=metric_type,
                current_level=config.simulation_config['default_capacity_level']
            )
            self.session.add(state)

        state.current_count = count
        state.last_evaluated_at = datetime.now()
        return state

    def update_metrics(self, warehouse_id: int, units_shipped_today: int) -> Dict:
        """Refresh SALES_COUNT and STOCK_COUNT for a warehouse.

        SALES_COUNT holds today's shipped units (overwritten, not added);
        STOCK_COUNT holds the current on-hand total.
        """
        stock_count = self.get_stock_count(warehouse_id)
        self._upsert_metric(warehouse_id, MetricType.SALES_COUNT, units_shipped_today)
        self._upsert_metric(warehouse_id, MetricType.STOCK_COUNT, stock_count)
        self.session.flush()

        return {
            'sales_count': units_shipped_today,
            'stock_count': stock_count
        }
