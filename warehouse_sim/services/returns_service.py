# warehouse_sim/services/returns_service.py
from datetime import datetime
from typing import Dict
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import (
    InventoryItem, InventoryMovement, MetricState, MetricType, MovementSource,
    MovementType, Settlement
)
from warehouse_sim.config import config
from warehouse_sim.exceptions import NotFoundError

logger = logging.getLogger(__name__)

class ReturnsService:
    """Puts units returned through a settlement back into stock."""

    def __init__(self, session: Session):
        self.session = session

    def apply_returns_to_inventory(self, settlement_id: int) -> Dict:
        """Restock the returned units of a settlement.

        Each product is restocked at most once per settlement, keyed by the
        movement reference '<settlement_id>:<product_id>'. Average unit cost
        is not changed; missing inventory items are created at cost 0.

        Args:
            settlement_id: Settlement ID

        Returns:
            Dictionary with total returned units and per-product quantities
        """
        settlement = self.session.get(Settlement, settlement_id)
        if settlement is None:
            raise NotFoundError(f"Settlement {settlement_id} not found")

        warehouse_id = settlement.warehouse_id
        results = {
            'settlement_id': settlement_id,
            'total_returned_units': 0,
            'products': {}
        }

        for line in settlement.lines:
            if line.return_qty <= 0:
                continue

            source_ref = f"{settlement_id}:{line.product_id}"
            already = self.session.query(InventoryMovement).filter(
                InventoryMovement.warehouse_id == warehouse_id,
                InventoryMovement.source_type == MovementSource.RETURNS_RESTOCK,
                InventoryMovement.source_ref == source_ref
            ).first()
            if already:
                continue

            item = self.session.query(InventoryItem).filter(
                InventoryItem.warehouse_id == warehouse_id,
                InventoryItem.product_id == line.product_id
            ).first()
            if item is None:
                item = InventoryItem(
                    warehouse_id=warehouse_id,
                    product_id=line.product_id,
                    qty_on_hand=0,
                    avg_unit_cost=0
                )
                self.session.add(item)

            item.qty_on_hand += line.return_qty

            self.session.add(InventoryMovement(
                warehouse_id=warehouse_id,
                product_id=line.product_id,
                movement_type=MovementType.IN,
                source_type=MovementSource.RETURNS_RESTOCK,
                source_ref=source_ref,
                qty_change=line.return_qty,
                unit_cost=item.avg_unit_cost or 0,
                day_key=settlement.payout_day_key
            ))

            results['total_returned_units'] += line.return_qty
            results['products'][line.product_id] = line.return_qty

        if results['total_returned_units'] > 0:
            self._increment_stock_count(warehouse_id, results['total_returned_units'])
            logger.info(
                f"Restocked {results['total_returned_units']} returned units "
                f"for settlement {settlement_id} at warehouse {warehouse_id}"
            )

        self.session.flush()
        return results

    def _increment_stock_count(self, warehouse_id: int, units: int):
        state = self.session.query(MetricState).filter(
            MetricState.warehouse_id == warehouse_id,
            MetricState.metric_type == MetricType.STOCK_COUNT
        ).first()
        if state is None:
            state = MetricState(
                warehouse_id=warehouse_id,
                metric_type=MetricType.STOCK_COUNT,
                current_level=config.simulation_config['default_capacity_level'],
                current_count=0
            )
            self.session.add(state)

        state.current_count = (state.current_count or 0) + units
        state.last_evaluated_at = datetime.now()
