# warehouse_sim/services/order_service.py
from datetime import date
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import (
    DailySalesLog, InventoryItem, Listing, SalesOrder, SalesOrderLine, Warehouse
)
from warehouse_sim.core.calendar import active_season_key
from warehouse_sim.core.demand import DemandInputs, compute_demand, clamp_to_stock
from warehouse_sim.services.listing_service import ListingService
from warehouse_sim.config import config
from warehouse_sim.exceptions import InvariantViolationError, NotFoundError

logger = logging.getLogger(__name__)

class OrderService:
    """Service for daily demand evaluation and order generation."""

    def __init__(self, session: Session):
        """Initialize the order service.

        Args:
            session: Database session
        """
        self.session = session
        self.listing_service = ListingService(session)
        self.awareness_cap = config.simulation_config['awareness_cap']

    def get_order(self, warehouse_id: int, day_key: date) -> Optional[SalesOrder]:
        """Get the order of a warehouse for a day, if any."""
        return self.session.query(SalesOrder).filter(
            SalesOrder.warehouse_id == warehouse_id,
            SalesOrder.day_key == day_key
        ).first()

    def get_qty_on_hand(self, warehouse_id: int, product_id: int) -> int:
        item = self.session.query(InventoryItem).filter(
            InventoryItem.warehouse_id == warehouse_id,
            InventoryItem.product_id == product_id
        ).first()
        return item.qty_on_hand if item else 0

    def get_sales_log(self, listing_id: int, day_key: date) -> Optional[DailySalesLog]:
        return self.session.query(DailySalesLog).filter(
            DailySalesLog.listing_id == listing_id,
            DailySalesLog.day_key == day_key
        ).first()

    def _upsert_sales_log(
        self,
        warehouse: Warehouse,
        listing: Listing,
        day_key: date,
        sales_season: Optional[str],
        breakdown,
        qty_on_hand: int,
        qty_ordered: int
    ) -> DailySalesLog:
        log = self.get_sales_log(listing.id, day_key)
        if log is None:
            log = DailySalesLog(
                company_id=listing.company_id,
                warehouse_id=warehouse.id,
                listing_id=listing.id,
                product_id=listing.product_id,
                day_key=day_key,
                qty_shipped=0
            )
            self.session.add(log)

        log.market_zone = warehouse.market_zone
        log.sales_season = sales_season
        log.base_qty = breakdown.base_qty
        log.missing_base_qty = breakdown.missing_base_qty
        log.min_daily = listing.min_daily
        log.max_daily = listing.max_daily
        log.tier_used = listing.tier_used
        log.positive_boost_pct = listing.positive_boost_pct
        log.negative_boost_pct = listing.negative_boost_pct
        log.units_after_boost = breakdown.units_after_boost
        log.price_multiplier = breakdown.price_multiplier
        log.price_blocked = breakdown.price_blocked
        log.units_after_price = breakdown.units_after_price
        log.season_score = breakdown.season_score
        log.season_blocked = breakdown.season_blocked
        log.units_after_season = breakdown.units_after_season
        log.awareness = breakdown.awareness
        log.awareness_multiplier = breakdown.awareness_multiplier
        log.final_units = breakdown.final_units
        log.desired_qty = breakdown.desired_qty
        log.qty_on_hand = qty_on_hand
        log.qty_ordered = qty_ordered
        log.sale_price = listing.sale_price
        return log

    def generate_daily_order(self, company_id: int, warehouse_id: int, day_key: date) -> Dict:
        """Evaluate demand for every LISTED listing and create the day's order.

        Runs inside the caller's transaction. The order is created at most
        once per (warehouse, day); sales logs are upserted on every run.

        Args:
            company_id: Company ID
            warehouse_id: Warehouse ID
            day_key: Day key

        Returns:
            Dictionary with order generation results

        Raises:
            NotFoundError if the warehouse does not exist
            InvariantViolationError if an ordered quantity would be negative
        """
        warehouse = self.session.get(Warehouse, warehouse_id)
        if not warehouse or warehouse.company_id != company_id:
            raise NotFoundError(f"Warehouse {warehouse_id} not found for company {company_id}")

        existing_order = self.get_order(warehouse_id, day_key)
        existing_lines = {}
        if existing_order:
            existing_lines = {line.listing_id: line for line in existing_order.lines}

        sales_season = active_season_key(day_key, warehouse.hemisphere)
        listings = self.listing_service.get_active_listings(warehouse_id)

        results = {
            'warehouse_id': warehouse_id,
            'day_key': day_key,
            'listings_evaluated': 0,
            'order_created': False,
            'order_id': existing_order.id if existing_order else None,
            'lines_created': 0,
            'units_ordered': 0,
            'listings_deleted': 0,
            'missing_base_qty': 0
        }

        planned = []
        for listing in listings:
            breakdown = compute_demand(
                DemandInputs(
                    base_qty=listing.base_qty,
                    positive_boost_pct=listing.positive_boost_pct,
                    negative_boost_pct=listing.negative_boost_pct,
                    price_multiplier=listing.price_multiplier,
                    price_blocked=listing.price_blocked,
                    season_score=listing.season_score,
                    season_blocked=listing.season_blocked,
                    awareness=warehouse.awareness
                ),
                awareness_cap=self.awareness_cap
            )

            qty_on_hand = self.get_qty_on_hand(warehouse_id, listing.product_id)
            ordered = clamp_to_stock(breakdown.desired_qty, qty_on_hand)
            if ordered < 0:
                raise InvariantViolationError(
                    f"Ordered quantity must not be negative (listing={listing.id}, "
                    f"desired={breakdown.desired_qty}, on_hand={qty_on_hand})",
                    details={'listing_id': listing.id, 'desired_qty': breakdown.desired_qty,
                             'qty_on_hand': qty_on_hand}
                )

            if breakdown.missing_base_qty:
                results['missing_base_qty'] += 1
                logger.warning(f"Listing {listing.id} has no base demand snapshot; using 0")

            if existing_order:
                line = existing_lines.get(listing.id)
                logged_qty = line.qty_ordered if line else 0
            else:
                logged_qty = ordered

            self._upsert_sales_log(
                warehouse, listing, day_key, sales_season, breakdown, qty_on_hand, logged_qty
            )
            results['listings_evaluated'] += 1
            planned.append((listing, ordered, qty_on_hand))

            logger.debug(
                f"Listing {listing.id}: base={breakdown.base_qty} final={breakdown.final_units} "
                f"desired={breakdown.desired_qty} on_hand={qty_on_hand} ordered={ordered}"
            )

        if existing_order:
            logger.info(
                f"Order {existing_order.id} already exists for warehouse {warehouse_id} "
                f"on {day_key}; logs refreshed only"
            )
            self.session.flush()
            return results

        if any(ordered > 0 for _, ordered, _ in planned):
            order = SalesOrder(company_id=company_id, warehouse_id=warehouse_id, day_key=day_key)
            self.session.add(order)
            self.session.flush()

            sort_index = 1
            for listing, ordered, _ in planned:
                if ordered <= 0:
                    continue
                self.session.add(SalesOrderLine(
                    order_id=order.id,
                    listing_id=listing.id,
                    product_id=listing.product_id,
                    qty_ordered=ordered,
                    qty_fulfilled=0,
                    qty_shipped=0,
                    sort_index=sort_index,
                    sale_price=listing.sale_price
                ))
                sort_index += 1
                results['lines_created'] += 1
                results['units_ordered'] += ordered

            results['order_created'] = True
            results['order_id'] = order.id
            logger.info(
                f"Created order {order.id} for warehouse {warehouse_id} on {day_key}: "
                f"{results['lines_created']} lines, {results['units_ordered']} units"
            )

        deleted_products = set()
        for listing, ordered, qty_on_hand in planned:
            if qty_on_hand - ordered == 0 and listing.product_id not in deleted_products:
                results['listings_deleted'] += self.listing_service.delete_listings_for_product(
                    warehouse_id, listing.product_id
                )
                deleted_products.add(listing.product_id)

        self.session.flush()
        return results
