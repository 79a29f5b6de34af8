# warehouse_sim/services/listing_service.py
from datetime import date
from typing import Dict, List
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import (
    Listing, ListingStatus, MarketZonePriceIndex, Product, Warehouse
)
from warehouse_sim.core.pricing import evaluate_price
from warehouse_sim.services.season_service import SeasonScoreResolver
from warehouse_sim.exceptions import NotFoundError

logger = logging.getLogger(__name__)

class ListingService:
    """Service for listing lookups and demand snapshot maintenance."""

    def __init__(self, session: Session):
        """Initialize the listing service.

        Args:
            session: Database session
        """
        self.session = session
        self.season_resolver = SeasonScoreResolver(session)

    def get_active_listings(self, warehouse_id: int) -> List[Listing]:
        """Get LISTED listings of a warehouse in creation order."""
        return self.session.query(Listing).filter(
            Listing.warehouse_id == warehouse_id,
            Listing.status == ListingStatus.LISTED
        ).order_by(Listing.created_at.asc(), Listing.id.asc()).all()

    def delete_listings_for_product(self, warehouse_id: int, product_id: int) -> int:
        """Delete every listing of a product at a warehouse.

        Called when on-hand stock reaches zero; listings are removed, never
        paused.

        Returns:
            Number of listings deleted
        """
        listings = self.session.query(Listing).filter(
            Listing.warehouse_id == warehouse_id,
            Listing.product_id == product_id
        ).all()

        for listing in listings:
            self.session.delete(listing)

        if listings:
            self.session.flush()
            logger.info(
                f"Deleted {len(listings)} listing(s) for product {product_id} "
                f"at warehouse {warehouse_id}: stock exhausted"
            )

        return len(listings)

    def get_zone_multiplier(self, market_zone: str):
        row = self.session.query(MarketZonePriceIndex).filter(
            MarketZonePriceIndex.market_zone == market_zone
        ).first()
        return row.multiplier if row else 1

    def refresh_snapshots(self, warehouse_id: int, day_key: date) -> Dict:
        """Recompute season and price snapshots of the LISTED listings.

        Marketing boosts are left untouched; they are maintained by the
        campaign subsystem.

        Args:
            warehouse_id: Warehouse ID
            day_key: Day the snapshots apply to

        Returns:
            Dictionary with refresh counts
        """
        warehouse = self.session.get(Warehouse, warehouse_id)
        if not warehouse:
            raise NotFoundError(f"Warehouse {warehouse_id} not found")

        zone_multiplier = self.get_zone_multiplier(warehouse.market_zone)

        results = {
            'warehouse_id': warehouse_id,
            'refreshed': 0,
            'price_blocked': 0,
            'season_blocked': 0,
            'missing_scenario': 0
        }

        for listing in self.get_active_listings(warehouse_id):
            product = self.session.get(Product, listing.product_id)

            score, missing = self.season_resolver.get_season_score(
                warehouse.market_zone,
                product.season_scenario_id if product else None,
                day_key
            )
            listing.season_score = score
            listing.season_blocked = score == 0

            index, multiplier, blocked = evaluate_price(
                listing.sale_price,
                product.suggested_sale_price if product else 0,
                zone_multiplier
            )
            listing.price_index = index
            listing.price_multiplier = multiplier
            listing.price_blocked = blocked

            results['refreshed'] += 1
            if blocked:
                results['price_blocked'] += 1
            if listing.season_blocked:
                results['season_blocked'] += 1
            if missing:
                results['missing_scenario'] += 1

        self.session.flush()
        logger.debug(f"Refreshed listing snapshots for warehouse {warehouse_id}: {results}")
        return results
