"""
Tests for listing snapshot refresh and deletion.
"""
import unittest
from datetime import date
from decimal import Decimal

from warehouse_sim.exceptions import NotFoundError
from warehouse_sim.models import Listing, MarketZonePriceIndex, MarketZoneSeasonScenario
from warehouse_sim.services.listing_service import ListingService
from warehouse_sim.tests.fixtures import (
    DatabaseTestCase, create_company, create_warehouse, create_product, create_listing
)


class TestRefreshSnapshots(DatabaseTestCase):
    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.company = create_company(self.session)
        self.warehouse = create_warehouse(self.session, self.company, market_zone='EU')
        curve = [100] * 52
        curve[5] = 0
        self.session.add(MarketZoneSeasonScenario(
            scenario_id='SWIM', market_zone='EU', weeks_json=curve, is_active=True
        ))
        self.session.add(MarketZonePriceIndex(market_zone='EU', multiplier=Decimal('1.25')))
        self.session.flush()
        self.service = ListingService(self.session)

    def test_price_snapshot_uses_zone_multiplier(self):
        """Test price index against the zone-adjusted reference price."""
        product = create_product(self.session, 'A', suggested_sale_price=20)
        cheap = create_listing(self.session, self.warehouse, product, sale_price=22)
        pricey = create_listing(self.session, self.warehouse, product, sale_price=30)

        results = self.service.refresh_snapshots(self.warehouse.id, date(2026, 4, 1))

        self.assertEqual(results['refreshed'], 2)
        self.assertEqual(results['price_blocked'], 1)
        self.assertEqual(cheap.price_index, Decimal('0.8800'))
        self.assertEqual(cheap.price_multiplier, Decimal('1.10'))
        self.assertFalse(cheap.price_blocked)
        self.assertEqual(pricey.price_index, Decimal('1.2000'))
        self.assertTrue(pricey.price_blocked)

    def test_season_snapshot(self):
        """Test season score and block flag from the product's curve."""
        product = create_product(self.session, 'SW', season_scenario_id='SWIM')
        listing = create_listing(self.session, self.warehouse, product)

        # Feb 5 falls in week index 5
        results = self.service.refresh_snapshots(self.warehouse.id, date(2026, 2, 5))
        self.assertEqual(listing.season_score, 0)
        self.assertTrue(listing.season_blocked)
        self.assertEqual(results['season_blocked'], 1)

        self.service.refresh_snapshots(self.warehouse.id, date(2026, 3, 1))
        self.assertEqual(listing.season_score, 100)
        self.assertFalse(listing.season_blocked)

    def test_product_without_scenario(self):
        """Test that a product without a curve keeps full season score."""
        product = create_product(self.session, 'B')
        listing = create_listing(self.session, self.warehouse, product, season_score=40)

        results = self.service.refresh_snapshots(self.warehouse.id, date(2026, 2, 5))

        self.assertEqual(listing.season_score, 100)
        self.assertEqual(results['missing_scenario'], 1)

    def test_unknown_warehouse(self):
        """Test refreshing a missing warehouse."""
        with self.assertRaises(NotFoundError):
            self.service.refresh_snapshots(9999, date(2026, 2, 5))


class TestDeleteListings(DatabaseTestCase):
    def test_deletes_every_listing_of_product(self):
        """Test that listings of the product are removed and others stay."""
        company = create_company(self.session)
        warehouse = create_warehouse(self.session, company)
        product = create_product(self.session, 'A')
        other = create_product(self.session, 'B')
        create_listing(self.session, warehouse, product)
        create_listing(self.session, warehouse, product, sale_price=25)
        kept = create_listing(self.session, warehouse, other)

        service = ListingService(self.session)
        self.assertEqual(service.delete_listings_for_product(warehouse.id, product.id), 2)
        self.assertEqual(service.delete_listings_for_product(warehouse.id, product.id), 0)
        self.assertEqual([l.id for l in self.session.query(Listing).all()], [kept.id])
        self.assertEqual([l.id for l in service.get_active_listings(warehouse.id)], [kept.id])


if __name__ == '__main__':
    unittest.main()
