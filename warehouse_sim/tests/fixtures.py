"""
Shared fixtures for engine tests running against in-memory SQLite.
"""
import unittest
from decimal import Decimal

from warehouse_sim.db import db
from warehouse_sim.models import (
    Company, Hemisphere, InventoryItem, Listing, ListingStatus, MetricLevelConfig,
    MetricState, MetricType, PlatformFeeTier, Product, SalesOrder, SalesOrderLine,
    ShippingProfile, ShippingProfileFee, Wallet, Warehouse
)


class DatabaseTestCase(unittest.TestCase):
    """Test case with a fresh in-memory database per test."""

    def setUp(self):
        """Set up test fixtures."""
        db.initialize('sqlite://')
        db.create_all_tables()
        self.session = db.session()

    def tearDown(self):
        """Tear down test fixtures."""
        db.session.remove()
        db.drop_all_tables()


def create_company(session, name='Test Company', payout_day_1=5, payout_day_2=20, balance=0):
    company = Company(name=name, payout_day_1=payout_day_1, payout_day_2=payout_day_2)
    session.add(company)
    session.flush()
    session.add(Wallet(company_id=company.id, balance_usd=Decimal(str(balance))))
    session.flush()
    return company


def create_warehouse(session, company, name='Main Warehouse', market_zone='EU',
                     hemisphere=Hemisphere.NORTH, awareness=0):
    warehouse = Warehouse(
        company_id=company.id,
        name=name,
        market_zone=market_zone,
        hemisphere=hemisphere,
        awareness=Decimal(str(awareness))
    )
    session.add(warehouse)
    session.flush()
    return warehouse


def create_product(session, code, name=None, category='APPAREL',
                   shipping_profile=ShippingProfile.MEDIUM, suggested_sale_price=20,
                   season_scenario_id=None):
    product = Product(
        code=code,
        name=name or f"Product {code}",
        category=category,
        shipping_profile=shipping_profile,
        suggested_sale_price=Decimal(str(suggested_sale_price)),
        season_scenario_id=season_scenario_id
    )
    session.add(product)
    session.flush()
    return product


def create_listing(session, warehouse, product, sale_price=20, base_qty=10,
                   positive_boost_pct=0, negative_boost_pct=0, price_multiplier=1,
                   price_blocked=False, season_score=100, season_blocked=False):
    listing = Listing(
        company_id=warehouse.company_id,
        warehouse_id=warehouse.id,
        product_id=product.id,
        status=ListingStatus.LISTED,
        sale_price=Decimal(str(sale_price)),
        base_qty=base_qty,
        positive_boost_pct=Decimal(str(positive_boost_pct)),
        negative_boost_pct=Decimal(str(negative_boost_pct)),
        price_multiplier=Decimal(str(price_multiplier)),
        price_blocked=price_blocked,
        season_score=season_score,
        season_blocked=season_blocked
    )
    session.add(listing)
    session.flush()
    return listing


def set_stock(session, warehouse, product, qty, avg_unit_cost=5):
    item = session.query(InventoryItem).filter(
        InventoryItem.warehouse_id == warehouse.id,
        InventoryItem.product_id == product.id
    ).first()
    if item is None:
        item = InventoryItem(warehouse_id=warehouse.id, product_id=product.id,
                             avg_unit_cost=Decimal(str(avg_unit_cost)))
        session.add(item)
    item.qty_on_hand = qty
    session.flush()
    return item


def set_capacity(session, level, max_allowed):
    config_row = MetricLevelConfig(metric_type=MetricType.SALES_COUNT, level=level, max_allowed=max_allowed)
    session.add(config_row)
    session.flush()
    return config_row


def set_sales_level(session, warehouse, level):
    state = MetricState(warehouse_id=warehouse.id, metric_type=MetricType.SALES_COUNT,
                        current_level=level, current_count=0)
    session.add(state)
    session.flush()
    return state


def seed_fee_tables(session):
    """Seed the platform fee tiers and shipping fees used by the game."""
    tiers = [
        (1, 1, '0.15', '1.2', '0.03', '0.05'),
        (2, 2, '0.13', '1.1', '0.03', '0.05'),
        (3, 3, '0.11', '1.0', '0.025', '0.045'),
        (4, 4, '0.095', '0.92', '0.02', '0.04'),
        (5, 99, '0.08', '0.85', '0.02', '0.035'),
    ]
    for level_min, level_max, commission, multiplier, rate_min, rate_max in tiers:
        session.add(PlatformFeeTier(
            level_min=level_min, level_max=level_max,
            commission_rate=Decimal(commission), logistics_multiplier=Decimal(multiplier),
            return_rate_min=Decimal(rate_min), return_rate_max=Decimal(rate_max)
        ))

    fees = {
        ShippingProfile.LIGHT: '0.80',
        ShippingProfile.MEDIUM: '1.20',
        ShippingProfile.HEAVY: '2.50',
        ShippingProfile.BULKY: '3.00',
    }
    for profile, fee in fees.items():
        session.add(ShippingProfileFee(shipping_profile=profile, base_unit_fee=Decimal(fee)))
    session.flush()


def create_order(session, warehouse, day_key, lines):
    """Create an order with lines given as (product, listing_id, ordered, fulfilled, price)."""
    order = SalesOrder(company_id=warehouse.company_id, warehouse_id=warehouse.id, day_key=day_key)
    session.add(order)
    session.flush()

    for index, (product, listing_id, ordered, fulfilled, price) in enumerate(lines, start=1):
        session.add(SalesOrderLine(
            order_id=order.id,
            listing_id=listing_id,
            product_id=product.id,
            qty_ordered=ordered,
            qty_fulfilled=fulfilled,
            qty_shipped=fulfilled,
            sort_index=index,
            sale_price=Decimal(str(price))
        ))
    session.flush()
    return order
