# warehouse_sim/models.py
from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime, Boolean, ForeignKey, Text,
    Enum, Index, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class Hemisphere(enum.Enum):
    NORTH = 'NORTH'
    SOUTH = 'SOUTH'

    @classmethod
    def from_string(cls, value: str) -> 'Hemisphere':
        """Create a Hemisphere from a string value ('NORTH' or 'SOUTH').

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value.strip().upper())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid hemisphere: {value}. Valid values are: NORTH, SOUTH")

class ListingStatus(enum.Enum):
    LISTED = 'LISTED'
    PAUSED = 'PAUSED'

class MetricType(enum.Enum):
    STOCK_COUNT = 'STOCK_COUNT'
    SALES_COUNT = 'SALES_COUNT'

class ShippingProfile(enum.Enum):
    LIGHT = 'LIGHT'
    MEDIUM = 'MEDIUM'
    HEAVY = 'HEAVY'
    BULKY = 'BULKY'

class MovementType(enum.Enum):
    IN = 'IN'
    OUT = 'OUT'

class MovementSource(enum.Enum):
    SALES_FULFILLMENT = 'SALES_FULFILLMENT'  # Step B shipments
    RETURNS_RESTOCK = 'RETURNS_RESTOCK'      # Units returned through a settlement

class FinanceDirection(enum.Enum):
    IN = 'IN'
    OUT = 'OUT'

class FinanceCategory(enum.Enum):
    SALES_REVENUE = 'SALES_REVENUE'
    PLATFORM_COMMISSION = 'PLATFORM_COMMISSION'
    LOGISTICS = 'LOGISTICS'
    RETURNS = 'RETURNS'
    OTHER = 'OTHER'

class FinanceScope(enum.Enum):
    COMPANY = 'COMPANY'
    WAREHOUSE = 'WAREHOUSE'

class MessageLevel(enum.Enum):
    INFO = 'INFO'
    WARNING = 'WARNING'

class Company(Base):
    __tablename__ = 'company'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    # Finance schedule
    payout_day_1 = Column(Integer, default=5)
    payout_day_2 = Column(Integer, default=20)

    warehouses = relationship("Warehouse", back_populates="company")
    wallet = relationship("Wallet", back_populates="company", uselist=False)

    @property
    def payout_days(self):
        """Configured payout days of month, ignoring unset slots."""
        return sorted({d for d in (self.payout_day_1, self.payout_day_2) if d})

class Wallet(Base):
    __tablename__ = 'wallet'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False, unique=True)
    balance_usd = Column(Numeric(16, 4), nullable=False, default=0)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="wallet")

class GameClock(Base):
    __tablename__ = 'game_clock'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False, unique=True)
    current_day_key = Column(Date, nullable=False)
    started_at_day_key = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    last_advanced_at = Column(DateTime)

class Warehouse(Base):
    __tablename__ = 'warehouse'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    name = Column(String(100), nullable=False)
    market_zone = Column(String(40), nullable=False)
    hemisphere = Column(Enum(Hemisphere), nullable=False, default=Hemisphere.NORTH)

    # Cumulative demand multiplier grown by marketing campaigns
    awareness = Column(Numeric(8, 4), nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    company = relationship("Company", back_populates="warehouses")
    listings = relationship("Listing", back_populates="warehouse")
    inventory_items = relationship("InventoryItem", back_populates="warehouse")

class Product(Base):
    __tablename__ = 'product'

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, default='GENERAL')
    shipping_profile = Column(Enum(ShippingProfile))
    suggested_sale_price = Column(Numeric(14, 4), default=0)
    season_scenario_id = Column(String(50))

class Listing(Base):
    """A product offered for sale at one warehouse.

    Demand inputs are snapshots maintained by collaborators (marketing,
    pricing, seasonality) and only read by the day tick.
    """
    __tablename__ = 'listing'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    status = Column(Enum(ListingStatus), nullable=False, default=ListingStatus.LISTED)
    sale_price = Column(Numeric(14, 4), nullable=False)

    # Base demand snapshot
    base_qty = Column(Integer)
    min_daily = Column(Integer)
    max_daily = Column(Integer)
    tier_used = Column(Integer)

    # Marketing boosts (percent)
    positive_boost_pct = Column(Numeric(8, 2), nullable=False, default=0)
    negative_boost_pct = Column(Numeric(8, 2), nullable=False, default=0)

    # Price positioning
    price_index = Column(Numeric(10, 4))
    price_multiplier = Column(Numeric(8, 4), nullable=False, default=1)
    price_blocked = Column(Boolean, nullable=False, default=False)

    # Seasonality
    season_score = Column(Integer, nullable=False, default=100)
    season_blocked = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=func.now())

    warehouse = relationship("Warehouse", back_populates="listings")
    product = relationship("Product")

    __table_args__ = (
        Index('idx_listing_warehouse_status', 'warehouse_id', 'status'),
    )

class InventoryItem(Base):
    __tablename__ = 'inventory_item'

    id = Column(Integer, primary_key=True)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    qty_on_hand = Column(Integer, nullable=False, default=0)
    avg_unit_cost = Column(Numeric(14, 4), nullable=False, default=0)
    is_archived = Column(Boolean, nullable=False, default=False)

    warehouse = relationship("Warehouse", back_populates="inventory_items")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint('warehouse_id', 'product_id', name='uq_inventory_warehouse_product'),
    )

class InventoryMovement(Base):
    __tablename__ = 'inventory_movement'

    id = Column(Integer, primary_key=True)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    movement_type = Column(Enum(MovementType), nullable=False)
    source_type = Column(Enum(MovementSource), nullable=False)
    source_ref = Column(String(100))
    qty_change = Column(Integer, nullable=False)  # Always positive; direction is movement_type
    unit_cost = Column(Numeric(14, 4), default=0)
    day_key = Column(Date, nullable=False)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index('idx_movement_source', 'warehouse_id', 'source_type', 'source_ref'),
    )

class SalesOrder(Base):
    __tablename__ = 'sales_order'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    day_key = Column(Date, nullable=False)
    created_at = Column(DateTime, default=func.now())

    lines = relationship("SalesOrderLine", back_populates="order", order_by="SalesOrderLine.sort_index")

    __table_args__ = (
        UniqueConstraint('warehouse_id', 'day_key', name='uq_sales_order_warehouse_day'),
    )

class SalesOrderLine(Base):
    __tablename__ = 'sales_order_line'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('sales_order.id'), nullable=False)
    # Listings are deleted on stock exhaustion, so this is a plain reference
    listing_id = Column(Integer)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)

    qty_ordered = Column(Integer, nullable=False)
    qty_fulfilled = Column(Integer, nullable=False, default=0)
    qty_shipped = Column(Integer, nullable=False, default=0)
    sort_index = Column(Integer, nullable=False)
    sale_price = Column(Numeric(14, 4), nullable=False)

    order = relationship("SalesOrder", back_populates="lines")

    @property
    def qty_remaining(self):
        return self.qty_ordered - self.qty_fulfilled

class DailySalesLog(Base):
    """One row per (listing, day) with every demand input and outcome."""
    __tablename__ = 'daily_sales_log'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    listing_id = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    market_zone = Column(String(40))
    day_key = Column(Date, nullable=False)
    sales_season = Column(String(10))

    base_qty = Column(Integer, nullable=False, default=0)
    missing_base_qty = Column(Boolean, nullable=False, default=False)
    min_daily = Column(Integer)
    max_daily = Column(Integer)
    tier_used = Column(Integer)
    positive_boost_pct = Column(Numeric(8, 2))
    negative_boost_pct = Column(Numeric(8, 2))
    units_after_boost = Column(Numeric(18, 6))
    price_multiplier = Column(Numeric(8, 4))
    price_blocked = Column(Boolean, default=False)
    units_after_price = Column(Numeric(18, 6))
    season_score = Column(Integer)
    season_blocked = Column(Boolean, default=False)
    units_after_season = Column(Numeric(18, 6))
    awareness = Column(Numeric(8, 4))
    awareness_multiplier = Column(Numeric(8, 4))
    final_units = Column(Numeric(18, 6))

    desired_qty = Column(Integer, nullable=False, default=0)
    qty_on_hand = Column(Integer, nullable=False, default=0)
    qty_ordered = Column(Integer, nullable=False, default=0)
    qty_shipped = Column(Integer, nullable=False, default=0)
    sale_price = Column(Numeric(14, 4))

    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('listing_id', 'day_key', name='uq_sales_log_listing_day'),
        Index('idx_sales_log_warehouse_day', 'warehouse_id', 'day_key'),
    )

class MetricLevelConfig(Base):
    __tablename__ = 'metric_level_config'

    id = Column(Integer, primary_key=True)
    metric_type = Column(Enum(MetricType), nullable=False)
    level = Column(Integer, nullable=False)
    max_allowed = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint('metric_type', 'level', name='uq_metric_level'),
    )

class MetricState(Base):
    __tablename__ = 'metric_state'

    id = Column(Integer, primary_key=True)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    metric_type = Column(Enum(MetricType), nullable=False)
    current_level = Column(Integer, nullable=False, default=1)
    current_count = Column(Integer, nullable=False, default=0)
    last_evaluated_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint('warehouse_id', 'metric_type', name='uq_metric_state'),
    )

class PlatformFeeTier(Base):
    __tablename__ = 'platform_fee_tier'

    id = Column(Integer, primary_key=True)
    level_min = Column(Integer, nullable=False)
    level_max = Column(Integer, nullable=False)
    commission_rate = Column(Numeric(8, 6), nullable=False)
    logistics_multiplier = Column(Numeric(8, 4), nullable=False)
    return_rate_min = Column(Numeric(8, 6), nullable=False)
    return_rate_max = Column(Numeric(8, 6), nullable=False)
    is_active = Column(Boolean, default=True)

class ShippingProfileFee(Base):
    __tablename__ = 'shipping_profile_fee'

    id = Column(Integer, primary_key=True)
    shipping_profile = Column(Enum(ShippingProfile), nullable=False, unique=True)
    base_unit_fee = Column(Numeric(14, 4), nullable=False)
    is_active = Column(Boolean, default=True)

class MarketZoneSeasonScenario(Base):
    __tablename__ = 'market_zone_season_scenario'

    id = Column(Integer, primary_key=True)
    scenario_id = Column(String(50), nullable=False)
    market_zone = Column(String(40), nullable=False)
    weeks_json = Column(JSON, nullable=False)  # 52 ints, index 0 = first week of the year
    is_active = Column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('scenario_id', 'market_zone', name='uq_season_scenario_zone'),
    )

class MarketZonePriceIndex(Base):
    __tablename__ = 'market_zone_price_index'

    id = Column(Integer, primary_key=True)
    market_zone = Column(String(40), nullable=False, unique=True)
    multiplier = Column(Numeric(8, 4), nullable=False, default=1)

class Settlement(Base):
    __tablename__ = 'settlement'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouse.id'), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    payout_day_key = Column(Date, nullable=False)
    created_at = Column(DateTime, default=func.now())

    lines = relationship("SettlementLine", back_populates="settlement", order_by="SettlementLine.id")

    __table_args__ = (
        UniqueConstraint('company_id', 'warehouse_id', 'period_start', 'period_end',
                         name='uq_settlement_period'),
    )

class SettlementLine(Base):
    __tablename__ = 'settlement_line'

    id = Column(Integer, primary_key=True)
    settlement_id = Column(Integer, ForeignKey('settlement.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    listing_id = Column(Integer)

    fulfilled_qty = Column(Integer, nullable=False)
    sale_price = Column(Numeric(14, 4), nullable=False)
    gross_revenue = Column(Numeric(16, 4), nullable=False)
    commission_rate = Column(Numeric(8, 6), nullable=False)
    commission_fee = Column(Numeric(16, 4), nullable=False)
    shipping_profile = Column(Enum(ShippingProfile), nullable=False)
    logistics_unit_fee = Column(Numeric(14, 4), nullable=False)
    logistics_fee = Column(Numeric(16, 4), nullable=False)
    return_rate = Column(Numeric(8, 6), nullable=False)
    return_qty = Column(Integer, nullable=False, default=0)
    return_deduction = Column(Numeric(16, 4), nullable=False)
    net_revenue = Column(Numeric(16, 4), nullable=False)
    tier_snapshot = Column(Integer)

    settlement = relationship("Settlement", back_populates="lines")
    product = relationship("Product")

class LedgerEntry(Base):
    """Append-only financial movement; corrections are offsetting entries."""
    __tablename__ = 'ledger_entry'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    day_key = Column(Date, nullable=False)
    direction = Column(Enum(FinanceDirection), nullable=False)
    amount_usd = Column(Numeric(16, 4), nullable=False)
    category = Column(Enum(FinanceCategory), nullable=False)
    scope_type = Column(Enum(FinanceScope), nullable=False)
    scope_id = Column(Integer)
    ref_type = Column(String(50))
    ref_id = Column(String(50))
    idempotency_key = Column(String(120), nullable=False, unique=True)
    note = Column(Text)
    created_at = Column(DateTime, default=func.now())

class PlayerMessage(Base):
    __tablename__ = 'player_message'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('company.id'), nullable=False)
    category = Column(String(30), nullable=False)
    level = Column(Enum(MessageLevel), nullable=False, default=MessageLevel.INFO)
    title = Column(String(200), nullable=False)
    body = Column(Text)
    context = Column(JSON)
    dedupe_key = Column(String(120), nullable=False)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint('company_id', 'dedupe_key', name='uq_message_dedupe'),
    )
