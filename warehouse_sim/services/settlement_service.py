# warehouse_sim/services/settlement_service.py
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import (
    FinanceCategory, FinanceDirection, FinanceScope, MetricState, MetricType,
    PlatformFeeTier, Product, SalesOrder, SalesOrderLine, Settlement, SettlementLine,
    ShippingProfile, ShippingProfileFee, Warehouse
)
from warehouse_sim.core.settlement_math import (
    compute_settlement_line, seeded_return_rate, quantize_money
)
from warehouse_sim.services.ledger_service import LedgerService
from warehouse_sim.services.returns_service import ReturnsService
from warehouse_sim.utils.date_utils import get_period_for_payout_day
from warehouse_sim.config import config
from warehouse_sim.exceptions import ConfigError, NotFoundError

logger = logging.getLogger(__name__)

# (ledger key kind, category, direction, note)
_LEDGER_COMPONENTS = [
    ('GROSS', FinanceCategory.SALES_REVENUE, FinanceDirection.IN, 'Marketplace gross revenue'),
    ('COMMISSION', FinanceCategory.PLATFORM_COMMISSION, FinanceDirection.OUT, 'Marketplace commission fees'),
    ('LOGISTICS', FinanceCategory.LOGISTICS, FinanceDirection.OUT, 'Marketplace logistics fees'),
    ('RETURNS', FinanceCategory.RETURNS, FinanceDirection.OUT, 'Marketplace returns deduction'),
]

class SettlementService:
    """Service for building settlements and posting them to the ledger."""

    def __init__(self, session: Session):
        """Initialize the settlement service.

        Args:
            session: Database session
        """
        self.session = session
        self.ledger_service = LedgerService(session)
        self.returns_service = ReturnsService(session)
        self.settings = config.settlement_config

    def get_settlement(
        self,
        company_id: int,
        warehouse_id: int,
        period_start: date,
        period_end: date
    ) -> Optional[Settlement]:
        return self.session.query(Settlement).filter(
            Settlement.company_id == company_id,
            Settlement.warehouse_id == warehouse_id,
            Settlement.period_start == period_start,
            Settlement.period_end == period_end
        ).first()

    def aggregate_period_sales(self, company_id: int, warehouse_id: int,
                               period_start: date, period_end: date) -> Dict[int, Dict]:
        """Aggregate fulfilled order lines of a period by product.

        Lines are read in (day, sort index) order; the unit price kept for a
        product is the last one seen.

        Returns:
            Ordered dictionary product_id -> fulfilled_qty, gross_revenue,
            sale_price, listing_id
        """
        rows = self.session.query(SalesOrderLine).join(
            SalesOrder, SalesOrderLine.order_id == SalesOrder.id
        ).filter(
            SalesOrder.company_id == company_id,
            SalesOrder.warehouse_id == warehouse_id,
            SalesOrder.day_key >= period_start,
            SalesOrder.day_key <= period_end,
            SalesOrderLine.qty_fulfilled > 0
        ).order_by(
            SalesOrder.day_key.asc(),
            SalesOrderLine.sort_index.asc(),
            SalesOrderLine.id.asc()
        ).all()

        aggregated = OrderedDict()
        for line in rows:
            price = Decimal(str(line.sale_price or 0))
            entry = aggregated.setdefault(line.product_id, {
                'fulfilled_qty': 0,
                'gross_revenue': Decimal('0'),
                'sale_price': price,
                'listing_id': line.listing_id
            })
            entry['fulfilled_qty'] += line.qty_fulfilled
            entry['gross_revenue'] += price * line.qty_fulfilled
            entry['sale_price'] = price
            if line.listing_id is not None:
                entry['listing_id'] = line.listing_id

        return aggregated

    def get_fee_parameters(self, warehouse_id: int) -> Dict:
        """Resolve fee parameters for the warehouse's SALES_COUNT level.

        Falls back to the configured defaults when no active tier covers
        the level.
        """
        state = self.session.query(MetricState).filter(
            MetricState.warehouse_id == warehouse_id,
            MetricState.metric_type == MetricType.SALES_COUNT
        ).first()
        level = state.current_level if state else config.simulation_config['default_capacity_level']

        tier = self.session.query(PlatformFeeTier).filter(
            PlatformFeeTier.is_active == True,
            PlatformFeeTier.level_min <= level,
            PlatformFeeTier.level_max >= level
        ).order_by(PlatformFeeTier.level_min.asc()).first()

        if tier is None:
            logger.warning(f"No active fee tier for level {level}; using default fees")
            return {
                'level': level,
                'commission_rate': self.settings['default_commission_rate'],
                'logistics_multiplier': self.settings['default_logistics_multiplier'],
                'return_rate_min': self.settings['default_return_rate_min'],
                'return_rate_max': self.settings['default_return_rate_max']
            }

        return {
            'level': level,
            'commission_rate': Decimal(str(tier.commission_rate)),
            'logistics_multiplier': Decimal(str(tier.logistics_multiplier)),
            'return_rate_min': Decimal(str(tier.return_rate_min)),
            'return_rate_max': Decimal(str(tier.return_rate_max))
        }

    def get_shipping_fee(self, product: Optional[Product], fee_map: Dict) -> Tuple[ShippingProfile, Decimal]:
        """Resolve the shipping profile and base unit fee of a product."""
        profile_name = self.settings['default_shipping_profile']
        try:
            default_profile = ShippingProfile[profile_name.upper()]
        except KeyError:
            raise ConfigError(
                f"Unknown default shipping profile '{profile_name}'",
                details={'valid': [p.name for p in ShippingProfile]}
            )
        profile = product.shipping_profile if product and product.shipping_profile else default_profile

        if profile in fee_map:
            return profile, fee_map[profile]

        logger.info(f"No shipping fee for profile {profile.value}; using fallback fee")
        return profile, self.settings['fallback_shipping_fee']

    def _shipping_fee_map(self) -> Dict[ShippingProfile, Decimal]:
        rows = self.session.query(ShippingProfileFee).filter(ShippingProfileFee.is_active == True).all()
        return {row.shipping_profile: Decimal(str(row.base_unit_fee)) for row in rows}

    def _existing_result(self, settlement: Settlement) -> Dict:
        total_net = sum((Decimal(str(line.net_revenue)) for line in settlement.lines), Decimal('0'))
        return {
            'settlement_id': settlement.id,
            'total_net': total_net,
            'already_posted': True,
            'period_start': settlement.period_start,
            'period_end': settlement.period_end,
            'returned_units': {
                line.product_id: line.return_qty
                for line in settlement.lines if line.return_qty > 0
            }
        }

    def build_and_post_settlement(
        self,
        company_id: int,
        warehouse_id: int,
        payout_day_key: date
    ) -> Optional[Dict]:
        """Build the settlement paid out on a day and post it to the ledger.

        Runs inside the caller's transaction. Safe to repeat: an existing
        settlement for the same period is returned with already_posted=True
        and nothing is posted again.

        Args:
            company_id: Company ID
            warehouse_id: Warehouse ID
            payout_day_key: Payout day (5th or 20th)

        Returns:
            Dictionary with settlement_id, total_net, already_posted,
            period_start and period_end; None when nothing was fulfilled in
            the period

        Raises:
            SettlementPeriodError if the day has no settlement period
            NotFoundError if the warehouse does not belong to the company
        """
        period_start, period_end = get_period_for_payout_day(payout_day_key)

        warehouse = self.session.get(Warehouse, warehouse_id)
        if not warehouse or warehouse.company_id != company_id:
            raise NotFoundError(f"Warehouse {warehouse_id} not found for company {company_id}")

        existing = self.get_settlement(company_id, warehouse_id, period_start, period_end)
        if existing:
            logger.info(f"Settlement {existing.id} for {period_start}..{period_end} already posted")
            return self._existing_result(existing)

        aggregated = self.aggregate_period_sales(company_id, warehouse_id, period_start, period_end)
        if not aggregated:
            logger.info(
                f"No fulfilled sales for warehouse {warehouse_id} in {period_start}..{period_end}; "
                f"no settlement created"
            )
            return None

        settlement = Settlement(
            company_id=company_id,
            warehouse_id=warehouse_id,
            period_start=period_start,
            period_end=period_end,
            payout_day_key=payout_day_key
        )
        self.session.add(settlement)
        self.session.flush()

        fees = self.get_fee_parameters(warehouse_id)
        fee_map = self._shipping_fee_map()

        totals = {kind: Decimal('0') for kind, _, _, _ in _LEDGER_COMPONENTS}
        total_net = Decimal('0')

        for product_id, agg in aggregated.items():
            product = self.session.get(Product, product_id)
            profile, base_fee = self.get_shipping_fee(product, fee_map)
            unit_fee = base_fee * fees['logistics_multiplier']

            return_rate = seeded_return_rate(
                f"{settlement.id}:{product_id}", fees['return_rate_min'], fees['return_rate_max']
            )
            amounts = compute_settlement_line(
                fulfilled_qty=agg['fulfilled_qty'],
                gross_revenue=agg['gross_revenue'],
                sale_price=agg['sale_price'],
                commission_rate=fees['commission_rate'],
                logistics_unit_fee=unit_fee,
                return_rate=return_rate
            )

            line = SettlementLine(
                settlement=settlement,
                product_id=product_id,
                listing_id=agg['listing_id'],
                fulfilled_qty=agg['fulfilled_qty'],
                sale_price=agg['sale_price'],
                gross_revenue=amounts['gross_revenue'],
                commission_rate=fees['commission_rate'],
                commission_fee=amounts['commission_fee'],
                shipping_profile=profile,
                logistics_unit_fee=unit_fee,
                logistics_fee=amounts['logistics_fee'],
                return_rate=return_rate,
                return_qty=amounts['return_qty'],
                return_deduction=amounts['return_deduction'],
                net_revenue=amounts['net_revenue'],
                tier_snapshot=fees['level']
            )
            self.session.add(line)

            totals['GROSS'] += amounts['gross_revenue']
            totals['COMMISSION'] += amounts['commission_fee']
            totals['LOGISTICS'] += amounts['logistics_fee']
            totals['RETURNS'] += amounts['return_deduction']
            total_net += amounts['net_revenue']

        self.session.flush()

        for kind, category, direction, note in _LEDGER_COMPONENTS:
            amount = quantize_money(totals[kind])
            if amount <= 0:
                continue
            self.ledger_service.post_entry({
                'company_id': company_id,
                'day_key': payout_day_key,
                'direction': direction,
                'amount_usd': amount,
                'category': category,
                'scope_type': FinanceScope.WAREHOUSE,
                'scope_id': warehouse_id,
                'ref_type': 'SETTLEMENT',
                'ref_id': settlement.id,
                'idempotency_key': f"SETTLEMENT:{kind}:{settlement.id}",
                'note': note
            })

        restock = self.returns_service.apply_returns_to_inventory(settlement.id)

        logger.info(
            f"Posted settlement {settlement.id} for warehouse {warehouse_id} "
            f"({period_start}..{period_end}): net {total_net}"
        )

        return {
            'settlement_id': settlement.id,
            'total_net': total_net,
            'already_posted': False,
            'period_start': period_start,
            'period_end': period_end,
            'returned_units': restock['products']
        }
