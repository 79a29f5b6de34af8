# warehouse_sim/services/notification_service.py
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_sim.models import (
    MessageLevel, PlayerMessage, Product, Settlement, Warehouse
)
from warehouse_sim.config import config

logger = logging.getLogger(__name__)

def format_usd(amount) -> str:
    """Format an amount as $X,XXX.XX."""
    return f"${Decimal(str(amount)):,.2f}"

def format_day(day_key: date) -> str:
    """Format a day key for message bodies, e.g. 'Feb 1, 2026'."""
    return f"{day_key.strftime('%b')} {day_key.day}, {day_key.year}"

class NotificationService:
    """Player-facing inbox messages, deduplicated per company."""

    def __init__(self, session: Session):
        """Initialize the notification service.

        Args:
            session: Database session
        """
        self.session = session

    def create_message(
        self,
        company_id: int,
        category: str,
        title: str,
        body: str,
        dedupe_key: str,
        level: MessageLevel = MessageLevel.INFO,
        context: Optional[Dict] = None
    ) -> Optional[PlayerMessage]:
        """Create a message unless one with the same dedupe key exists.

        Returns:
            The new message, or None when it was a duplicate
        """
        existing = self.session.query(PlayerMessage).filter(
            PlayerMessage.company_id == company_id,
            PlayerMessage.dedupe_key == dedupe_key
        ).first()
        if existing:
            logger.debug(f"Message {dedupe_key} already exists for company {company_id}")
            return None

        message = PlayerMessage(
            company_id=company_id,
            category=category,
            level=level,
            title=title,
            body=body,
            context=context or {},
            dedupe_key=dedupe_key
        )

        # Each message commits on its own; a concurrent insert of the same key is a no-op
        try:
            self.session.add(message)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.debug(f"Message {dedupe_key} inserted concurrently; skipping")
            return None

        logger.info(f"Created message {dedupe_key} for company {company_id}")
        return message

    def _warehouse_label(self, warehouse_id: int) -> str:
        warehouse = self.session.get(Warehouse, warehouse_id)
        return warehouse.name if warehouse else f"warehouse {warehouse_id}"

    def notify_settlement_completed(self, settlement_id: int) -> Dict:
        """Emit the settlement summary and, when warranted, a return risk warning.

        Args:
            settlement_id: Settlement ID

        Returns:
            Dictionary with the number of messages created
        """
        settlement = self.session.get(Settlement, settlement_id)
        if settlement is None:
            logger.warning(f"Settlement {settlement_id} not found; no messages sent")
            return {'messages_created': 0}

        created = 0
        if self._summary_message(settlement):
            created += 1
        if self._return_risk_message(settlement):
            created += 1

        return {'messages_created': created}

    def _summary_message(self, settlement: Settlement) -> Optional[PlayerMessage]:
        gross = sum((Decimal(str(l.gross_revenue)) for l in settlement.lines), Decimal('0'))
        commission = sum((Decimal(str(l.commission_fee)) for l in settlement.lines), Decimal('0'))
        logistics = sum((Decimal(str(l.logistics_fee)) for l in settlement.lines), Decimal('0'))
        returns = sum((Decimal(str(l.return_deduction)) for l in settlement.lines), Decimal('0'))
        net = sum((Decimal(str(l.net_revenue)) for l in settlement.lines), Decimal('0'))
        units = sum(l.fulfilled_qty for l in settlement.lines)

        body = "\n".join([
            f"Sales settled for {self._warehouse_label(settlement.warehouse_id)} "
            f"({format_day(settlement.period_start)} - {format_day(settlement.period_end)})",
            f"Units sold: {units}",
            f"Gross revenue: {format_usd(gross)}",
            f"Commission: -{format_usd(commission)}",
            f"Logistics: -{format_usd(logistics)}",
            f"Returns: -{format_usd(returns)}",
            "",
            f"Net payout: {format_usd(net)}"
        ])

        return self.create_message(
            company_id=settlement.company_id,
            category='FINANCE',
            title='Settlement completed',
            body=body,
            dedupe_key=f"SETTLEMENT_SUMMARY:{settlement.id}",
            context={
                'settlement_id': settlement.id,
                'warehouse_id': settlement.warehouse_id,
                'net_payout': str(net)
            }
        )

    def _risky_categories(self, settlement: Settlement) -> List[Dict]:
        settings = config.settlement_config
        threshold = settings['high_return_rate_threshold']
        min_units = settings['high_return_min_units']

        fulfilled = defaultdict(int)
        returned = defaultdict(int)
        for line in settlement.lines:
            product = self.session.get(Product, line.product_id)
            category = product.category if product else 'UNKNOWN'
            fulfilled[category] += line.fulfilled_qty
            returned[category] += line.return_qty

        risky = []
        for category in sorted(fulfilled):
            units = fulfilled[category]
            if units < min_units or units <= 0:
                continue
            rate = Decimal(returned[category]) / Decimal(units)
            if rate >= threshold:
                risky.append({'category': category, 'fulfilled': units,
                              'returned': returned[category], 'rate': rate})
        return risky

    def _return_risk_message(self, settlement: Settlement) -> Optional[PlayerMessage]:
        risky = self._risky_categories(settlement)
        if not risky:
            return None

        rows = [
            f"{entry['category']}: {entry['returned']} of {entry['fulfilled']} units returned "
            f"({(entry['rate'] * 100).quantize(Decimal('0.1'))}%)"
            for entry in risky
        ]
        body = "\n".join(
            [f"High return rates at {self._warehouse_label(settlement.warehouse_id)}:"] + rows
        )

        return self.create_message(
            company_id=settlement.company_id,
            category='FINANCE',
            title='High return risk',
            body=body,
            dedupe_key=f"RETURN_RISK:{settlement.id}",
            level=MessageLevel.WARNING,
            context={
                'settlement_id': settlement.id,
                'categories': [entry['category'] for entry in risky]
            }
        )

    def notify_returns_restocked(self, settlement_id: int, returned: Dict[int, int]) -> Optional[PlayerMessage]:
        """Tell the player which returned units went back into stock."""
        total = sum(returned.values())
        if total <= 0:
            return None

        settlement = self.session.get(Settlement, settlement_id)
        if settlement is None:
            return None

        rows = []
        for product_id, qty in sorted(returned.items(), key=lambda kv: -kv[1])[:8]:
            product = self.session.get(Product, product_id)
            name = f"{product.name} ({product.code})" if product else str(product_id)
            rows.append(f"- {name}: {qty}")
        if len(returned) > 8:
            rows.append(f"... and {len(returned) - 8} more items.")

        body = (
            f"{total} units returned and added back to "
            f"{self._warehouse_label(settlement.warehouse_id)} stock.\n\nReturned items:\n"
            + "\n".join(rows)
        )

        return self.create_message(
            company_id=settlement.company_id,
            category='LOGISTICS',
            title='Returns processed',
            body=body,
            dedupe_key=f"RETURNS_RESTOCK:{settlement_id}",
            context={'settlement_id': settlement_id, 'warehouse_id': settlement.warehouse_id}
        )
