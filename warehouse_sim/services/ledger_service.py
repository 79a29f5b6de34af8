# warehouse_sim/services/ledger_service.py
from decimal import Decimal
from typing import Dict, Optional, Tuple
import hashlib
import logging

from sqlalchemy.orm import Session

from warehouse_sim.models import (
    FinanceCategory, FinanceDirection, FinanceScope, LedgerEntry, Wallet
)
from warehouse_sim.exceptions import ValidationError

logger = logging.getLogger(__name__)

def generate_idempotency_key(action: str, *parts) -> str:
    """Build a deterministic idempotency key from an action and its parts.

    The parts are hashed so delimiters inside them cannot collide and the
    key length stays bounded.

    Args:
        action: Action prefix, e.g. 'COMPANY_COST:RENT'
        parts: Values identifying the posting

    Returns:
        Key of the form '<action>:<24 hex chars>'
    """
    digest = hashlib.sha256('|'.join(str(part) for part in parts).encode('utf-8')).hexdigest()
    return f"{action}:{digest[:24]}"

class LedgerService:
    """Service for append-only ledger postings and wallet balances."""

    def __init__(self, session: Session):
        """Initialize the ledger service.

        Args:
            session: Database session
        """
        self.session = session

    def get_wallet(self, company_id: int, create: bool = True) -> Optional[Wallet]:
        """Get the wallet of a company, creating it at zero when missing."""
        wallet = self.session.query(Wallet).filter(Wallet.company_id == company_id).first()
        if wallet is None and create:
            wallet = Wallet(company_id=company_id, balance_usd=Decimal('0'))
            self.session.add(wallet)
            self.session.flush()
        return wallet

    def get_entry(self, idempotency_key: str) -> Optional[LedgerEntry]:
        return self.session.query(LedgerEntry).filter(
            LedgerEntry.idempotency_key == idempotency_key
        ).first()

    def post_entry(self, payload: Dict) -> Tuple[LedgerEntry, bool]:
        """Post a ledger entry and apply it to the wallet at most once.

        Args:
            payload: Dictionary with company_id, day_key, direction, amount_usd,
                category, scope_type, idempotency_key and optional scope_id,
                ref_type, ref_id, note

        Returns:
            Tuple (entry, is_new); the wallet changes only when is_new is True

        Raises:
            ValidationError if the amount is negative or the key is empty
        """
        key = payload.get('idempotency_key')
        if not key:
            raise ValidationError("Ledger entry requires an idempotency key")

        existing = self.get_entry(key)
        if existing is not None:
            logger.debug(f"Ledger entry {key} already posted; skipping")
            return existing, False

        amount = Decimal(str(payload['amount_usd']))
        if amount < 0:
            raise ValidationError(
                f"Ledger amount must not be negative ({amount}); use the direction instead",
                details={'idempotency_key': key}
            )

        direction = payload['direction']
        entry = LedgerEntry(
            company_id=payload['company_id'],
            day_key=payload['day_key'],
            direction=direction,
            amount_usd=amount,
            category=payload.get('category', FinanceCategory.OTHER),
            scope_type=payload.get('scope_type', FinanceScope.COMPANY),
            scope_id=payload.get('scope_id'),
            ref_type=payload.get('ref_type'),
            ref_id=str(payload['ref_id']) if payload.get('ref_id') is not None else None,
            idempotency_key=key,
            note=payload.get('note')
        )
        self.session.add(entry)

        wallet = self.get_wallet(payload['company_id'])
        delta = amount if direction == FinanceDirection.IN else -amount
        wallet.balance_usd = Decimal(str(wallet.balance_usd or 0)) + delta

        self.session.flush()
        logger.info(f"Posted ledger entry {key}: {direction.value} {amount} (company {payload['company_id']})")
        return entry, True

    def get_balance(self, company_id: int) -> Decimal:
        wallet = self.get_wallet(company_id, create=False)
        return Decimal(str(wallet.balance_usd)) if wallet else Decimal('0')
