"""
Tests for ledger postings and wallet balances.
"""
import unittest
from datetime import date
from decimal import Decimal

from warehouse_sim.exceptions import ValidationError
from warehouse_sim.models import (
    FinanceCategory, FinanceDirection, FinanceScope, LedgerEntry, Wallet
)
from warehouse_sim.services.ledger_service import LedgerService, generate_idempotency_key
from warehouse_sim.tests.fixtures import DatabaseTestCase, create_company


class TestIdempotencyKey(unittest.TestCase):
    def test_key_is_stable_and_bounded(self):
        """Test deterministic key generation."""
        key = generate_idempotency_key('COMPANY_COST:RENT', 7, '2026-02')
        self.assertEqual(key, generate_idempotency_key('COMPANY_COST:RENT', 7, '2026-02'))
        self.assertTrue(key.startswith('COMPANY_COST:RENT:'))
        self.assertEqual(len(key.split(':')[-1]), 24)

    def test_parts_do_not_collide(self):
        """Test that different parts give different keys."""
        self.assertNotEqual(
            generate_idempotency_key('A', 1, 23),
            generate_idempotency_key('A', 12, 3)
        )


class TestLedgerService(DatabaseTestCase):
    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.company = create_company(self.session, balance=100)
        self.service = LedgerService(self.session)

    def _payload(self, key, amount, direction=FinanceDirection.IN):
        return {
            'company_id': self.company.id,
            'day_key': date(2026, 2, 20),
            'direction': direction,
            'amount_usd': amount,
            'category': FinanceCategory.SALES_REVENUE,
            'scope_type': FinanceScope.COMPANY,
            'ref_type': 'TEST',
            'ref_id': 1,
            'idempotency_key': key
        }

    def test_in_and_out_move_the_wallet(self):
        """Test wallet updates for both directions."""
        entry, is_new = self.service.post_entry(self._payload('K1', Decimal('25.50')))
        self.assertTrue(is_new)
        self.assertEqual(entry.ref_id, '1')

        self.service.post_entry(self._payload('K2', Decimal('10'), FinanceDirection.OUT))
        self.assertEqual(self.service.get_balance(self.company.id), Decimal('115.50'))

    def test_duplicate_key_posts_once(self):
        """Test that a repeated key neither adds an entry nor moves the wallet."""
        first, _ = self.service.post_entry(self._payload('K1', Decimal('25')))
        again, is_new = self.service.post_entry(self._payload('K1', Decimal('25')))

        self.assertFalse(is_new)
        self.assertEqual(again.id, first.id)
        self.assertEqual(self.session.query(LedgerEntry).count(), 1)
        self.assertEqual(self.service.get_balance(self.company.id), Decimal('125'))

    def test_negative_amount_is_rejected(self):
        """Test that direction, not sign, carries the flow."""
        with self.assertRaises(ValidationError):
            self.service.post_entry(self._payload('K1', Decimal('-5')))
        self.assertEqual(self.session.query(LedgerEntry).count(), 0)

    def test_missing_key_is_rejected(self):
        """Test that every posting needs an idempotency key."""
        with self.assertRaises(ValidationError):
            self.service.post_entry(self._payload('', Decimal('5')))

    def test_wallet_created_on_demand(self):
        """Test postings for a company without a wallet."""
        other = create_company(self.session, name='Other')
        self.session.query(Wallet).filter(Wallet.company_id == other.id).delete()
        self.assertEqual(self.service.get_balance(other.id), Decimal('0'))

        payload = self._payload('K9', Decimal('3'))
        payload['company_id'] = other.id
        self.service.post_entry(payload)
        self.assertEqual(self.service.get_balance(other.id), Decimal('3'))


if __name__ == '__main__':
    unittest.main()
