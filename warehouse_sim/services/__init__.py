from .season_service import SeasonScoreResolver
from .listing_service import ListingService
from .order_service import OrderService
from .fulfillment_service import FulfillmentService
from .ledger_service import LedgerService, generate_idempotency_key
from .returns_service import ReturnsService
from .settlement_service import SettlementService
from .notification_service import NotificationService

__all__ = [
    'SeasonScoreResolver',
    'ListingService',
    'OrderService',
    'FulfillmentService',
    'LedgerService',
    'generate_idempotency_key',
    'ReturnsService',
    'SettlementService',
    'NotificationService'
]
