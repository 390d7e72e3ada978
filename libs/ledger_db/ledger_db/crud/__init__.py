# ledger_db/crud/__init__.py

from .payments import CouponDAO, OrderMetadataDAO, TransactionLogDAO
from .player import PlayerDAO
from .subscriptions import AutorenewDAO, SubscriptionDAO

__all__ = ["AutorenewDAO", "CouponDAO", "OrderMetadataDAO", "PlayerDAO", "SubscriptionDAO", "TransactionLogDAO"]
