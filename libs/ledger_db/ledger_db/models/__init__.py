# ledger_db/models/__init__.py
"""Import all models so Alembic can detect them for migrations."""

from ledger_db.models.payments import Coupon, DaoTransaction, OrderMetadata, TransactionType
from ledger_db.models.player import Player
from ledger_db.models.subscriptions import AutorenewPurchase, PlayerSubscription

__all__ = [
    "AutorenewPurchase",
    "Coupon",
    "DaoTransaction",
    "OrderMetadata",
    "Player",
    "PlayerSubscription",
    "TransactionType",
]
