# bookshop/models/__init__.py
from .user import User
from .book import Book
from .counter import Counter
from .order_item import OrderLine
from .status_history import StatusHistoryEntry
from .order import PurchasedOrder
from .payment_settings import PaymentSettings

__all__ = [
    "User",
    "Book",
    "Counter",
    "OrderLine",
    "StatusHistoryEntry",
    "PurchasedOrder",
    "PaymentSettings",
]
