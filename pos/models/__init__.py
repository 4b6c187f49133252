# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    UserRole, OrderType, OrderStatus, PaymentMethod,

    # Identity
    User,

    # Catalog
    Product,

    # Orders
    Order, OrderItem,

    # Audit
    AuditLog,
)

__all__ = [
    "UserRole", "OrderType", "OrderStatus", "PaymentMethod",
    "User",
    "Product",
    "Order", "OrderItem",
    "AuditLog",
]
