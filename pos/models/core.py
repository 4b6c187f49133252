from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, DateTime, Integer
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from datetime import datetime
from decimal import Decimal
from pos.db import Base
from pos.models.common import IdMixin, TSMMixin

# ── Enums ───────────────────────────────────────────────────────────────────
class UserRole(PyEnum):
    ADMIN = "admin"
    CASHIER = "cashier"

class OrderType(PyEnum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"

class OrderStatus(PyEnum):
    DRAFT = "DRAFT"
    PAID = "PAID"
    CANCELED = "CANCELED"

class PaymentMethod(PyEnum):
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"
    QRIS = "qris"
    TRANSFER = "transfer"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    username: Mapped[str] = mapped_column(String(80), unique=True)
    pass_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]), default=UserRole.CASHIER)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Catalog ─────────────────────────────────────────────────────────────────
class Product(Base, IdMixin, TSMMixin):
    __tablename__ = "product"
    name: Mapped[str] = mapped_column(String(160), unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category: Mapped[str | None] = mapped_column(String(80))
    color: Mapped[str] = mapped_column(String(7), default="#808080")
    active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    order_number: Mapped[str] = mapped_column(String(40), unique=True)
    cashier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))
    customer_name: Mapped[str] = mapped_column(String(160), default="-")
    table_number: Mapped[str | None] = mapped_column(String(20))
    type_order: Mapped[OrderType] = mapped_column(Enum(OrderType, values_callable=lambda e: [m.value for m in e]), default=OrderType.DINE_IN)
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.DRAFT)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(Enum(PaymentMethod, values_callable=lambda e: [m.value for m in e]))
    cash_received: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    change_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", passive_deletes=True
    )

class OrderItem(Base, IdMixin, TSMMixin):
    __tablename__ = "order_item"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("product.id"), index=True)
    product_name: Mapped[str] = mapped_column(String(160))   # snapshot at order time
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))   # snapshot at order time
    qty: Mapped[int] = mapped_column(Integer)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    order: Mapped[Order] = relationship(back_populates="items")

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[str] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    before: Mapped[str | None] = mapped_column(Text)
    after: Mapped[str | None] = mapped_column(Text)
