import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos.errors import InsufficientPaymentError, ValidationError
from pos.models.common import utcnow
from pos.models.core import Order, OrderStatus, PaymentMethod
from pos.services import lifecycle
from pos.services.billing import Amounts, compute_amounts, normalize_payment_method

logger = logging.getLogger(__name__)


def cash_change(total: Decimal, cash_received) -> tuple[Decimal, Decimal]:
    """Return (cash_received, change) or raise if the tendered cash is short."""
    if cash_received is None:
        raise InsufficientPaymentError("cash_received is required for cash payments")
    cash = Decimal(str(cash_received))
    if cash < total:
        raise InsufficientPaymentError(f"cash received {cash} is less than total {total}")
    return cash, cash - total


def settle_order(
    db: Session,
    order_id: str,
    *,
    payment_method: str | None,
    discount=0,
    include_tax: bool = False,
    cash_received=None,
    actor_id: str | None = None,
    require_method: bool = True,
    commit: bool = True,
) -> Amounts:
    """
    DRAFT -> PAID.

    Amounts are computed from the stored subtotal; the write is a single
    UPDATE guarded by status = DRAFT, so a concurrent settlement of the same
    order makes this call fail with InvalidStateError instead of overwriting.
    Order items are not touched.
    """
    method: PaymentMethod | None = None
    if payment_method is not None and str(payment_method).strip():
        method = normalize_payment_method(payment_method)
        if method is None:
            raise ValidationError(f"unsupported payment method: {payment_method}")
    elif require_method:
        raise ValidationError("payment_method is required")

    try:
        lifecycle.ensure_transition(db, order_id, OrderStatus.PAID, "pay")
        subtotal = db.execute(select(Order.subtotal).where(Order.id == order_id)).scalar_one()
        amounts = compute_amounts(subtotal, discount, include_tax)

        cash = change = None
        if method is PaymentMethod.CASH:
            cash, change = cash_change(amounts.total, cash_received)

        now = utcnow()
        lifecycle.guarded_update(
            db, order_id, expected=OrderStatus.DRAFT, action="pay",
            expected_subtotal=subtotal,
            status=OrderStatus.PAID,
            payment_method=method,
            discount=amounts.discount,
            tax=amounts.tax,
            total=amounts.total,
            cash_received=cash,
            change_amount=change,
            paid_at=now,
            updated_at=now,
        )
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("order paid: %s via %s total=%s by %s",
                order_id, method.value if method else "-", amounts.total, actor_id)
    return amounts
