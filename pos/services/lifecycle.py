"""
Order status transitions.

DRAFT is the only mutable state. PAID and CANCELED are terminal for the
normal flow; only the administrative status patch may move an order out of
them. Every status-changing write carries its precondition in the WHERE
clause and checks the affected row count, so two requests that both read
DRAFT cannot both win.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pos.errors import InvalidStateError, NotFoundError
from pos.models.common import utcnow
from pos.models.core import Order, OrderStatus

logger = logging.getLogger(__name__)

DRAFT, PAID, CANCELED = OrderStatus.DRAFT, OrderStatus.PAID, OrderStatus.CANCELED

# (from, to) pairs allowed by the regular order flow
TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    DRAFT: {DRAFT, PAID, CANCELED},
    PAID: set(),
    CANCELED: set(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS.get(current, set())


def current_status(db: Session, order_id: str) -> OrderStatus:
    status = db.execute(select(Order.status).where(Order.id == order_id)).scalar_one_or_none()
    if status is None:
        raise NotFoundError("order not found")
    return status


def ensure_transition(db: Session, order_id: str, target: OrderStatus, action: str) -> OrderStatus:
    """Fail fast before any work if `action` is not legal from the stored status."""
    status = current_status(db, order_id)
    if not can_transition(status, target):
        logger.warning("rejected %s on order %s in status %s", action, order_id, status.value)
        raise InvalidStateError(f"cannot {action} an order in status {status.value}")
    return status


def guarded_update(db: Session, order_id: str, *, expected: OrderStatus, action: str,
                   expected_subtotal=None, **values) -> None:
    """
    UPDATE "order" SET ... WHERE id = :id AND status = :expected
                                [AND subtotal = :expected_subtotal]

    Raises InvalidStateError when another transaction moved the order out of
    `expected` first, or changed its items after `expected_subtotal` was read.
    Does not commit.
    """
    values.setdefault("updated_at", utcnow())
    conditions = [Order.id == order_id, Order.status == expected]
    if expected_subtotal is not None:
        conditions.append(Order.subtotal == expected_subtotal)
    result = db.execute(
        update(Order)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        status = current_status(db, order_id)
        if status is expected:
            logger.warning("lost update on order %s: %s, items changed concurrently", order_id, action)
            raise InvalidStateError(f"cannot {action} an order whose items changed meanwhile; reload and retry")
        logger.warning("lost update on order %s: %s expected %s, found %s",
                       order_id, action, expected.value, status.value)
        raise InvalidStateError(f"cannot {action} an order in status {status.value}")
