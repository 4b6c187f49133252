"""
Order aggregate persistence: an Order row plus its snapshot OrderItem rows.

Every mutation here runs in a single transaction on the caller's session and
either commits completely or rolls back before the error propagates.
"""
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos.config import settings
from pos.errors import NotFoundError, PersistenceError, ProductNotFoundError, ValidationError
from pos.models.common import utcnow
from pos.models.core import Order, OrderItem, OrderStatus, OrderType, Product
from pos.schemas.orders import OrderIn, StatusPatchIn
from pos.services import lifecycle
from pos.services.billing import compute_amounts, line_subtotal
from pos.services.items import ItemLine, sanitize_items
from pos.services.payments import settle_order
from pos.util.audit import audit
from pos.util.dates import window_clauses

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3
MAX_PAGE_SIZE = 100


# ---------- helpers ----------

def _snapshot(o: Order) -> dict:
    return {
        "status": o.status.value,
        "subtotal": o.subtotal,
        "discount": o.discount,
        "tax": o.tax,
        "total": o.total,
        "payment_method": o.payment_method.value if o.payment_method else None,
    }


def next_order_number(db: Session, now: datetime | None = None) -> str:
    """ORD-YYYYMMDD-NNNN, numbered per local day from the current maximum."""
    local_day = (now or utcnow()).astimezone(ZoneInfo(settings.TZ))
    prefix = f"ORD-{local_day.strftime('%Y%m%d')}"
    # longest first, so -10000 sorts above -9999
    last = db.execute(
        select(Order.order_number)
        .where(Order.order_number.like(f"{prefix}-%"))
        .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
        .limit(1)
    ).scalar()
    seq = int(last.rsplit("-", 1)[1]) if last else 0
    return f"{prefix}-{seq + 1:04d}"


def _resolve_products(db: Session, lines: list[ItemLine]) -> dict[str, Product]:
    ids = [line.product_id for line in lines]
    rows = db.execute(
        select(Product).where(Product.id.in_(ids), Product.active.is_(True))
    ).scalars().all()
    products = {p.id: p for p in rows}
    for line in lines:
        if line.product_id not in products:
            raise ProductNotFoundError(line.product_id)
    return products


def _build_items(order_id: str | None, lines: list[ItemLine], products: dict[str, Product]) -> list[OrderItem]:
    out = []
    for line in lines:
        p = products[line.product_id]
        out.append(OrderItem(
            order_id=order_id,
            product_id=p.id,
            product_name=p.name,
            price=p.price,
            qty=line.qty,
            subtotal=line_subtotal(p.price, line.qty),
        ))
    return out


def _reload(db: Session, order_id: str) -> Order:
    o = db.get(Order, order_id, populate_existing=True)
    if o is None:
        raise NotFoundError("order not found")
    return o


# ---------- create / edit ----------

def create_order(db: Session, body: OrderIn, cashier_id: str | None) -> Order:
    lines = sanitize_items(body.items)
    products = _resolve_products(db, lines)
    amounts = compute_amounts(sum(line_subtotal(products[line.product_id].price, line.qty) for line in lines))

    for attempt in range(ORDER_NUMBER_ATTEMPTS):
        o = Order(
            order_number=next_order_number(db),
            cashier_id=cashier_id,
            customer_name=body.customer_name or "-",
            table_number=body.table_number,
            type_order=OrderType(body.type_order),
            status=OrderStatus.DRAFT,
            subtotal=amounts.subtotal,
            discount=amounts.discount,
            tax=amounts.tax,
            total=amounts.total,
        )
        o.items = _build_items(None, lines, products)
        db.add(o)
        try:
            db.commit()
        except IntegrityError:
            # order_number taken by a concurrent insert; try the next one
            db.rollback()
            logger.warning("order number collision, retrying (attempt %d)", attempt + 1)
            continue
        logger.info("order created: %s (%s) by %s total=%s",
                    o.order_number, o.type_order.value, cashier_id, o.total)
        return o

    raise PersistenceError("could not allocate a unique order number")


def replace_items(db: Session, order_id: str, body: OrderIn, cashier_id: str | None) -> Order:
    """Replace header and the whole item set of a DRAFT order atomically."""
    lines = sanitize_items(body.items)
    try:
        lifecycle.ensure_transition(db, order_id, OrderStatus.DRAFT, "edit")
        products = _resolve_products(db, lines)
        amounts = compute_amounts(sum(line_subtotal(products[line.product_id].price, line.qty) for line in lines))

        lifecycle.guarded_update(
            db, order_id, expected=OrderStatus.DRAFT, action="edit",
            customer_name=body.customer_name or "-",
            table_number=body.table_number,
            type_order=OrderType(body.type_order),
            cashier_id=cashier_id,
            subtotal=amounts.subtotal,
            discount=amounts.discount,
            tax=amounts.tax,
            total=amounts.total,
        )
        db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        db.add_all(_build_items(order_id, lines, products))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("order edited: %s by %s (%d lines)", order_id, cashier_id, len(lines))
    return _reload(db, order_id)


# ---------- reads ----------

def order_items(db: Session, order_id: str) -> list[dict]:
    """Items grouped by (product_id, name, price); residual duplicate rows are summed."""
    rows = db.execute(
        select(
            OrderItem.product_id,
            OrderItem.product_name,
            OrderItem.price,
            func.sum(OrderItem.qty).label("qty"),
            func.sum(OrderItem.subtotal).label("subtotal"),
        )
        .where(OrderItem.order_id == order_id)
        .group_by(OrderItem.product_id, OrderItem.product_name, OrderItem.price)
        .order_by(OrderItem.product_name)
    ).all()
    return [
        {
            "product_id": r.product_id,
            "product_name": r.product_name,
            "price": r.price,
            "qty": int(r.qty),
            "subtotal": r.subtotal,
        }
        for r in rows
    ]


def get_order(db: Session, order_id: str) -> tuple[Order, list[dict]]:
    o = _reload(db, order_id)
    return o, order_items(db, order_id)


def get_paid_receipt(db: Session, order_id: str) -> tuple[Order, list[dict]]:
    """Public receipt data; only settled orders are visible."""
    o = db.get(Order, order_id, populate_existing=True)
    if o is None or o.status != OrderStatus.PAID:
        raise NotFoundError("order not found or not paid yet")
    rows = db.execute(
        select(
            OrderItem.product_name,
            func.sum(OrderItem.qty).label("qty"),
            func.sum(OrderItem.subtotal).label("subtotal"),
        )
        .where(OrderItem.order_id == order_id)
        .group_by(OrderItem.product_name)
        .order_by(OrderItem.product_name)
    ).all()
    return o, [{"product_name": r.product_name, "qty": int(r.qty), "subtotal": r.subtotal} for r in rows]


def list_orders(
    db: Session,
    *,
    search: str | None = None,
    customer: str | None = None,
    table: str | None = None,
    status: str | None = None,
    date_range: str | None = "all",
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = 1,
    size: int = 10,
) -> tuple[list[Order], int, int, int]:
    """
    Filtered, paged listing, most recently updated first.

    Returns (orders, total_matching, page, size) with page coerced to >= 1 and
    size clamped to [1, 100].
    """
    conditions = []
    if search:
        term = f"%{search.strip()}%"
        conditions.append(or_(
            Order.order_number.ilike(term),
            Order.customer_name.ilike(term),
            Order.table_number.ilike(term),
        ))
    if customer:
        conditions.append(Order.customer_name.ilike(f"%{customer.strip()}%"))
    if table:
        conditions.append(Order.table_number.ilike(f"%{table.strip()}%"))
    if status:
        try:
            conditions.append(Order.status == OrderStatus(status))
        except ValueError:
            raise ValidationError("invalid status")
    conditions.extend(window_clauses(Order.created_at, date_range, start, end))

    page = max(page, 1)
    size = min(max(size, 1), MAX_PAGE_SIZE)

    total = db.execute(select(func.count()).select_from(Order).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.updated_at.desc(), Order.id.desc())
        .offset((page - 1) * size)
        .limit(size)
    ).scalars().all()
    return list(rows), total, page, size


# ---------- transitions ----------

def cancel_order(db: Session, order_id: str, actor_id: str | None) -> Order:
    try:
        lifecycle.ensure_transition(db, order_id, OrderStatus.CANCELED, "cancel")
        lifecycle.guarded_update(db, order_id, expected=OrderStatus.DRAFT, action="cancel",
                                 status=OrderStatus.CANCELED)
        audit(db, actor_id, "Order", order_id, "CANCEL",
              before={"status": OrderStatus.DRAFT.value}, after={"status": OrderStatus.CANCELED.value})
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("order canceled: %s by %s", order_id, actor_id)
    return _reload(db, order_id)


def patch_status(db: Session, order_id: str, body: StatusPatchIn, actor_id: str | None) -> Order:
    """
    Administrative status assignment.

    PAID goes through settlement (DRAFT only, validated method and cash).
    DRAFT reopens the order: payment fields are cleared and totals reset to the
    undiscounted, untaxed subtotal. CANCELED may be assigned from any status.
    """
    target = OrderStatus(body.status)
    before = _snapshot(_reload(db, order_id))

    if target is OrderStatus.PAID:
        try:
            settle_order(
                db, order_id,
                payment_method=body.payment_method,
                discount=body.discount,
                include_tax=body.include_tax,
                cash_received=body.cash_received,
                actor_id=actor_id,
                require_method=False,
                commit=False,
            )
            o = _reload(db, order_id)
            audit(db, actor_id, "Order", order_id, "STATUS", before=before, after=_snapshot(o))
            db.commit()
        except Exception:
            db.rollback()
            raise
        return o

    current = OrderStatus(before["status"])
    values: dict = {"status": target}
    if target is OrderStatus.DRAFT:
        subtotal = db.execute(select(Order.subtotal).where(Order.id == order_id)).scalar_one()
        amounts = compute_amounts(subtotal)
        values.update(
            expected_subtotal=subtotal,
            discount=amounts.discount, tax=amounts.tax, total=amounts.total,
            payment_method=None, cash_received=None, change_amount=None, paid_at=None,
        )
    try:
        lifecycle.guarded_update(db, order_id, expected=current, action=f"set status {target.value} on", **values)
        o = _reload(db, order_id)
        audit(db, actor_id, "Order", order_id, "STATUS", before=before, after=_snapshot(o))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("order status patched: %s %s -> %s by %s", order_id, current.value, target.value, actor_id)
    return o


def delete_order(db: Session, order_id: str, actor_id: str | None) -> None:
    """Hard delete of an order and its items regardless of status."""
    try:
        o = _reload(db, order_id)
        before = {**_snapshot(o), "order_number": o.order_number}
        db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        result = db.execute(
            delete(Order).where(Order.id == order_id).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("order not found")
        db.expunge(o)
        audit(db, actor_id, "Order", order_id, "DELETE", before=before)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("order deleted: %s by %s", order_id, actor_id)
