"""Read-only aggregations over settled (PAID) orders."""
from collections import defaultdict
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos.models.core import Order, OrderItem, OrderStatus
from pos.services.billing import ZERO
from pos.util.dates import window_clauses


def _paid_in_window(period, start, end, now=None) -> list:
    return [Order.status == OrderStatus.PAID, *window_clauses(Order.created_at, period, start, end, now=now)]


def paid_orders(db: Session, period: str = "7days", start: datetime | None = None,
                end: datetime | None = None, *, now: datetime | None = None) -> list[dict]:
    """PAID orders in the window, newest first, each with its item lines."""
    orders = db.execute(
        select(Order).where(*_paid_in_window(period, start, end, now)).order_by(Order.created_at.desc())
    ).scalars().all()
    if not orders:
        return []

    lines: dict[str, list[dict]] = defaultdict(list)
    rows = db.execute(
        select(OrderItem).where(OrderItem.order_id.in_([o.id for o in orders])).order_by(OrderItem.product_name)
    ).scalars().all()
    for it in rows:
        lines[it.order_id].append({
            "product_name": it.product_name,
            "quantity": it.qty,
            "price": float(it.price),
            "subtotal": float(it.subtotal),
        })

    return [
        {
            "id": o.id,
            "order_number": o.order_number,
            "customer_name": o.customer_name,
            "table_number": o.table_number,
            "status": o.status.value,
            "payment_method": o.payment_method.value if o.payment_method else None,
            "total": float(o.total),
            "created_at": o.created_at,
            "paid_at": o.paid_at,
            "items": lines.get(o.id, []),
        }
        for o in orders
    ]


def revenue_summary(db: Session, period: str = "7days", start: datetime | None = None,
                    end: datetime | None = None, *, now: datetime | None = None) -> dict:
    row = db.execute(
        select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.subtotal), 0),
            func.coalesce(func.sum(Order.discount), 0),
            func.coalesce(func.sum(Order.tax), 0),
            func.coalesce(func.sum(Order.total), 0),
        ).where(*_paid_in_window(period, start, end, now))
    ).one()
    count, subtotal, discount, tax, total = row
    return {
        "orders_count": int(count or 0),
        "subtotal": float(subtotal or ZERO),
        "discount": float(discount or ZERO),
        "tax": float(tax or ZERO),
        "total": float(total or ZERO),
    }


def top_products(db: Session, period: str = "7days", start: datetime | None = None,
                 end: datetime | None = None, limit: int = 5, *, now: datetime | None = None) -> list[dict]:
    """Best sellers by quantity, grouped by product id across name snapshots."""
    qty = func.sum(OrderItem.qty).label("qty")
    rows = db.execute(
        select(
            OrderItem.product_id,
            func.max(OrderItem.product_name).label("product_name"),
            qty,
            func.sum(OrderItem.subtotal).label("revenue"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(*_paid_in_window(period, start, end, now))
        .group_by(OrderItem.product_id)
        .order_by(qty.desc(), OrderItem.product_id)
        .limit(max(1, min(limit, 100)))
    ).all()
    return [
        {
            "product_id": r.product_id,
            "product_name": r.product_name,
            "qty": int(r.qty),
            "revenue": float(r.revenue),
        }
        for r in rows
    ]
