from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from uuid import UUID

from pos.db import get_db
from pos.deps import Principal, admin_only, staff
from pos.schemas.orders import (
    OrderIn, OrderOut, OrderPage, PaymentIn, PublicOrderOut, StatusPatchIn,
)
from pos.services import orders as order_svc
from pos.services.payments import settle_order

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=OrderPage)
def list_orders(
    page: int = 1,
    size: int = 10,
    search: str | None = None,
    customer: str | None = None,
    table: str | None = None,
    status: str | None = None,
    date_range: str = "all",
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    who: Principal = Depends(staff),
):
    """
    List orders (paged), most recently updated first.

    Query params:
      - search:     substring of order number, customer or table
      - customer / table: substring filters on one column
      - status:     DRAFT | PAID | CANCELED
      - date_range: today | yesterday | 7days | 30days | all (by created_at)
      - start, end: explicit window, overrides date_range
      - page:       1-based page index
      - size:       page size, clamped to 1..100
    """
    rows, total, page, size = order_svc.list_orders(
        db, search=search, customer=customer, table=table, status=status,
        date_range=date_range, start=start, end=end, page=page, size=size,
    )
    return OrderPage(items=[OrderOut.from_model(o) for o in rows], total=total, page=page, size=size)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(body: OrderIn, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    o = order_svc.create_order(db, body, cashier_id=who.id)
    return OrderOut.from_model(o, order_svc.order_items(db, o.id))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: UUID, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    o, items = order_svc.get_order(db, str(order_id))
    return OrderOut.from_model(o, items)


@router.put("/{order_id}", response_model=OrderOut)
def edit_order(order_id: UUID, body: OrderIn, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    o = order_svc.replace_items(db, str(order_id), body, cashier_id=who.id)
    return OrderOut.from_model(o, order_svc.order_items(db, o.id))


@router.post("/{order_id}/pay", response_model=OrderOut)
def pay(order_id: UUID, body: PaymentIn, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    settle_order(
        db, str(order_id),
        payment_method=body.payment_method,
        discount=body.discount,
        include_tax=body.include_tax,
        cash_received=body.cash_received,
        actor_id=who.id,
    )
    o, items = order_svc.get_order(db, str(order_id))
    return OrderOut.from_model(o, items)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel(order_id: UUID, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    o = order_svc.cancel_order(db, str(order_id), actor_id=who.id)
    return OrderOut.from_model(o, order_svc.order_items(db, o.id))


@router.patch("/{order_id}/status", response_model=OrderOut)
def patch_status(order_id: UUID, body: StatusPatchIn, db: Session = Depends(get_db), who: Principal = Depends(staff)):
    o = order_svc.patch_status(db, str(order_id), body, actor_id=who.id)
    return OrderOut.from_model(o, order_svc.order_items(db, o.id))


@router.get("/{order_id}/public", response_model=PublicOrderOut)
def public_receipt(order_id: UUID, db: Session = Depends(get_db)):
    """Receipt data for a PAID order; no login (linked from the printed QR)."""
    o, items = order_svc.get_paid_receipt(db, str(order_id))
    return PublicOrderOut(
        **OrderOut.from_model(o).model_dump(include=set(PublicOrderOut.model_fields) - {"items"}),
        items=items,
    )


@router.delete("/{order_id}")
def delete_order(order_id: UUID, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    order_svc.delete_order(db, str(order_id), actor_id=who.id)
    return {"success": True, "id": str(order_id)}
