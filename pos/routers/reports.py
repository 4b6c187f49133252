from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime

from pos.db import get_db
from pos.deps import Principal, admin_only
from pos.services import reports as report_svc

router = APIRouter(prefix="/admin/reports", tags=["reports"])


@router.get("/orders")
def paid_orders(
    period: str = "7days",
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    who: Principal = Depends(admin_only),
):
    """PAID orders with their lines; period is today | 7days | 30days | all | custom (start+end)."""
    return {"success": True, "data": report_svc.paid_orders(db, period, start, end)}


@router.get("/summary")
def summary(
    period: str = "7days",
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    who: Principal = Depends(admin_only),
):
    return {"success": True, "data": report_svc.revenue_summary(db, period, start, end)}


@router.get("/top-products")
def top_products(
    period: str = "7days",
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 5,
    db: Session = Depends(get_db),
    who: Principal = Depends(admin_only),
):
    return {"success": True, "data": report_svc.top_products(db, period, start, end, limit=limit)}
