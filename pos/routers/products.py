import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select, delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List

from pos.db import get_db
from pos.deps import Principal, admin_only, staff
from pos.errors import ConflictError, NotFoundError
from pos.models.core import Product, OrderItem
from pos.schemas.products import ProductIn, ProductOut, default_color
from pos.util.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])
admin_router = APIRouter(prefix="/admin/products", tags=["products"])


# ---------- helpers ----------

def _get_product(db: Session, product_id: str) -> Product:
    p = db.get(Product, product_id)
    if not p:
        raise NotFoundError("product not found")
    return p


def _ensure_name_free(db: Session, name: str, exclude_id: str | None = None):
    q = select(Product.id).where(Product.name == name)
    if exclude_id:
        q = q.where(Product.id != exclude_id)
    if db.execute(q).first():
        raise ConflictError(f"product name already exists: {name}")


def _commit_unique(db: Session, name: str):
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent insert/rename to the same name
        db.rollback()
        raise ConflictError(f"product name already exists: {name}")


# ---------- cashier view ----------

@router.get("/", response_model=List[ProductOut])
def list_active(db: Session = Depends(get_db), who: Principal = Depends(staff)):
    """Active products for the POS grid, grouped by category then name."""
    rows = db.execute(
        select(Product).where(Product.active.is_(True)).order_by(Product.category, Product.name)
    ).scalars().all()
    return rows


# ---------- admin ----------

@admin_router.get("/", response_model=List[ProductOut])
def list_all(db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    return db.execute(select(Product).order_by(Product.name)).scalars().all()


@admin_router.post("/", response_model=ProductOut, status_code=201)
def create_product(body: ProductIn, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    _ensure_name_free(db, body.name)
    p = Product(
        name=body.name,
        price=body.price,
        category=body.category,
        color=body.color or default_color(body.category),
        active=body.active,
    )
    db.add(p)
    _commit_unique(db, body.name)
    db.refresh(p)
    logger.info("product created by %s: %s", who.username, p.name)
    return p


@admin_router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, body: ProductIn, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    """Price changes never touch existing orders; their items carry a snapshot."""
    p = _get_product(db, product_id)
    _ensure_name_free(db, body.name, exclude_id=product_id)
    p.name = body.name
    p.price = body.price
    p.category = body.category
    # keep the current color unless one is sent
    if body.color:
        p.color = body.color
    p.active = body.active
    _commit_unique(db, body.name)
    db.refresh(p)
    logger.info("product updated by %s: %s", who.username, p.id)
    return p


@admin_router.post("/{product_id}/deactivate", response_model=ProductOut)
def deactivate_product(product_id: str, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    """Soft delete: hidden from the POS grid and from new orders."""
    p = _get_product(db, product_id)
    p.active = False
    db.commit()
    db.refresh(p)
    logger.info("product deactivated by %s: %s", who.username, p.id)
    return p


@admin_router.delete("/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db), who: Principal = Depends(admin_only)):
    """Hard delete, refused once any order line references the product."""
    p = _get_product(db, product_id)
    used = db.execute(select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)).first()
    if used:
        raise ConflictError("product is used by existing orders; deactivate it instead")

    audit(db, who.id, "Product", product_id, "DELETE", before={"name": p.name, "price": p.price})
    db.execute(delete(Product).where(Product.id == product_id))
    try:
        db.commit()
    except IntegrityError:
        # an order line referencing it was committed in the meantime
        db.rollback()
        raise ConflictError("product is used by existing orders; deactivate it instead")
    logger.info("product deleted by %s: %s", who.username, product_id)
    return {"success": True, "id": product_id}
