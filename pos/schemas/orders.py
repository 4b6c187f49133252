from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, Literal, List
from datetime import datetime
from decimal import Decimal

OrderTypeLiteral = Literal["dine_in", "takeaway"]
OrderStatusLiteral = Literal["DRAFT", "PAID", "CANCELED"]

class OrderItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    product_id: str
    qty: int

class OrderIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    type_order: OrderTypeLiteral = "dine_in"
    items: List[OrderItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _table_for_dine_in(self):
        table = (self.table_number or "").strip()
        self.table_number = table or None
        if self.type_order == "dine_in" and (not table or table == "-"):
            raise ValueError("table_number is required for dine_in orders")
        self.customer_name = (self.customer_name or "").strip() or "-"
        return self

class PaymentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    payment_method: str
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    include_tax: bool = False
    cash_received: Optional[Decimal] = Field(default=None, ge=0)

class StatusPatchIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    status: OrderStatusLiteral
    payment_method: Optional[str] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    include_tax: bool = True
    cash_received: Optional[Decimal] = Field(default=None, ge=0)

class OrderItemOut(BaseModel):
    product_id: str
    product_name: str
    price: float
    qty: int
    subtotal: float

class OrderOut(BaseModel):
    id: str
    order_number: str
    cashier_id: Optional[str] = None
    customer_name: str
    table_number: Optional[str] = None
    type_order: OrderTypeLiteral
    status: OrderStatusLiteral
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: Optional[str] = None
    cash_received: Optional[float] = None
    change_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    @classmethod
    def from_model(cls, o, items: list[dict] | None = None) -> "OrderOut":
        return cls(
            id=o.id,
            order_number=o.order_number,
            cashier_id=o.cashier_id,
            customer_name=o.customer_name,
            table_number=o.table_number,
            type_order=o.type_order.value,
            status=o.status.value,
            subtotal=o.subtotal,
            discount=o.discount,
            tax=o.tax,
            total=o.total,
            payment_method=o.payment_method.value if o.payment_method else None,
            cash_received=o.cash_received,
            change_amount=o.change_amount,
            created_at=o.created_at,
            updated_at=o.updated_at,
            paid_at=o.paid_at,
            items=[OrderItemOut(**it) for it in (items or [])],
        )

class OrderPage(BaseModel):
    items: List[OrderOut]
    total: int
    page: int
    size: int

class ReceiptItemOut(BaseModel):
    product_name: str
    qty: int
    subtotal: float

class PublicOrderOut(BaseModel):
    """Receipt view of a settled order; no staff identifiers."""
    id: str
    order_number: str
    customer_name: str
    table_number: Optional[str] = None
    type_order: OrderTypeLiteral
    status: OrderStatusLiteral
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: Optional[str] = None
    cash_received: Optional[float] = None
    change_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    items: List[ReceiptItemOut] = []
