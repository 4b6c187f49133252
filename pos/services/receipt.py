"""
Thermal receipt rendering.

The printer app polls /print/receipt/{id} and prints each directive as one
line: {type, content, bold, align, format}. align is 0 left, 1 center,
2 right; format 0 normal, 1 double height, 2 double size.
"""
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from zoneinfo import ZoneInfo

from pos.config import settings

WIDTH = 32
NAME_WIDTH = 16
RULE = "-" * 30

LEFT, CENTER, RIGHT = 0, 1, 2
_UNPRINTABLE = re.compile(r"[^\x20-\x7E]")

TYPE_LABELS = {"dine_in": "Dine In", "takeaway": "Takeaway"}


def sanitize_text(text, max_len: int = WIDTH) -> str:
    """Printable ASCII only, single line, clipped to the paper width."""
    if not isinstance(text, str):
        return ""
    text = re.sub(r"[\n\r\t]", " ", text)
    return _UNPRINTABLE.sub("", text).strip()[:max_len]


def format_rupiah(amount) -> str:
    n = Decimal(str(amount or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"Rp {n}"


def format_timestamp(dt: datetime | None) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo(settings.TZ)).strftime("%d/%m/%Y %H:%M")


def line(content: str, *, bold: bool = False, align: int = LEFT, fmt: int = 0) -> dict:
    return {"type": 0, "content": content, "bold": int(bold), "align": align, "format": fmt}


def error_receipt(message: str) -> list[dict]:
    return [line(message, bold=True, align=CENTER)]


def render_receipt(order, items: list[dict]) -> list[dict]:
    """
    Build print directives for an order.

    `order` is an Order model; `items` are dicts with product_name, qty and
    subtotal (see services.orders.order_items).
    """
    out = [line(settings.RESTAURANT_NAME, bold=True, align=CENTER, fmt=2)]
    for addr in filter(None, (a.strip() for a in settings.RESTAURANT_ADDRESS.split("|"))):
        out.append(line(sanitize_text(addr), align=CENTER))
    out.append(line(RULE))

    out.append(line(f"Order : {order.order_number}"))
    if order.customer_name and order.customer_name != "-":
        out.append(line(f"Pelanggan : {sanitize_text(order.customer_name)}"))
    if order.table_number:
        out.append(line(f"Meja : {sanitize_text(order.table_number)}"))
    type_order = getattr(order.type_order, "value", order.type_order)
    out.append(line(f"Tipe : {TYPE_LABELS.get(type_order, type_order)}"))
    out.append(line(format_timestamp(order.created_at)))
    out.append(line(RULE))

    if not items:
        out.append(line("BELUM ADA ITEM", bold=True, align=CENTER))
    for it in items:
        name = sanitize_text(it["product_name"], NAME_WIDTH).ljust(NAME_WIDTH)
        qty = f"{it['qty']}x".rjust(4)
        out.append(line(f"{name}{qty} {format_rupiah(it['subtotal'])}"))

    out.append(line(RULE))
    out.append(line(f"Subtotal {format_rupiah(order.subtotal)}", align=RIGHT))
    if order.discount and order.discount > 0:
        out.append(line(f"Diskon {format_rupiah(order.discount)}", align=RIGHT))
    if order.tax and order.tax > 0:
        out.append(line(f"Pajak {format_rupiah(order.tax)}", align=RIGHT))
    out.append(line(f"TOTAL {format_rupiah(order.total)}", bold=True, align=RIGHT, fmt=1))

    method = getattr(order.payment_method, "value", order.payment_method)
    out.append(line(f"Metode: {method or '-'}"))
    if order.cash_received is not None:
        out.append(line(f"Tunai {format_rupiah(order.cash_received)}", align=RIGHT))
        out.append(line(f"Kembali {format_rupiah(order.change_amount)}", align=RIGHT))

    out.append(line(settings.RECEIPT_FOOTER, bold=True, align=CENTER))
    out.append(line(" "))
    return out
