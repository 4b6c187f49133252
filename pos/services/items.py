from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pos.errors import InvalidItemError


@dataclass
class ItemLine:
    product_id: str
    qty: int


def _field(item: Any, name: str):
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def sanitize_items(items: Iterable[Any]) -> list[ItemLine]:
    """
    Merge requested lines by product_id, summing quantities.

    Accepts mappings or objects with product_id/qty attributes (request schemas).
    """
    if items is None:
        raise InvalidItemError("order must contain at least one item")

    merged: dict[str, ItemLine] = {}
    for item in items:
        product_id = _field(item, "product_id")
        qty = _field(item, "qty")
        if not isinstance(product_id, str) or not product_id.strip():
            raise InvalidItemError("invalid item: product_id is required")
        # bool is an int subclass; True is not a quantity
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidItemError(f"invalid item: qty must be a positive integer ({product_id})")

        product_id = product_id.strip()
        if product_id in merged:
            merged[product_id].qty += qty
        else:
            merged[product_id] = ItemLine(product_id=product_id, qty=qty)

    if not merged:
        raise InvalidItemError("order must contain at least one item")
    return list(merged.values())
