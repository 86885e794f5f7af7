"""
Order line item editing.

Every helper returns a new list; callers recompute the order amount with
``calculate_order_amount`` after any edit.
"""

from collections.abc import Sequence
from typing import Any

from crm.orders.schemas import OrderItem

BLANK_ITEM = OrderItem(sku="", name="", qty=1, price=0.0)


def calculate_order_amount(items: Sequence[OrderItem]) -> float:
    """Sum of quantity times price, rounded to cents."""
    return round(sum(item.qty * item.price for item in items), 2)


def update_item(items: Sequence[OrderItem], index: int, **changes: Any) -> list[OrderItem]:
    """Replace fields on the item at ``index``.

    Raises:
        IndexError: If ``index`` is out of range.
    """
    if not 0 <= index < len(items):
        raise IndexError(f"Order item {index} does not exist")
    updated = list(items)
    fields = {key: value for key, value in changes.items() if value is not None}
    updated[index] = items[index].model_copy(update=fields)
    return updated


def add_item(items: Sequence[OrderItem], item: OrderItem | None = None) -> list[OrderItem]:
    return [*items, (item or BLANK_ITEM).model_copy()]


def remove_item(items: Sequence[OrderItem], index: int) -> list[OrderItem]:
    """Drop the item at ``index``; an order always keeps at least one item.

    Raises:
        IndexError: If ``index`` is out of range.
        ValueError: If it is the only item.
    """
    if not 0 <= index < len(items):
        raise IndexError(f"Order item {index} does not exist")
    if len(items) <= 1:
        raise ValueError("Order must have at least one item")
    return [item for position, item in enumerate(items) if position != index]
