"""
Order form validation.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from crm.orders.schemas import OrderItem
from crm.shared.exceptions import ValidationError


@dataclass
class ValidationResult:
    """Accumulates field errors; ``is_valid`` flips on the first one."""

    is_valid: bool = True
    _errors: list[dict[str, str]] = field(default_factory=list, repr=False)

    def add_error(self, field: str, message: str) -> None:
        self.is_valid = False
        self._errors.append({"field": field, "message": message})

    @property
    def errors(self) -> list[dict[str, str]]:
        return list(self._errors)

    @property
    def messages(self) -> list[str]:
        return [error["message"] for error in self._errors]

    def raise_if_invalid(self, message: str = "Order validation failed") -> None:
        if not self.is_valid:
            raise ValidationError(message, code="ORDER_VALIDATION_ERROR", errors=self.messages)


def validate_items(items: Sequence[OrderItem], result: ValidationResult | None = None) -> ValidationResult:
    """Check every line item; item numbers in messages are 1-based."""
    result = result or ValidationResult()
    if not items:
        result.add_error("items", "Please add at least one order item")
        return result

    for position, item in enumerate(items, start=1):
        prefix = f"items[{position - 1}]"
        if not item.name.strip():
            result.add_error(f"{prefix}.name", f"Item {position}: Product name is required")
        if not item.sku.strip():
            result.add_error(f"{prefix}.sku", f"Item {position}: SKU is required")
        if item.qty <= 0:
            result.add_error(f"{prefix}.qty", f"Item {position}: Quantity must be greater than 0")
        if item.price < 0:
            result.add_error(f"{prefix}.price", f"Item {position}: Price cannot be negative")
    return result


def validate_order(
    customer_id: UUID | None,
    date: datetime | None,
    items: Sequence[OrderItem],
) -> ValidationResult:
    result = ValidationResult()
    if customer_id is None:
        result.add_error("customer_id", "Please select a customer")
    if date is None:
        result.add_error("date", "Order date is required")
    return validate_items(items, result)
