"""
Rule-group evaluation against customer records.

Fields are typed: ``spend`` and ``visits`` compare numerically,
``last_active`` and ``created_at`` compare as UTC datetimes, and the
remaining text fields compare case-insensitively. A customer whose field is
null never matches a rule on that field.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from crm.segments.schemas import Rule, RuleGroup, RuleOperator
from crm.shared.database import as_utc

NUMERIC_FIELDS = frozenset({"spend", "visits"})
DATE_FIELDS = frozenset({"last_active", "created_at"})
TEXT_FIELDS = frozenset({"name", "email", "phone"})
SUPPORTED_FIELDS = NUMERIC_FIELDS | DATE_FIELDS | TEXT_FIELDS


def parse_date_value(value: Any) -> datetime:
    """Parse a rule value such as ``2024-01-01`` into an aware datetime.

    Raises:
        ValueError: If the value is not an ISO date or datetime.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return as_utc(datetime(value.year, value.month, value.day))
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def _coerce(field: str, value: Any) -> Any:
    if field in NUMERIC_FIELDS:
        return float(value)
    if field in DATE_FIELDS:
        return parse_date_value(value)
    return str(value).lower()


def rule_errors(group: RuleGroup) -> list[str]:
    """Describe every rule that cannot be evaluated."""
    errors: list[str] = []
    for kind, rules in (("and", group.and_), ("or", group.or_)):
        for position, rule in enumerate(rules, start=1):
            label = f"{kind.upper()} rule {position}"
            if rule.field not in SUPPORTED_FIELDS:
                errors.append(f"{label}: unsupported field '{rule.field}'")
                continue
            if rule.op in (RuleOperator.CONTAINS, RuleOperator.NOT_CONTAINS):
                continue
            try:
                _coerce(rule.field, rule.value)
            except (TypeError, ValueError):
                errors.append(f"{label}: invalid value '{rule.value}' for field '{rule.field}'")
    return errors


def evaluate_rule(rule: Rule, customer: Any) -> bool:
    raw = getattr(customer, rule.field, None)
    if raw is None:
        return False

    if rule.op in (RuleOperator.CONTAINS, RuleOperator.NOT_CONTAINS):
        if isinstance(raw, datetime):
            raw = as_utc(raw).isoformat()
        found = str(rule.value).lower() in str(raw).lower()
        return found if rule.op is RuleOperator.CONTAINS else not found

    if rule.field in DATE_FIELDS:
        raw = as_utc(raw)
    actual = _coerce(rule.field, raw)
    expected = _coerce(rule.field, rule.value)

    if rule.op is RuleOperator.GT:
        return actual > expected
    if rule.op is RuleOperator.GTE:
        return actual >= expected
    if rule.op is RuleOperator.LT:
        return actual < expected
    if rule.op is RuleOperator.LTE:
        return actual <= expected
    if rule.op is RuleOperator.EQ:
        return actual == expected
    return actual != expected


def evaluate_rule_group(group: RuleGroup, customer: Any) -> bool:
    """An empty group matches every customer."""
    if not all(evaluate_rule(rule, customer) for rule in group.and_):
        return False
    if group.or_ and not any(evaluate_rule(rule, customer) for rule in group.or_):
        return False
    return True


def matching_customers(group: RuleGroup, customers: Iterable[Any]) -> list[Any]:
    return [customer for customer in customers if evaluate_rule_group(group, customer)]
