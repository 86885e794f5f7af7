"""
Keyword heuristics that turn a plain-English audience description into rules.

The first matching branch wins. ``N`` is the first integer in the text and
falls back to a per-branch default when absent or zero.
"""

import re

from crm.segments.schemas import Rule, RuleGroup, RuleOperator

_NUMBER = re.compile(r"(\d+)")


def _first_number(text: str) -> int | None:
    match = _NUMBER.search(text)
    return int(match.group(1)) if match else None


def parse_segment_description(description: str) -> RuleGroup:
    text = description.lower()
    number = _first_number(text)

    def rule(field: str, op: RuleOperator, value: int | float | str) -> RuleGroup:
        return RuleGroup(and_=[Rule(field=field, op=op, value=value)])

    if "spend" in text and "more than" in text:
        return rule("spend", RuleOperator.GT, number or 200)
    if "spend" in text and "less than" in text:
        return rule("spend", RuleOperator.LT, number or 100)
    if "spend" in text and "at least" in text:
        return rule("spend", RuleOperator.GTE, number or 500)
    if "high value" in text or "high-value" in text:
        return rule("spend", RuleOperator.GTE, 1000)
    if "inactive" in text or "not active" in text:
        return rule("last_active", RuleOperator.LT, "2024-01-01")
    if "frequent" in text or "regular" in text:
        return rule("visits", RuleOperator.GTE, 10)
    if "new" in text or "recent" in text:
        return rule("created_at", RuleOperator.GTE, "2024-01-01")
    if "visit" in text and "more than" in text:
        return rule("visits", RuleOperator.GT, number or 5)
    return rule("spend", RuleOperator.GTE, 0)
