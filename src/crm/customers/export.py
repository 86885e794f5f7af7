"""
CSV export of customer rows.
"""

import csv
import io
from collections.abc import Iterable
from datetime import date

from crm.customers.models import Customer
from crm.customers.spend import get_spend_tier
from crm.shared.listing import format_number

EXPORT_HEADERS = ["Name", "Email", "Phone", "Spend", "Tier", "Visits", "Last Active", "ID"]


def export_filename(prefix: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.csv"


def customers_to_csv(customers: Iterable[Customer]) -> str:
    """Render customers as CSV; the header is bare and every value is quoted."""
    buffer = io.StringIO()
    buffer.write(",".join(EXPORT_HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for customer in customers:
        last_active = customer.last_active
        writer.writerow(
            [
                customer.name,
                customer.email,
                customer.phone or "",
                format_number(customer.spend or 0),
                get_spend_tier(customer.spend or 0).value,
                customer.visits or 0,
                f"{last_active.month}/{last_active.day}/{last_active.year}" if last_active else "",
                str(customer.id),
            ]
        )
    return buffer.getvalue()
