"""Display formatting shared by the PDF and email renderers."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal


def format_inr(amount) -> str:
    """Two-decimal amount with Indian digit grouping: 1234567.891 -> '12,34,567.89'."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer, fraction = f"{abs(value):.2f}".split(".")

    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer = ",".join(groups + [tail])

    return f"{sign}{integer}.{fraction}"


def parse_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value) -> str:
    """'2024-01-05' -> '05 Jan 2024'. Unparseable input is returned unchanged."""
    parsed = parse_date(value)
    if parsed is None:
        return "" if value is None else str(value)
    return parsed.strftime("%d %b %Y")
