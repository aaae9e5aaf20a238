"""Indian-English amount-to-words conversion (crore / lakh grouping)."""

from decimal import ROUND_HALF_UP, Decimal

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

MAGNITUDES = [
    (10_000_000, "Crore"),
    (100_000, "Lakh"),
    (1_000, "Thousand"),
    (100, "Hundred"),
]


def number_to_words(number: int) -> str:
    """Spell out a whole number, e.g. 1234567 -> 'Twelve Lakh Thirty Four Thousand Five Hundred and Sixty Seven'."""
    if number == 0:
        return "Zero"
    if number < 0:
        return "Minus " + number_to_words(-number)

    parts = []
    remainder = number
    for size, name in MAGNITUDES:
        count, remainder = divmod(remainder, size)
        if count:
            parts.append(f"{number_to_words(count)} {name}")

    if remainder:
        if parts:
            parts.append("and")
        if remainder < 20:
            parts.append(ONES[remainder])
        else:
            tens, ones = divmod(remainder, 10)
            parts.append(TENS[tens])
            if ones:
                parts.append(ONES[ones])

    return " ".join(parts)


def amount_to_words(amount) -> str:
    """Rupees-and-paise wording used on invoices, always terminated by 'Only'."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value < 0:
        return "Minus " + amount_to_words(-value)

    rupees = int(value)
    paise = int((value - rupees) * 100)

    words = f"{number_to_words(rupees)} Rupees"
    if paise:
        words += f" and {number_to_words(paise)} Paise"
    return words + " Only"
