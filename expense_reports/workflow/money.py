"""
Integer-cents money helper.

Amounts are typed as digit accumulation into cents: the user never enters a
decimal point, every keystroke shifts the value left. So "$12.34", "12.34"
and "1234" all mean 1234 cents. Values are clamped to [0, MAX_CENTS].

- parse_currency_input("$1,234.56") -> 123456
- parse_currency_input("")          -> 0
- format_cents(123456)              -> "$1,234.56"
"""

import re

from expense_reports.config import settings
from expense_reports.workflow.errors import ValidationError

MAX_CENTS = settings.MAX_AMOUNT_CENTS

_NON_DIGITS = re.compile(r"\D")


def parse_currency_input(text: str) -> int:
    """Strip everything but digits and read the rest as cents, clamped to the cap."""
    digits = _NON_DIGITS.sub("", text or "")
    if not digits:
        return 0
    return min(int(digits), MAX_CENTS)


def format_cents(amount_cents: int) -> str:
    """Render cents as a US dollar string with exactly two fractional digits."""
    sign = "-" if amount_cents < 0 else ""
    dollars, cents = divmod(abs(amount_cents), 100)
    return f"{sign}${dollars:,}.{cents:02d}"


def validate_amount_cents(amount_cents: int) -> int:
    """
    Check a stored or submitted amount.
    Unlike parse_currency_input this never clamps: out-of-range is an error.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError(f"Amount must be an integer number of cents, got {amount_cents!r}")
    if amount_cents < 0:
        raise ValidationError(f"Amount cannot be negative: {amount_cents}")
    if amount_cents > MAX_CENTS:
        raise ValidationError(
            f"Amount {format_cents(amount_cents)} exceeds the limit of {format_cents(MAX_CENTS)}"
        )
    return amount_cents
