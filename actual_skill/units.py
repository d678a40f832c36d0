"""Currency and date normalization.

The ledger stores money as integer minor units (cents); tools speak
decimal amounts. Dates are ISO ``YYYY-MM-DD`` strings and months are
``YYYY-MM``.
"""

from __future__ import annotations

import datetime
import re
from decimal import ROUND_HALF_EVEN, Decimal

from actual_skill.errors import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


# ---------------------------------------------------------------------------
# Currency
# ---------------------------------------------------------------------------

def to_minor(value: float | int | Decimal) -> int:
    """Decimal amount -> minor units, rounding half to even.

    Goes through ``str`` so that 0.29 becomes 29, not 28.999...
    """
    return int((Decimal(str(value)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def from_minor(value: int) -> float:
    return value / 100


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def today() -> str:
    return datetime.date.today().isoformat()


def current_month() -> str:
    return datetime.date.today().strftime("%Y-%m")


def days_ago(n: int) -> str:
    # Elapsed-time subtraction, not calendar arithmetic.
    return (datetime.datetime.now() - datetime.timedelta(hours=24 * n)).date().isoformat()


def month_start() -> str:
    return datetime.date.today().replace(day=1).isoformat()


# ---------------------------------------------------------------------------
# Format checks
# ---------------------------------------------------------------------------

def validate_date(val: str) -> str:
    if not _DATE_RE.match(val):
        raise ValidationError(f"Invalid date: {val}. Expected YYYY-MM-DD")
    try:
        datetime.date.fromisoformat(val)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {val}. {e}") from e
    return val


def validate_month(val: str) -> str:
    if not _MONTH_RE.match(val) or not 1 <= int(val[5:]) <= 12:
        raise ValidationError(f"Invalid month: {val}. Expected YYYY-MM")
    return val
