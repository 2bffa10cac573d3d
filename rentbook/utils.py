"""
Shared helpers: timestamps, identifiers, amounts, month labels, currency.
"""

from __future__ import annotations

import calendar
import time
import uuid
from datetime import date, datetime, timezone
from typing import Optional


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return now_utc().isoformat()


def today() -> date:
    return date.today()


def today_iso() -> str:
    return today().isoformat()


def current_month(ref: Optional[date] = None) -> str:
    """Return the ``YYYY-MM`` string for *ref* (default: today)."""
    if ref is None:
        ref = today()
    return ref.strftime("%Y-%m")


def parse_date(d: str) -> date:
    """Parse the date part of an ISO date or datetime string."""
    return date.fromisoformat(d[:10])


def month_label(year: int, month: int) -> str:
    """``(2026, 1)`` -> ``"Jan 2026"``."""
    return f"{calendar.month_abbr[month]} {year}"


def shift_month(ref: date, months: int) -> tuple[int, int]:
    """Return (year, month) *months* away from *ref* (negative = back)."""
    index = ref.year * 12 + (ref.month - 1) + months
    return index // 12, index % 12 + 1


# ---------------------------------------------------------------------------
# Identifiers & amounts
# ---------------------------------------------------------------------------

def gen_id(prefix: str) -> str:
    """Generate a unique ID with prefix, e.g. ``prop_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def generate_receipt_number() -> str:
    """``RCP`` followed by the last six digits of the epoch milliseconds."""
    millis = str(int(time.time() * 1000))
    return f"RCP{millis[-6:]}"


def round_amount(amount: float) -> float:
    return round(float(amount), 2)


def format_currency(amount: float, currency: str = "UGX") -> str:
    """Format amount with its currency code. UGX has no minor unit."""
    symbols = {"USD": "$", "EUR": "€", "GBP": "£"}
    if currency in symbols:
        return f"{symbols[currency]}{amount:,.2f}"
    if currency == "UGX":
        return f"UGX {amount:,.0f}"
    return f"{currency} {amount:,.2f}"
