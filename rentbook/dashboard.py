"""
Dashboard Aggregator -- point-in-time KPIs over a Snapshot.

All functions are pure: they read the snapshot and the month they are told
is current, and write nothing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from rentbook.models import InvoiceStatus, PropertyStatus, Snapshot
from rentbook.utils import current_month as _current_month
from rentbook.utils import round_amount

ARREARS_STATUSES = (InvoiceStatus.OVERDUE, InvoiceStatus.PARTIAL)


@dataclass
class DashboardStats:
    total_properties: int = 0
    occupied_properties: int = 0
    vacant_properties: int = 0
    occupancy_rate: float = 0.0
    total_tenants: int = 0
    monthly_rent_due: float = 0.0
    monthly_rent_collected: float = 0.0
    rent_collection_rate: float = 0.0
    total_arrears: float = 0.0
    monthly_expenses: float = 0.0
    net_cash_flow: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Activity:
    """One line of the recent-activity feed."""
    id: str
    type: str                               # "payment" | "expense"
    description: str
    date: str
    amount: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


def occupancy_rate(snapshot: Snapshot) -> float:
    total = len(snapshot.properties)
    if total == 0:
        return 0.0
    occupied = sum(1 for p in snapshot.properties if p.status == PropertyStatus.OCCUPIED)
    return occupied / total * 100


def total_arrears(snapshot: Snapshot) -> float:
    """Outstanding balance over overdue and partially paid invoices only."""
    return round_amount(sum(
        snapshot.outstanding(inv)
        for inv in snapshot.invoices
        if inv.status in ARREARS_STATUSES
    ))


def compute_dashboard(snapshot: Snapshot, current_month: Optional[str] = None) -> DashboardStats:
    """KPIs for *current_month* (``YYYY-MM``, default: this month)."""
    if current_month is None:
        current_month = _current_month()

    total = len(snapshot.properties)
    occupied = sum(1 for p in snapshot.properties if p.status == PropertyStatus.OCCUPIED)

    due = round_amount(sum(
        inv.total_amount for inv in snapshot.invoices if inv.month == current_month
    ))
    collected = round_amount(sum(
        p.amount for p in snapshot.payments if p.payment_date.startswith(current_month)
    ))
    expenses = round_amount(sum(
        e.amount for e in snapshot.expenses if e.date.startswith(current_month)
    ))

    return DashboardStats(
        total_properties=total,
        occupied_properties=occupied,
        vacant_properties=total - occupied,
        occupancy_rate=occupancy_rate(snapshot),
        total_tenants=len(snapshot.tenants),
        monthly_rent_due=due,
        monthly_rent_collected=collected,
        rent_collection_rate=(collected / due * 100) if due > 0 else 0.0,
        total_arrears=total_arrears(snapshot),
        monthly_expenses=expenses,
        net_cash_flow=round_amount(collected - expenses),
    )


def recent_activity(snapshot: Snapshot, limit: int = 5) -> list[Activity]:
    """Latest payments and expenses, newest date first.

    Takes the last *limit* of each collection by insertion order, then sorts
    the merged set by date.
    """
    if limit <= 0:
        return []
    items = [
        Activity(
            id=p.id,
            type="payment",
            description=f"Payment received - {p.payment_mode.value}",
            date=p.payment_date,
            amount=p.amount,
        )
        for p in snapshot.payments[-limit:]
    ]
    items += [
        Activity(
            id=e.id,
            type="expense",
            description=f"{e.category.value} - {e.description}",
            date=e.date,
            amount=e.amount,
        )
        for e in snapshot.expenses[-limit:]
    ]
    items.sort(key=lambda a: a.date, reverse=True)
    return items[:limit]
