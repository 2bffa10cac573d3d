"""
Report Generator -- time-bucketed revenue, expense and profitability series,
expense-by-category, arrears and occupancy over a Snapshot.

Months are matched by ``YYYY-MM`` prefix, quarters by explicit year and
month-number range, years by ``YYYY`` prefix.

Usage:
    reports = ReportGenerator(book.snapshot())
    full = reports.generate(2026)
    print(full.revenue.yearly[0].amount)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Iterable, Optional

from rentbook.dashboard import occupancy_rate
from rentbook.models import AgreementStatus, ExpenseCategory, Snapshot
from rentbook.utils import month_label, round_amount, shift_month
from rentbook.utils import today as _today

logger = logging.getLogger("reports")

PERIODS = ("monthly", "quarterly", "yearly")


# ===================================================================
# Result types
# ===================================================================


@dataclass
class Bucket:
    label: str
    amount: float = 0.0


@dataclass
class PeriodSeries:
    """Parallel monthly (12), quarterly (4) and yearly (1) buckets."""
    monthly: list[Bucket] = field(default_factory=list)
    quarterly: list[Bucket] = field(default_factory=list)
    yearly: list[Bucket] = field(default_factory=list)

    def period(self, name: str) -> list[Bucket]:
        if name not in PERIODS:
            raise ValueError(f"Unknown period: {name!r}. Valid: {', '.join(PERIODS)}")
        return getattr(self, name)


@dataclass
class ProfitRow:
    label: str
    revenue: float
    expenses: float
    profit: float


@dataclass
class ProfitSeries:
    monthly: list[ProfitRow] = field(default_factory=list)
    quarterly: list[ProfitRow] = field(default_factory=list)
    yearly: list[ProfitRow] = field(default_factory=list)

    def period(self, name: str) -> list[ProfitRow]:
        if name not in PERIODS:
            raise ValueError(f"Unknown period: {name!r}. Valid: {', '.join(PERIODS)}")
        return getattr(self, name)


@dataclass
class TenantArrears:
    tenant_name: str
    amount: float
    property_name: str


@dataclass
class PropertyArrears:
    property_name: str
    amount: float


@dataclass
class ArrearsReport:
    total: float = 0.0
    by_tenant: list[TenantArrears] = field(default_factory=list)
    by_property: list[PropertyArrears] = field(default_factory=list)


@dataclass
class PropertyOccupancy:
    property_name: str
    status: str
    tenant: Optional[str] = None


@dataclass
class OccupancyPoint:
    month: str
    rate: float


@dataclass
class OccupancyReport:
    current: float = 0.0
    by_property: list[PropertyOccupancy] = field(default_factory=list)
    trends: list[OccupancyPoint] = field(default_factory=list)


@dataclass
class FullReport:
    year: str
    revenue: PeriodSeries
    expenses: PeriodSeries
    expenses_by_category: list[Bucket]
    profitability: ProfitSeries
    arrears: ArrearsReport
    occupancy: OccupancyReport

    def to_dict(self) -> dict:
        return asdict(self)


# ===================================================================
# Bucketing helpers
# ===================================================================


def _year_month(iso_date: str) -> tuple[int, int]:
    """``"2026-03-14"`` -> (2026, 3); unparseable -> (0, 0)."""
    parts = iso_date.split("-")
    try:
        return int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        return 0, 0


def bucket_series(dated: Iterable[tuple[str, float]], year: int | str) -> PeriodSeries:
    """Sum ``(iso_date, amount)`` pairs into monthly/quarterly/yearly buckets."""
    year_str = str(year)
    year_int = int(year_str)
    rows = list(dated)
    series = PeriodSeries()

    for month in range(1, 13):
        prefix = f"{year_str}-{month:02d}"
        amount = sum(a for d, a in rows if d.startswith(prefix))
        series.monthly.append(Bucket(month_label(year_int, month), round_amount(amount)))

    for quarter in range(1, 5):
        start_month = (quarter - 1) * 3 + 1
        end_month = quarter * 3
        amount = 0.0
        for d, a in rows:
            y, m = _year_month(d)
            if y == year_int and start_month <= m <= end_month:
                amount += a
        series.quarterly.append(Bucket(f"Q{quarter} {year_str}", round_amount(amount)))

    amount = sum(a for d, a in rows if d.startswith(year_str))
    series.yearly.append(Bucket(year_str, round_amount(amount)))
    return series


def _zip_profit(revenue: list[Bucket], expenses: list[Bucket]) -> list[ProfitRow]:
    rows = []
    for index, rev in enumerate(revenue):
        spent = expenses[index].amount if index < len(expenses) else 0.0
        rows.append(ProfitRow(
            label=rev.label,
            revenue=rev.amount,
            expenses=spent,
            profit=round_amount(rev.amount - spent),
        ))
    return rows


# ===================================================================
# ReportGenerator
# ===================================================================


class ReportGenerator:
    """Read-only report computations over one snapshot."""

    def __init__(self, snapshot: Snapshot, trend_months: int = 12) -> None:
        self.snapshot = snapshot
        self.trend_months = trend_months

    # ------------------------------------------------------------------
    # Revenue / expenses / profitability
    # ------------------------------------------------------------------

    def revenue(self, year: int | str) -> PeriodSeries:
        return bucket_series(
            ((p.payment_date, p.amount) for p in self.snapshot.payments), year,
        )

    def expenses(self, year: int | str) -> PeriodSeries:
        return bucket_series(
            ((e.date, e.amount) for e in self.snapshot.expenses), year,
        )

    def expenses_by_category(self, year: int | str) -> list[Bucket]:
        """Yearly expense totals per category; empty categories are left out."""
        year_str = str(year)
        yearly = [e for e in self.snapshot.expenses if e.date.startswith(year_str)]
        result = []
        for category in ExpenseCategory:
            amount = round_amount(sum(e.amount for e in yearly if e.category == category))
            if amount > 0:
                result.append(Bucket(category.value, amount))
        return result

    def profitability(
        self,
        year: int | str,
        revenue: Optional[PeriodSeries] = None,
        expenses: Optional[PeriodSeries] = None,
    ) -> ProfitSeries:
        revenue = revenue or self.revenue(year)
        expenses = expenses or self.expenses(year)
        return ProfitSeries(
            monthly=_zip_profit(revenue.monthly, expenses.monthly),
            quarterly=_zip_profit(revenue.quarterly, expenses.quarterly),
            yearly=_zip_profit(revenue.yearly, expenses.yearly),
        )

    # ------------------------------------------------------------------
    # Arrears
    # ------------------------------------------------------------------

    def arrears(self) -> ArrearsReport:
        """Outstanding balances by tenant and by property.

        A tenant's ``property_name`` is that of the last invoice found with
        an outstanding balance, not a list of every property involved.
        Balances on invoices whose tenant no longer exists are pooled in one
        ``"Unknown Tenant"`` row, so the total matches the per-property sum.
        """
        snap = self.snapshot
        report = ArrearsReport()

        for tenant in snap.tenants:
            tenant_total = 0.0
            property_name = ""
            for invoice in snap.invoices:
                if invoice.tenant_id != tenant.id:
                    continue
                outstanding = snap.outstanding(invoice)
                if outstanding > 0:
                    tenant_total += outstanding
                    property_name = snap.property_name(invoice.property_id, unknown="Unknown")
            tenant_total = round_amount(tenant_total)
            if tenant_total > 0:
                report.by_tenant.append(TenantArrears(tenant.name, tenant_total, property_name))
                report.total += tenant_total

        # Invoices of deleted tenants
        known = {t.id for t in snap.tenants}
        orphan_total = 0.0
        orphan_property = ""
        for invoice in snap.invoices:
            if invoice.tenant_id in known:
                continue
            outstanding = snap.outstanding(invoice)
            if outstanding > 0:
                orphan_total += outstanding
                orphan_property = snap.property_name(invoice.property_id, unknown="Unknown")
        orphan_total = round_amount(orphan_total)
        if orphan_total > 0:
            report.by_tenant.append(
                TenantArrears("Unknown Tenant", orphan_total, orphan_property)
            )
            report.total += orphan_total

        by_property: dict[str, float] = {}
        for invoice in snap.invoices:
            outstanding = snap.outstanding(invoice)
            if outstanding > 0:
                name = snap.property_name(invoice.property_id, unknown="Unknown")
                by_property[name] = by_property.get(name, 0.0) + outstanding
        report.by_property = [
            PropertyArrears(name, round_amount(amount)) for name, amount in by_property.items()
        ]
        report.total = round_amount(report.total)
        return report

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def occupancy(self, today: Optional[date] = None) -> OccupancyReport:
        """Current occupancy, per-property status, and the trailing trend.

        No occupancy history is stored, so every trend point carries the
        current rate.
        """
        if today is None:
            today = _today()
        snap = self.snapshot
        current = occupancy_rate(snap)

        by_property = []
        for prop in snap.properties:
            agreement = next(
                (a for a in snap.agreements
                 if a.property_id == prop.id and a.status == AgreementStatus.ACTIVE),
                None,
            )
            tenant = None
            if agreement is not None:
                match = next((t for t in snap.tenants if t.id == agreement.tenant_id), None)
                tenant = match.name if match else None
            by_property.append(PropertyOccupancy(prop.display_name, prop.status.value, tenant))

        trends = []
        for offset in range(self.trend_months - 1, -1, -1):
            y, m = shift_month(today, -offset)
            trends.append(OccupancyPoint(month_label(y, m), current))

        return OccupancyReport(current=current, by_property=by_property, trends=trends)

    # ------------------------------------------------------------------
    # Everything
    # ------------------------------------------------------------------

    def generate(self, year: int | str, today: Optional[date] = None) -> FullReport:
        revenue = self.revenue(year)
        expenses = self.expenses(year)
        report = FullReport(
            year=str(year),
            revenue=revenue,
            expenses=expenses,
            expenses_by_category=self.expenses_by_category(year),
            profitability=self.profitability(year, revenue, expenses),
            arrears=self.arrears(),
            occupancy=self.occupancy(today),
        )
        logger.info(
            "Generated %s report: revenue %.2f, expenses %.2f, arrears %.2f",
            year, revenue.yearly[0].amount, expenses.yearly[0].amount, report.arrears.total,
        )
        return report
