"""
Invoice Status Resolver.

An invoice's status is a function of its total, the payments recorded
against it, and the date it is evaluated on:

    paid     total paid >= total amount
    partial  0 < total paid < total amount
    overdue  nothing paid and the due date has passed
    pending  nothing paid and the due date is today or later
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from rentbook.models import InvoiceStatus, Payment, RentInvoice
from rentbook.record_store import INVOICES_KEY, PAYMENTS_KEY, RecordStore
from rentbook.utils import parse_date, round_amount, today as _today

logger = logging.getLogger("invoice_status")


def load_payments(store: RecordStore) -> list[Payment]:
    """Stored payments, skipping records that no longer parse."""
    payments = []
    for raw in store.load(PAYMENTS_KEY):
        try:
            payments.append(Payment.from_dict(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s record %s: %s",
                           PAYMENTS_KEY, raw.get("id", "?"), exc)
    return payments


def total_paid(invoice_id: str, payments: Iterable[Payment]) -> float:
    """Sum of every payment recorded against *invoice_id*."""
    return round_amount(sum(p.amount for p in payments if p.invoice_id == invoice_id))


def resolve_status(
    invoice: RentInvoice,
    payments: Iterable[Payment],
    today: Optional[date] = None,
) -> InvoiceStatus:
    """Classify *invoice* from its payments as of *today*."""
    if today is None:
        today = _today()
    paid = total_paid(invoice.id, payments)
    if paid >= invoice.total_amount:
        return InvoiceStatus.PAID
    if paid > 0:
        return InvoiceStatus.PARTIAL
    if invoice.due_date:
        try:
            due = parse_date(invoice.due_date)
        except ValueError:
            logger.warning("Invoice %s has unreadable due date %r -- treating as pending",
                           invoice.id, invoice.due_date)
            return InvoiceStatus.PENDING
        if today > due:
            return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


class InvoiceStatusResolver:
    """Recompute and persist stored invoice statuses."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def _payments(self) -> list[Payment]:
        return load_payments(self.store)

    @staticmethod
    def _invoice(raw: dict) -> Optional[RentInvoice]:
        try:
            return RentInvoice.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s record %s: %s",
                           INVOICES_KEY, raw.get("id", "?"), exc)
            return None

    def refresh(self, invoice_id: str, today: Optional[date] = None) -> Optional[InvoiceStatus]:
        """Recompute one invoice's status and rewrite the invoice collection.

        Returns the new status, or None when the invoice does not exist.
        """
        invoices = self.store.load(INVOICES_KEY)
        target = next((r for r in invoices if r.get("id") == invoice_id), None)
        if target is None:
            logger.warning("Invoice %s not found -- status not updated", invoice_id)
            return None

        invoice = self._invoice(target)
        if invoice is None:
            return None
        status = resolve_status(invoice, self._payments(), today)
        previous = target.get("status")
        target["status"] = status.value
        self.store.save(INVOICES_KEY, invoices)

        if previous != status.value:
            logger.info("Invoice %s status %s -> %s", invoice_id, previous, status.value)
        return status

    def refresh_all(self, today: Optional[date] = None) -> dict[str, int]:
        """Recompute every stored status. Returns a count per status."""
        invoices = self.store.load(INVOICES_KEY)
        payments = self._payments()
        counts: dict[str, int] = {}
        for raw in invoices:
            invoice = self._invoice(raw)
            if invoice is None:
                continue
            status = resolve_status(invoice, payments, today)
            raw["status"] = status.value
            counts[status.value] = counts.get(status.value, 0) + 1
        self.store.save(INVOICES_KEY, invoices)
        logger.info("Refreshed %d invoice statuses: %s", len(invoices), counts)
        return counts
