"""
Entity Repositories -- create/read (and, for properties and tenants,
update/delete) over the Record Store.

Every mutating call reads the whole collection, changes it, and writes it
back. Records are replaced, never edited in place.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Any, Optional

from rentbook.invoice_status import (
    InvoiceStatusResolver,
    load_payments,
    resolve_status,
    total_paid,
)
from rentbook.models import (
    AgreementStatus,
    Expense,
    ExpenseCategory,
    MaintenanceRecord,
    MaintenanceStatus,
    Payment,
    Property,
    PropertyStatus,
    RentInvoice,
    TenancyAgreement,
    Tenant,
)
from rentbook.record_store import (
    AGREEMENTS_KEY,
    EXPENSES_KEY,
    INVOICES_KEY,
    MAINTENANCE_KEY,
    PAYMENTS_KEY,
    PROPERTIES_KEY,
    TENANTS_KEY,
    RecordStore,
)
from rentbook.utils import gen_id, now_iso

logger = logging.getLogger("repositories")

_STAMP_FIELDS = ("id", "created_at", "updated_at")


class Repository:
    """Append-only repository for one record type."""

    key: str = ""
    model: Any = None
    id_prefix: str = "rec"
    stamps_updated_at: bool = False

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> list:
        records = []
        for raw in self.store.load(self.key):
            try:
                records.append(self.model.from_dict(raw))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s record %s: %s",
                               self.key, raw.get("id", "?"), exc)
        return records

    def _save(self, records: list) -> None:
        self.store.save(self.key, [r.to_dict() for r in records])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list:
        """The full collection in insertion order."""
        return self._load()

    def get(self, record_id: str):
        return next((r for r in self._load() if r.id == record_id), None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, **fields: Any):
        """Stamp identity and timestamps, append, persist, return the record."""
        records = self._load()
        taken = {r.id for r in records}
        new_id = gen_id(self.id_prefix)
        while new_id in taken:
            new_id = gen_id(self.id_prefix)

        now = now_iso()
        data = {k: v for k, v in fields.items() if k not in _STAMP_FIELDS}
        data["id"] = new_id
        data["created_at"] = now
        if self.stamps_updated_at:
            data["updated_at"] = now

        record = self.model(**data)
        records.append(record)
        self._save(records)
        logger.info("Added %s %s", self.model.__name__, record.id)
        return record


class MutableRepository(Repository):
    """Repository that also supports update and delete."""

    stamps_updated_at = True

    def update(self, record_id: str, **changes: Any):
        """Merge *changes* into the record. Returns None if the id is unknown."""
        records = self._load()
        index = next((i for i, r in enumerate(records) if r.id == record_id), None)
        if index is None:
            return None

        known = {f.name for f in dataclasses.fields(self.model)}
        clean: dict[str, Any] = {}
        for key, value in changes.items():
            if key in _STAMP_FIELDS:
                continue
            if key not in known:
                logger.warning("Ignoring unknown %s field '%s'", self.model.__name__, key)
                continue
            clean[key] = value

        updated = dataclasses.replace(records[index], **clean, updated_at=now_iso())
        records[index] = updated
        self._save(records)
        logger.info("Updated %s %s: %s", self.model.__name__, record_id, sorted(clean))
        return updated

    def delete(self, record_id: str) -> bool:
        """Remove the record. Returns False if the id is unknown."""
        records = self._load()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self._save(remaining)
        logger.info("Deleted %s %s", self.model.__name__, record_id)
        return True


# ===================================================================
# Concrete repositories
# ===================================================================


class PropertyRepository(MutableRepository):
    key = PROPERTIES_KEY
    model = Property
    id_prefix = "prop"

    def occupied(self) -> list[Property]:
        return [p for p in self._load() if p.status == PropertyStatus.OCCUPIED]

    def vacant(self) -> list[Property]:
        return [p for p in self._load() if p.status == PropertyStatus.VACANT]


class TenantRepository(MutableRepository):
    key = TENANTS_KEY
    model = Tenant
    id_prefix = "ten"


class AgreementRepository(Repository):
    key = AGREEMENTS_KEY
    model = TenancyAgreement
    id_prefix = "agr"
    stamps_updated_at = True

    def for_tenant(self, tenant_id: str) -> list[TenancyAgreement]:
        return [a for a in self._load() if a.tenant_id == tenant_id]

    def active(self) -> list[TenancyAgreement]:
        return [a for a in self._load() if a.status == AgreementStatus.ACTIVE]

    def active_for_property(self, property_id: str) -> Optional[TenancyAgreement]:
        """First active agreement on the property, by linear scan."""
        return next(
            (a for a in self._load()
             if a.property_id == property_id and a.status == AgreementStatus.ACTIVE),
            None,
        )

    def find_for(self, tenant_id: str, property_id: str) -> Optional[TenancyAgreement]:
        """First agreement of any status between this tenant and property."""
        return next(
            (a for a in self._load()
             if a.tenant_id == tenant_id and a.property_id == property_id),
            None,
        )


class InvoiceRepository(Repository):
    """Invoices are read with their status derived from current payments."""

    key = INVOICES_KEY
    model = RentInvoice
    id_prefix = "inv"

    def stored(self) -> list[RentInvoice]:
        """Invoices exactly as persisted, including any stale status."""
        return self._load()

    def get_all(self, as_of: Optional[date] = None) -> list[RentInvoice]:
        payments = load_payments(self.store)
        invoices = self._load()
        for invoice in invoices:
            invoice.status = resolve_status(invoice, payments, as_of)
        return invoices

    def get(self, record_id: str, as_of: Optional[date] = None) -> Optional[RentInvoice]:
        return next((i for i in self.get_all(as_of) if i.id == record_id), None)


class PaymentRepository(Repository):
    """Append-only payments. Adding one refreshes its invoice's status."""

    key = PAYMENTS_KEY
    model = Payment
    id_prefix = "pay"

    def __init__(
        self,
        store: RecordStore,
        resolver: Optional[InvoiceStatusResolver] = None,
    ) -> None:
        super().__init__(store)
        self.resolver = resolver or InvoiceStatusResolver(store)

    def add(self, **fields: Any) -> Payment:
        payment = super().add(**fields)
        self.resolver.refresh(payment.invoice_id)
        return payment

    def for_invoice(self, invoice_id: str) -> list[Payment]:
        return [p for p in self._load() if p.invoice_id == invoice_id]

    def total_paid(self, invoice_id: str) -> float:
        return total_paid(invoice_id, self._load())


class ExpenseRepository(Repository):
    key = EXPENSES_KEY
    model = Expense
    id_prefix = "exp"

    def filter(
        self,
        category: Optional[ExpenseCategory | str] = None,
        property_id: Optional[str] = None,
    ) -> list[Expense]:
        """Expenses matching every given criterion."""
        if isinstance(category, str):
            category = ExpenseCategory.from_string(category)
        results = []
        for expense in self._load():
            if category is not None and expense.category != category:
                continue
            if property_id is not None and expense.property_id != property_id:
                continue
            results.append(expense)
        return results


class MaintenanceRepository(Repository):
    key = MAINTENANCE_KEY
    model = MaintenanceRecord
    id_prefix = "mnt"

    def for_property(self, property_id: str) -> list[MaintenanceRecord]:
        return [m for m in self._load() if m.property_id == property_id]

    def pending(self) -> list[MaintenanceRecord]:
        return [m for m in self._load() if m.status == MaintenanceStatus.PENDING]
