"""
RentBook -- the bookkeeping engine facade.

Wires one RecordStore handle into every repository and exposes the
operations a front end calls: per-entity get/add (plus update/delete for
properties and tenants), the multi-collection operations (agreement +
occupancy, maintenance + expense), lookups with display sentinels, and the
dashboard and report entry points.

Usage:
    from rentbook.ledger import RentBook
    from rentbook.record_store import MemoryBlobStore, RecordStore

    book = RentBook(RecordStore(MemoryBlobStore()))
    prop = book.add_property(house_number="A001", location="Kampala Central",
                             property_type="Apartment", size=2, rent_rate=800000,
                             status="vacant")
    tenant = book.add_tenant(name="Jane Doe", id_passport="CM123", phone="0700000000")
    book.create_agreement(tenant_id=tenant.id, property_id=prop.id,
                          start_date="2026-01-01", end_date="2026-12-31",
                          security_deposit=800000, rent_amount=800000)
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from rentbook.config import DEFAULT_CONFIG
from rentbook.dashboard import Activity, DashboardStats, compute_dashboard, recent_activity
from rentbook.invoice_status import InvoiceStatusResolver
from rentbook.models import (
    Expense,
    ExpenseCategory,
    MaintenanceRecord,
    Payment,
    Property,
    PropertyStatus,
    RentInvoice,
    Snapshot,
    TenancyAgreement,
    Tenant,
)
from rentbook.record_store import (
    AGREEMENTS_KEY,
    EXPENSES_KEY,
    MAINTENANCE_KEY,
    PROPERTIES_KEY,
    RecordStore,
)
from rentbook.reports import FullReport, ReportGenerator
from rentbook.repositories import (
    AgreementRepository,
    ExpenseRepository,
    InvoiceRepository,
    MaintenanceRepository,
    PaymentRepository,
    PropertyRepository,
    TenantRepository,
)
from rentbook.utils import generate_receipt_number, parse_date, round_amount
from rentbook.utils import today as _today

logger = logging.getLogger("ledger")

SAMPLE_PROPERTIES: list[dict[str, Any]] = [
    {
        "house_number": "A001",
        "location": "Kampala Central",
        "property_type": "Apartment",
        "size": 2,
        "rent_rate": 800000,
        "status": "occupied",
        "utilities": {
            "electricity_meter": "EM001",
            "water_account": "WA001",
            "billing_type": "postpaid",
        },
    },
    {
        "house_number": "B002",
        "location": "Ntinda",
        "property_type": "House",
        "size": 3,
        "rent_rate": 1200000,
        "status": "vacant",
        "utilities": {
            "electricity_meter": "EM002",
            "water_account": "WA002",
            "billing_type": "prepaid",
        },
    },
]


class RentBook:
    """Bookkeeping engine for one landlord's portfolio."""

    def __init__(self, store: RecordStore, config: Optional[dict[str, Any]] = None) -> None:
        self.store = store
        self.config = dict(DEFAULT_CONFIG)
        self.config.update(config or {})

        self.resolver = InvoiceStatusResolver(store)
        self.properties = PropertyRepository(store)
        self.tenants = TenantRepository(store)
        self.agreements = AgreementRepository(store)
        self.invoices = InvoiceRepository(store)
        self.payments = PaymentRepository(store, self.resolver)
        self.expenses = ExpenseRepository(store)
        self.maintenance = MaintenanceRepository(store)

    # ==================================================================
    # Collaborator contract
    # ==================================================================

    def get_properties(self) -> list[Property]:
        return self.properties.get_all()

    def add_property(self, **fields: Any) -> Property:
        return self.properties.add(**fields)

    def update_property(self, property_id: str, **changes: Any) -> Optional[Property]:
        return self.properties.update(property_id, **changes)

    def delete_property(self, property_id: str) -> bool:
        return self.properties.delete(property_id)

    def get_tenants(self) -> list[Tenant]:
        return self.tenants.get_all()

    def add_tenant(self, **fields: Any) -> Tenant:
        return self.tenants.add(**fields)

    def update_tenant(self, tenant_id: str, **changes: Any) -> Optional[Tenant]:
        return self.tenants.update(tenant_id, **changes)

    def delete_tenant(self, tenant_id: str) -> bool:
        return self.tenants.delete(tenant_id)

    def get_agreements(self) -> list[TenancyAgreement]:
        return self.agreements.get_all()

    def add_agreement(self, **fields: Any) -> TenancyAgreement:
        """Store an agreement only; see create_agreement for the occupancy flip."""
        return self.agreements.add(**fields)

    def get_invoices(self, as_of: Optional[date] = None) -> list[RentInvoice]:
        return self.invoices.get_all(as_of)

    def add_invoice(self, **fields: Any) -> RentInvoice:
        return self.invoices.add(**fields)

    def get_payments(self) -> list[Payment]:
        return self.payments.get_all()

    def add_payment(self, **fields: Any) -> Payment:
        return self.payments.add(**fields)

    def get_expenses(self) -> list[Expense]:
        return self.expenses.get_all()

    def add_expense(self, **fields: Any) -> Expense:
        return self.expenses.add(**fields)

    def get_maintenance(self) -> list[MaintenanceRecord]:
        return self.maintenance.get_all()

    def add_maintenance_record(self, **fields: Any) -> MaintenanceRecord:
        """Store a maintenance record only; see record_maintenance."""
        return self.maintenance.add(**fields)

    # ==================================================================
    # Application operations
    # ==================================================================

    def create_agreement(self, **fields: Any) -> TenancyAgreement:
        """Add an agreement and mark its property occupied, atomically."""
        with self.store.transaction(AGREEMENTS_KEY, PROPERTIES_KEY):
            agreement = self.agreements.add(**fields)
            if self.properties.update(agreement.property_id,
                                      status=PropertyStatus.OCCUPIED) is None:
                logger.warning("Agreement %s references unknown property %s",
                               agreement.id, agreement.property_id)
        logger.info("Agreement %s: tenant %s -> property %s",
                    agreement.id, agreement.tenant_id, agreement.property_id)
        return agreement

    def vacate_property(self, property_id: str) -> Optional[Property]:
        """Manually mark a property vacant."""
        return self.properties.update(property_id, status=PropertyStatus.VACANT)

    def create_invoice(
        self,
        tenant_id: str,
        property_id: str,
        due_date: str,
        rent_amount: float,
        month: str,
        utilities_amount: Optional[float] = None,
    ) -> RentInvoice:
        """Bill a tenant for a month, linking the first matching agreement."""
        agreement = self.agreements.find_for(tenant_id, property_id)
        utilities = utilities_amount if utilities_amount and utilities_amount > 0 else None
        return self.invoices.add(
            tenant_id=tenant_id,
            property_id=property_id,
            agreement_id=agreement.id if agreement else "",
            due_date=due_date,
            rent_amount=rent_amount,
            utilities_amount=utilities,
            total_amount=round_amount(rent_amount + (utilities or 0.0)),
            status="pending",
            month=month,
        )

    def record_payment(
        self,
        invoice_id: str,
        amount: float,
        payment_date: str,
        payment_mode: str = "cash",
        receipt_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[Payment]:
        """Record a payment against an invoice. Unknown invoice -> None."""
        invoice = next((i for i in self.invoices.stored() if i.id == invoice_id), None)
        if invoice is None:
            logger.warning("Payment not recorded: invoice %s not found", invoice_id)
            return None
        return self.payments.add(
            invoice_id=invoice.id,
            tenant_id=invoice.tenant_id,
            property_id=invoice.property_id,
            amount=amount,
            payment_date=payment_date,
            payment_mode=payment_mode,
            receipt_number=receipt_number or generate_receipt_number(),
            notes=notes or None,
        )

    def record_maintenance(self, **fields: Any) -> tuple[MaintenanceRecord, Optional[Expense]]:
        """Add a maintenance record and, if completed with a cost, its expense.

        Both writes share one transaction. Calling this twice for the same
        job books two expenses.
        """
        with self.store.transaction(MAINTENANCE_KEY, EXPENSES_KEY):
            record = self.maintenance.add(**fields)
            expense = None
            if record.derives_expense:
                expense = self.expenses.add(
                    property_id=record.property_id,
                    date=record.date,
                    description=f"Maintenance: {record.description}",
                    amount=record.cost,
                    category=ExpenseCategory.MAINTENANCE,
                    service_provider=record.service_provider,
                )
                logger.info("Maintenance %s booked as expense %s", record.id, expense.id)
        return record, expense

    # ==================================================================
    # Lookups
    # ==================================================================

    def property_name(self, property_id: Optional[str]) -> str:
        prop = self.properties.get(property_id) if property_id else None
        return prop.display_name if prop else "Unknown Property"

    def tenant_name(self, tenant_id: Optional[str]) -> str:
        tenant = self.tenants.get(tenant_id) if tenant_id else None
        return tenant.name if tenant else "Unknown Tenant"

    def outstanding(self, invoice: RentInvoice) -> float:
        return round_amount(invoice.total_amount - self.payments.total_paid(invoice.id))

    def days_overdue(self, invoice: RentInvoice, today: Optional[date] = None) -> int:
        if today is None:
            today = _today()
        if not invoice.due_date:
            return 0
        try:
            due = parse_date(invoice.due_date)
        except ValueError:
            return 0
        return max(0, (today - due).days)

    def unpaid_invoices(self, as_of: Optional[date] = None) -> list[RentInvoice]:
        """Invoices with a positive outstanding balance."""
        snap = self.snapshot(as_of)
        return [i for i in snap.invoices if snap.outstanding(i) > 0]

    # ==================================================================
    # Aggregation
    # ==================================================================

    def snapshot(self, as_of: Optional[date] = None) -> Snapshot:
        return Snapshot(
            properties=self.properties.get_all(),
            tenants=self.tenants.get_all(),
            agreements=self.agreements.get_all(),
            invoices=self.invoices.get_all(as_of),
            payments=self.payments.get_all(),
            expenses=self.expenses.get_all(),
            maintenance=self.maintenance.get_all(),
        )

    def dashboard(self, current_month: Optional[str] = None) -> DashboardStats:
        return compute_dashboard(self.snapshot(), current_month)

    def recent_activity(self) -> list[Activity]:
        return recent_activity(self.snapshot(), self.config["recent_activity_limit"])

    def report(self, year: int | str, today: Optional[date] = None) -> FullReport:
        generator = ReportGenerator(
            self.snapshot(today), trend_months=self.config["occupancy_trend_months"],
        )
        return generator.generate(year, today)

    # ==================================================================
    # Bootstrap
    # ==================================================================

    def initialize_sample_data(self) -> int:
        """Seed two example properties if none exist. Returns count seeded."""
        if self.properties.get_all():
            return 0
        for sample in SAMPLE_PROPERTIES:
            self.properties.add(**sample)
        logger.info("Seeded %d sample properties", len(SAMPLE_PROPERTIES))
        return len(SAMPLE_PROPERTIES)
