"""Test ledger -- rentbook."""
from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import patch

import pytest

from rentbook.ledger import SAMPLE_PROPERTIES, RentBook
from rentbook.models import (
    ExpenseCategory,
    InvoiceStatus,
    PaymentMode,
    PropertyStatus,
)
from rentbook.record_store import (
    AGREEMENTS_KEY,
    EXPENSES_KEY,
    INVOICES_KEY,
    PAYMENTS_KEY,
    PROPERTIES_KEY,
    RecordStore,
)


def _failing_writes(blobs, failing_key):
    """Make every write to *failing_key* fail like a full disk."""
    real_set = blobs.set

    def _set(key, value):
        if key == failing_key:
            raise OSError("disk full")
        real_set(key, value)

    return patch.object(blobs, "set", side_effect=_set)


# ===================================================================
# Agreements and occupancy
# ===================================================================

class TestAgreements:

    @pytest.mark.unit
    def test_create_agreement_occupies_property(self, populated):
        book = populated["book"]
        assert book.properties.get(populated["a001"].id).status is PropertyStatus.OCCUPIED
        assert book.properties.get(populated["b002"].id).status is PropertyStatus.VACANT
        assert book.get_agreements()[0].id == populated["agreement"].id

    @pytest.mark.unit
    def test_add_agreement_is_raw(self, book):
        prop = book.add_property(house_number="A", status="vacant")
        book.add_agreement(tenant_id="t", property_id=prop.id)
        assert book.properties.get(prop.id).status is PropertyStatus.VACANT

    @pytest.mark.unit
    def test_unknown_property_still_stores_agreement(self, book):
        agreement = book.create_agreement(tenant_id="t", property_id="ghost")
        assert book.agreements.get(agreement.id) is not None

    @pytest.mark.unit
    def test_failed_property_write_rolls_back_agreement(self, book, store, memory_blobs):
        prop = book.add_property(house_number="A", status="vacant")
        with _failing_writes(memory_blobs, PROPERTIES_KEY):
            with pytest.raises(OSError):
                book.create_agreement(tenant_id="t", property_id=prop.id)
        assert store.load(AGREEMENTS_KEY) == []
        assert book.properties.get(prop.id).status is PropertyStatus.VACANT

    @pytest.mark.unit
    def test_vacate_property(self, populated):
        book = populated["book"]
        updated = book.vacate_property(populated["a001"].id)
        assert updated.status is PropertyStatus.VACANT
        assert book.vacate_property("ghost") is None


# ===================================================================
# Invoices and payments
# ===================================================================

class TestInvoicesPayments:

    @pytest.mark.unit
    def test_create_invoice_links_agreement(self, populated):
        assert populated["inv_jane"].agreement_id == populated["agreement"].id
        assert populated["inv_john"].agreement_id == ""

    @pytest.mark.unit
    def test_create_invoice_totals(self, book, future_due):
        invoice = book.create_invoice("t", "p", future_due, 800000, "2026-10",
                                      utilities_amount=45000)
        assert invoice.total_amount == 845000
        assert invoice.utilities_amount == 45000
        assert invoice.status is InvoiceStatus.PENDING
        plain = book.create_invoice("t", "p", future_due, 800000, "2026-10",
                                    utilities_amount=0)
        assert plain.utilities_amount is None
        assert plain.total_amount == 800000

    @pytest.mark.unit
    def test_unpaid_past_due_reads_overdue(self, populated):
        statuses = {i.id: i.status for i in populated["book"].get_invoices()}
        assert statuses[populated["inv_jane"].id] is InvoiceStatus.OVERDUE

    @pytest.mark.unit
    def test_record_payment_partial_then_paid(self, populated):
        book = populated["book"]
        invoice = populated["inv_jane"]
        payment = book.record_payment(invoice.id, 300000, "2026-01-05",
                                      payment_mode="mobile_money")
        assert payment.tenant_id == populated["jane"].id
        assert payment.property_id == populated["a001"].id
        assert payment.payment_mode is PaymentMode.MOBILE_MONEY
        assert payment.receipt_number.startswith("RCP")
        assert len(payment.receipt_number) == 9
        assert book.invoices.get(invoice.id).status is InvoiceStatus.PARTIAL
        assert book.outstanding(invoice) == 500000

        book.record_payment(invoice.id, 500000, "2026-01-20", receipt_number="R-77")
        assert book.invoices.stored()[0].status is InvoiceStatus.PAID
        assert book.payments.get_all()[-1].receipt_number == "R-77"
        assert book.outstanding(invoice) == 0

    @pytest.mark.unit
    def test_record_payment_unknown_invoice(self, book):
        assert book.record_payment("ghost", 100, "2026-01-01") is None
        assert book.get_payments() == []

    @pytest.mark.unit
    def test_unpaid_invoices(self, populated):
        book = populated["book"]
        book.record_payment(populated["inv_john"].id, 1200000, "2026-01-03")
        assert [i.id for i in book.unpaid_invoices()] == [populated["inv_jane"].id]

    @pytest.mark.unit
    def test_days_overdue(self, book):
        today = date(2026, 3, 15)
        invoice = book.create_invoice("t", "p", "2026-03-01", 100, "2026-03")
        assert book.days_overdue(invoice, today) == 14
        assert book.days_overdue(invoice, date(2026, 2, 1)) == 0
        no_due = book.add_invoice(total_amount=5)
        assert book.days_overdue(no_due, today) == 0
        garbled = book.add_invoice(total_amount=5, due_date="01/02/2026")
        assert book.days_overdue(garbled, today) == 0


# ===================================================================
# Damaged stored data
# ===================================================================

class TestDamagedData:

    @pytest.mark.unit
    def test_unreadable_due_date_reads_pending(self, populated, store):
        book = populated["book"]
        raw = store.load(INVOICES_KEY)
        raw[0]["due_date"] = "01/02/2026"
        store.save(INVOICES_KEY, raw)

        statuses = {i.id: i.status for i in book.get_invoices()}
        assert statuses[populated["inv_jane"].id] is InvoiceStatus.PENDING
        assert statuses[populated["inv_john"].id] is InvoiceStatus.OVERDUE
        assert book.dashboard().total_arrears == 1200000
        assert book.report(2026).arrears.total == 2000000
        assert len(book.unpaid_invoices()) == 2

    @pytest.mark.unit
    def test_malformed_payment_skipped_everywhere(self, populated, store):
        book = populated["book"]
        invoice = populated["inv_jane"]
        book.record_payment(invoice.id, 300000, "2026-01-05")
        raw = store.load(PAYMENTS_KEY)
        raw.append({"id": "p1", "invoice_id": invoice.id, "amount": 500000,
                    "payment_mode": "paypal"})
        store.save(PAYMENTS_KEY, raw)

        assert len(book.get_payments()) == 1
        statuses = {i.id: i.status for i in book.get_invoices()}
        assert statuses[invoice.id] is InvoiceStatus.PARTIAL
        assert book.resolver.refresh(invoice.id) is InvoiceStatus.PARTIAL
        assert book.dashboard().total_arrears == 1700000

    @pytest.mark.unit
    def test_malformed_invoice_skipped_by_refresh_all(self, populated, store):
        book = populated["book"]
        raw = store.load(INVOICES_KEY)
        raw.append({"id": "bad", "status": "haunted"})
        store.save(INVOICES_KEY, raw)
        assert book.resolver.refresh("bad") is None
        assert book.resolver.refresh_all() == {"overdue": 2}


# ===================================================================
# Maintenance
# ===================================================================

class TestMaintenance:

    @pytest.mark.unit
    def test_completed_with_cost_books_expense(self, populated):
        book = populated["book"]
        record, expense = book.record_maintenance(
            property_id=populated["a001"].id, date="2026-02-10",
            description="Repaint lounge", cost=150000, maintenance_type="painting",
            status="completed", service_provider="Brush Ltd",
        )
        assert expense is not None
        assert expense.category is ExpenseCategory.MAINTENANCE
        assert expense.amount == 150000
        assert expense.description == "Maintenance: Repaint lounge"
        assert expense.property_id == record.property_id
        assert expense.date == "2026-02-10"
        assert expense.service_provider == "Brush Ltd"

    @pytest.mark.unit
    @pytest.mark.parametrize("status,cost", [("pending", 5000), ("completed", 0)])
    def test_no_expense_otherwise(self, book, status, cost):
        record, expense = book.record_maintenance(property_id="p", description="x",
                                                  cost=cost, status=status)
        assert expense is None
        assert book.get_expenses() == []
        assert book.get_maintenance()[0].id == record.id

    @pytest.mark.unit
    def test_not_idempotent(self, book):
        fields = dict(property_id="p", description="x", cost=10, status="completed")
        book.record_maintenance(**fields)
        book.record_maintenance(**fields)
        assert len(book.get_expenses()) == 2

    @pytest.mark.unit
    def test_failed_expense_write_rolls_back_record(self, book, store, memory_blobs):
        with _failing_writes(memory_blobs, EXPENSES_KEY):
            with pytest.raises(OSError):
                book.record_maintenance(property_id="p", description="x",
                                        cost=10, status="completed")
        assert book.get_maintenance() == []
        assert store.load(EXPENSES_KEY) == []

    @pytest.mark.unit
    def test_add_maintenance_record_is_raw(self, book):
        book.add_maintenance_record(property_id="p", cost=10, status="completed")
        assert book.get_expenses() == []


# ===================================================================
# Lookups and aggregation
# ===================================================================

class TestLookups:

    @pytest.mark.unit
    def test_names(self, populated):
        book = populated["book"]
        assert book.property_name(populated["a001"].id) == "A001 - Kampala Central"
        assert book.property_name("ghost") == "Unknown Property"
        assert book.property_name(None) == "Unknown Property"
        assert book.tenant_name(populated["jane"].id) == "Jane Doe"
        assert book.tenant_name("ghost") == "Unknown Tenant"

    @pytest.mark.unit
    def test_update_and_delete_tenant(self, populated):
        book = populated["book"]
        assert book.update_tenant(populated["john"].id, email="john@example.com").email \
            == "john@example.com"
        assert book.delete_tenant(populated["john"].id) is True
        assert book.delete_tenant(populated["john"].id) is False
        assert book.tenant_name(populated["john"].id) == "Unknown Tenant"

    @pytest.mark.unit
    def test_update_and_delete_property(self, book):
        prop = book.add_property(house_number="A", rent_rate=100)
        assert book.update_property(prop.id, rent_rate=200).rent_rate == 200
        assert book.delete_property(prop.id) is True
        assert book.get_properties() == []


class TestAggregation:

    @pytest.mark.unit
    def test_dashboard_arrears_matches_tenant_arrears(self, populated):
        book = populated["book"]
        book.record_payment(populated["inv_jane"].id, 300000, date.today().isoformat())
        stats = book.dashboard()
        report = book.report(date.today().year)
        assert stats.total_arrears == report.arrears.total == 1700000
        assert stats.total_arrears == sum(r.amount for r in report.arrears.by_tenant)

    @pytest.mark.unit
    def test_dashboard_current_month(self, populated):
        book = populated["book"]
        book.add_expense(amount=20000, category="utilities", description="Water",
                         date="2026-01-14")
        book.record_payment(populated["inv_jane"].id, 800000, "2026-01-03")
        stats = book.dashboard("2026-01")
        assert stats.monthly_rent_due == 2000000
        assert stats.monthly_rent_collected == 800000
        assert stats.rent_collection_rate == 40.0
        assert stats.net_cash_flow == 780000
        assert stats.occupied_properties == 1

    @pytest.mark.unit
    def test_recent_activity_uses_config_limit(self, store):
        book = RentBook(store, {"recent_activity_limit": 2})
        for day in range(1, 5):
            book.add_expense(amount=day, category="other", description=f"e{day}",
                             date=f"2026-01-0{day}")
        assert [a.description for a in book.recent_activity()] == ["other - e4", "other - e3"]

    @pytest.mark.unit
    def test_report_trend_months_from_config(self, store):
        book = RentBook(store, {"occupancy_trend_months": 6})
        report = book.report(2026, today=date(2026, 6, 1))
        assert len(report.occupancy.trends) == 6

    @pytest.mark.unit
    def test_snapshot_as_of(self, book):
        due = (date.today() + timedelta(days=5)).isoformat()
        book.create_invoice("t", "p", due, 100, "2026-10")
        later = date.today() + timedelta(days=6)
        assert book.snapshot().invoices[0].status is InvoiceStatus.PENDING
        assert book.snapshot(later).invoices[0].status is InvoiceStatus.OVERDUE


# ===================================================================
# Bootstrap and persistence
# ===================================================================

class TestBootstrap:

    @pytest.mark.unit
    def test_seed_once(self, book):
        assert book.initialize_sample_data() == len(SAMPLE_PROPERTIES) == 2
        assert book.initialize_sample_data() == 0
        props = book.get_properties()
        assert [p.house_number for p in props] == ["A001", "B002"]
        assert props[0].utilities.electricity_meter == "EM001"
        assert props[1].status is PropertyStatus.VACANT

    @pytest.mark.unit
    def test_seed_skipped_when_properties_exist(self, book):
        book.add_property(house_number="Z")
        assert book.initialize_sample_data() == 0
        assert len(book.get_properties()) == 1

    @pytest.mark.integration
    def test_file_store_survives_reopen(self, file_store, past_due):
        book = RentBook(file_store)
        prop = book.add_property(house_number="A", status="vacant")
        tenant = book.add_tenant(name="Jane")
        book.create_agreement(tenant_id=tenant.id, property_id=prop.id)
        invoice = book.create_invoice(tenant.id, prop.id, past_due, 1000, "2026-01")
        book.record_payment(invoice.id, 250, "2026-01-02")

        reopened = RentBook(RecordStore(file_store.blobs))
        assert reopened.properties.get(prop.id).status is PropertyStatus.OCCUPIED
        assert reopened.invoices.stored()[0].status is InvoiceStatus.PARTIAL
        assert reopened.outstanding(invoice) == 750
