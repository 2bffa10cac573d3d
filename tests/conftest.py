"""
Shared fixtures for the rentbook test suite.

Every fixture runs against an in-memory or tmp_path-backed store, so no
test touches the real data directory.
"""

from datetime import date, timedelta

import pytest

from rentbook.ledger import RentBook
from rentbook.record_store import FileBlobStore, MemoryBlobStore, RecordStore


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_blobs():
    return MemoryBlobStore()


@pytest.fixture
def store(memory_blobs):
    """RecordStore over an empty in-memory blob store."""
    return RecordStore(memory_blobs)


@pytest.fixture
def file_store(tmp_path):
    """RecordStore over JSON files in a temp directory."""
    return RecordStore(FileBlobStore(tmp_path / "rentals"))


@pytest.fixture
def book(store):
    """Empty RentBook over the in-memory store."""
    return RentBook(store)


# ---------------------------------------------------------------------------
# Populated book
# ---------------------------------------------------------------------------

@pytest.fixture
def past_due():
    """A due date safely in the past."""
    return (date.today() - timedelta(days=30)).isoformat()


@pytest.fixture
def future_due():
    """A due date safely in the future."""
    return (date.today() + timedelta(days=30)).isoformat()


@pytest.fixture
def populated(book, past_due):
    """Book with two properties, two tenants, one agreement, and unpaid invoices.

    Every invoice is past due, so each unpaid one reads as overdue or partial.
    """
    a001 = book.add_property(house_number="A001", location="Kampala Central",
                             property_type="Apartment", size=2, rent_rate=800000,
                             status="vacant")
    b002 = book.add_property(house_number="B002", location="Ntinda",
                             property_type="House", size=3, rent_rate=1200000,
                             status="vacant")
    jane = book.add_tenant(name="Jane Doe", id_passport="CM123", phone="0700000001")
    john = book.add_tenant(name="John Okello", id_passport="CM456", phone="0700000002")
    agreement = book.create_agreement(
        tenant_id=jane.id, property_id=a001.id, start_date="2026-01-01",
        end_date="2026-12-31", security_deposit=800000, rent_amount=800000,
    )
    inv_jane = book.create_invoice(jane.id, a001.id, past_due, 800000, "2026-01")
    inv_john = book.create_invoice(john.id, b002.id, past_due, 1200000, "2026-01")
    return {
        "book": book,
        "a001": a001,
        "b002": b002,
        "jane": jane,
        "john": john,
        "agreement": agreement,
        "inv_jane": inv_jane,
        "inv_john": inv_john,
    }
