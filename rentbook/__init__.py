"""
rentbook -- Rental Property Bookkeeping Engine

Properties, tenants, tenancy agreements, rent invoices, payments,
maintenance and expenses for a small landlord, persisted as JSON
collections on local disk.

Usage:
    from rentbook.ledger import RentBook
    from rentbook.record_store import FileBlobStore, RecordStore

    book = RentBook(RecordStore(FileBlobStore("data/rentals")))
    book.initialize_sample_data()
    print(book.dashboard())
"""

__version__ = "1.0.0"
