"""
Record Store -- JSON collections over an opaque key-value blob store.

Each collection lives under its own key as a JSON array of records. Reads
that fail for any reason degrade to an empty collection; failed writes are
logged and dropped, except inside a ``transaction``: there a failed write
raises, the snapshot is restored, and the error reaches the caller.

Backends:
    FileBlobStore    -- one ``<key>.json`` file per key, atomic replace writes
    MemoryBlobStore  -- dict-backed, for tests and embedding
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger("record_store")

# ---------------------------------------------------------------------------
# Collection keys
# ---------------------------------------------------------------------------

PROPERTIES_KEY = "rentals_properties"
TENANTS_KEY = "rentals_tenants"
AGREEMENTS_KEY = "rentals_agreements"
INVOICES_KEY = "rentals_invoices"
PAYMENTS_KEY = "rentals_payments"
EXPENSES_KEY = "rentals_expenses"
MAINTENANCE_KEY = "rentals_maintenance"

ALL_KEYS = [
    PROPERTIES_KEY,
    TENANTS_KEY,
    AGREEMENTS_KEY,
    INVOICES_KEY,
    PAYMENTS_KEY,
    EXPENSES_KEY,
    MAINTENANCE_KEY,
]


# ===================================================================
# Blob backends
# ===================================================================


class MemoryBlobStore:
    """In-process key-value store holding raw text blobs."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def set(self, key: str, value: str) -> None:
        self._blobs[key] = value

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._blobs)


class FileBlobStore:
    """Key-value store mapping each key to ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as fh:
                return fh.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        """Atomically write *value* to the key's file."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(value)
        os.replace(str(tmp), str(path))

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def keys(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.json"))


# ===================================================================
# RecordStore
# ===================================================================


class RecordStore:
    """Load and save whole collections of JSON records by key."""

    def __init__(self, blobs: Any) -> None:
        self.blobs = blobs
        self._depth = 0

    def load(self, key: str) -> list[dict]:
        """Return the collection under *key*, or ``[]`` on any failure."""
        try:
            raw = self.blobs.get(key)
        except OSError as exc:
            logger.error("Error retrieving %s: %s", key, exc)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.error("Error parsing %s: %s", key, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Collection %s is not a JSON array -- treating as empty", key)
            return []
        return [r for r in data if isinstance(r, dict)]

    def save(self, key: str, records: list[dict]) -> None:
        """Overwrite the collection under *key*.

        Failures are logged; inside a transaction they are also re-raised.
        """
        try:
            payload = json.dumps(records, indent=2, default=str, ensure_ascii=False)
            self.blobs.set(key, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error saving %s: %s", key, exc)
            if self._depth:
                raise

    @contextmanager
    def transaction(self, *keys: str) -> Iterator[None]:
        """Snapshot *keys*; restore them if the body raises, then re-raise.

        Single-process only. A failure while restoring is logged and the
        original exception still propagates.
        """
        snapshot = {key: self.blobs.get(key) for key in keys}
        self._depth += 1
        try:
            yield
        except Exception:
            logger.warning("Transaction over %s failed -- restoring snapshot", list(keys))
            for key, raw in snapshot.items():
                try:
                    if raw is None:
                        self.blobs.delete(key)
                    else:
                        self.blobs.set(key, raw)
                except OSError as exc:
                    logger.error("Could not restore %s: %s", key, exc)
            raise
        finally:
            self._depth -= 1
