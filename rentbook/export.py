"""
CSV export for flat report rows (dicts or dataclasses).

The header is the key set of the first row.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Iterable, Union

logger = logging.getLogger("export")


def _as_dict(row: Any) -> dict:
    if is_dataclass(row) and not isinstance(row, type):
        return asdict(row)
    return dict(row)


def _write(fh, rows: list[dict]) -> None:
    writer = csv.DictWriter(fh, fieldnames=list(rows[0].keys()), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)


def rows_to_csv(rows: Iterable[Any]) -> str:
    """Render rows as CSV text. An empty input yields an empty string."""
    rows = [_as_dict(r) for r in rows]
    if not rows:
        return ""
    buf = io.StringIO()
    _write(buf, rows)
    return buf.getvalue()


def export_csv(rows: Iterable[Any], output_path: Union[str, Path]) -> int:
    """Write rows to *output_path*. Returns the number of data rows written."""
    rows = [_as_dict(r) for r in rows]
    if not rows:
        logger.info("Nothing to export to %s", output_path)
        return 0
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as fh:
        _write(fh, rows)
    logger.info("Exported %d rows to %s", len(rows), output_path)
    return len(rows)
