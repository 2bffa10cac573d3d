"""
Configuration for rentbook.

Paths come from the environment with project-relative defaults; tunables are
read from ``config.json`` in the data directory and merged over
``DEFAULT_CONFIG``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("config")

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("RENTBOOK_DATA_DIR", str(BASE_DIR / "data" / "rentals")))
CONFIG_FILE = DATA_DIR / "config.json"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "currency": "UGX",
    "recent_activity_limit": 5,
    "occupancy_trend_months": 12,
    "seed_sample_data": True,
}


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Return DEFAULT_CONFIG overlaid with the JSON file at *path*.

    A missing or corrupt file yields the defaults. ``RENTBOOK_CURRENCY``
    overrides the currency from either source.
    """
    if path is None:
        path = CONFIG_FILE
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except FileNotFoundError:
        raw = {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        raw = {}

    if isinstance(raw, dict):
        for key, value in raw.items():
            if key in DEFAULT_CONFIG:
                config[key] = value
            else:
                logger.warning("Unknown config key '%s' ignored", key)

    env_currency = os.getenv("RENTBOOK_CURRENCY")
    if env_currency:
        config["currency"] = env_currency.strip().upper()
    return config
