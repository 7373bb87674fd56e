"""
Utilities for loading the billing configuration file.
"""
from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml

from courier_billing.db.database import settings

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "billing.yaml"

DEFAULTS: Dict[str, Any] = {
    "roles": {
        "allocate": ["billing_operator"],
        "rate_edit": ["admin"],
    },
    "cache": {
        "max_entries": 128,
        "ttl_seconds": 600,
    },
    "audit": {
        "default_limit": 50,
        "max_limit": 100,
    },
    "defaults": {
        "fuel_pct": "0",
        "handling": "0",
        "gst_pct": "0",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@lru_cache()
def load_billing_config() -> Dict[str, Any]:
    path = Path(settings.billing_config) if settings.billing_config else CONFIG_PATH
    if not path.exists():
        return DEFAULTS
    with open(path, "r", encoding="utf-8") as fh:
        return _merge(DEFAULTS, yaml.safe_load(fh) or {})


def get_roles(action: str) -> List[str]:
    return list(load_billing_config()["roles"].get(action, []))


def get_cache_settings() -> Dict[str, int]:
    cache = load_billing_config()["cache"]
    return {"max_entries": int(cache["max_entries"]), "ttl_seconds": int(cache["ttl_seconds"])}


def get_audit_limits() -> Dict[str, int]:
    audit = load_billing_config()["audit"]
    return {"default_limit": int(audit["default_limit"]), "max_limit": int(audit["max_limit"])}


def get_default_surcharges() -> Dict[str, Decimal]:
    """Fuel %, handling and GST % applied when pricing from a region default."""
    defaults = load_billing_config()["defaults"]
    return {name: Decimal(str(defaults[name])) for name in ("fuel_pct", "handling", "gst_pct")}
