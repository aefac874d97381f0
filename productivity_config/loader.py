"""
Configuration Loader (``productivity_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``productivity_config.schema`` dataclasses.  Runtime callers go through
``productivity_config.get_active_config()`` instead of calling this
directly.

Invariants enforced
-------------------
* Every parse error raises ``InvalidConfigurationError`` naming the field.
* Currency codes are validated against the known currency table.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from productivity_config.schema import ExchangeRateEntry, ProductivityConfig
from productivity_kernel.domain.currency import canonical_code
from productivity_kernel.exceptions import InvalidConfigurationError

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> Any:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_currency(field: str, value: Any) -> str:
    code = canonical_code(value)
    if code is None:
        raise InvalidConfigurationError(field, f"unknown currency code {value!r}")
    return code


def parse_decimal(field: str, value: Any) -> Decimal:
    # Floats from YAML go through str() so 1.1 stays 1.1
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidConfigurationError(field, f"not a decimal: {value!r}") from e


def parse_exchange_rate(index: int, data: Any) -> ExchangeRateEntry:
    field = f"exchange_rates[{index}]"
    if not isinstance(data, dict):
        raise InvalidConfigurationError(field, "expected a mapping")
    for key in ("from", "to", "rate"):
        if key not in data:
            raise InvalidConfigurationError(field, f"missing '{key}'")

    rate = parse_decimal(f"{field}.rate", data["rate"])
    if rate <= 0:
        raise InvalidConfigurationError(f"{field}.rate", "must be positive")
    return ExchangeRateEntry(
        from_currency=parse_currency(f"{field}.from", data["from"]),
        to_currency=parse_currency(f"{field}.to", data["to"]),
        rate=rate,
    )


def parse_config(data: Any) -> ProductivityConfig:
    """Build a ProductivityConfig from the parsed YAML mapping."""
    if not isinstance(data, dict):
        raise InvalidConfigurationError("<root>", f"expected a mapping, got {type(data).__name__}")
    section = data.get("productivity", data)
    if not isinstance(section, dict):
        raise InvalidConfigurationError("productivity", "expected a mapping")

    log_level = str(section.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise InvalidConfigurationError("log_level", f"unknown level {log_level!r}")

    raw_rates = section.get("exchange_rates") or []
    if not isinstance(raw_rates, list):
        raise InvalidConfigurationError("exchange_rates", "expected a list")

    report_failures = section.get("report_adjustment_failures", True)
    if not isinstance(report_failures, bool):
        raise InvalidConfigurationError("report_adjustment_failures", "expected a boolean")

    return ProductivityConfig(
        default_currency=parse_currency("default_currency", section.get("default_currency", "EUR")),
        log_level=log_level,
        exchange_rates=tuple(parse_exchange_rate(i, entry) for i, entry in enumerate(raw_rates)),
        report_adjustment_failures=report_failures,
        checksum=compute_checksum(section),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
