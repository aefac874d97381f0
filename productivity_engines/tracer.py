"""
productivity_engines.tracer -- ``@traced_engine`` decorator.

Every decorated engine call emits one PRODUCTIVITY_ENGINE_TRACE record
carrying the engine name and version, how long the call took, and a short
fingerprint of the keyword arguments named in ``fingerprint_fields``.
Two calls with equal fingerprinted arguments get the same fingerprint, so
traces of repeated reports can be matched up.

The decorator only reads kwargs and logs; the wrapped engine stays pure.

Usage:
    @traced_engine("category_income", "1.0", fingerprint_fields=("dimension",))
    def monthly_income_by_category(*, worklogs, fluxes, dimension, allowed_ids):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import json
import time
from collections.abc import Callable
from decimal import Decimal
from enum import Enum
from typing import Any

from productivity_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "PRODUCTIVITY_ENGINE_TRACE"


def _canonical(value: Any) -> Any:
    """JSON-ready form of ``value`` that does not depend on set ordering."""
    if isinstance(value, Enum):
        return _canonical(value.value)
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, (Decimal, float)):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(v) for v in value), key=json.dumps)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """First 16 hex chars of the SHA-256 of the selected kwargs (missing ones as null)."""
    selected = {field: _canonical(kwargs.get(field)) for field in fingerprint_fields}
    encoded = json.dumps(selected, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = (
                compute_input_fingerprint(fingerprint_fields, kwargs) if fingerprint_fields else ""
            )
            started = time.perf_counter()
            result = func(*args, **kwargs)
            _logger.info(TRACE_TYPE, extra={
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                "function": func.__qualname__,
            })
            return result

        return wrapper

    return decorator
