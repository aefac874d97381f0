"""
productivity_config -- single public entrypoint for reporting configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``ProductivityConfig`` and never read YAML themselves.

Architecture position:
    Configuration -- sits above ``productivity_kernel`` and below
    ``productivity_services``.  The kernel MUST NEVER import from
    ``productivity_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``InvalidConfigurationError`` -- a value failed validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PRODUCTIVITY_CONFIG_TRACE`` log entry with the checksum of the
    loaded settings.
"""

from __future__ import annotations

import logging
from pathlib import Path

from productivity_config.loader import compute_checksum, load_yaml_file, parse_config
from productivity_config.schema import ExchangeRateEntry, ProductivityConfig

_logger = logging.getLogger("productivity_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> ProductivityConfig:
    """Load, validate and trace the active configuration.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "PRODUCTIVITY_CONFIG_TRACE",
        extra={
            "trace_type": "PRODUCTIVITY_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "default_currency": config.default_currency,
            "exchange_rate_count": len(config.exchange_rates),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ExchangeRateEntry",
    "ProductivityConfig",
    "compute_checksum",
    "get_active_config",
]
