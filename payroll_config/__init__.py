"""
payroll_config -- single public entrypoint for payroll configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``payroll_kernel`` and below
    ``payroll_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ConfigurationError`` -- no valid ledger identity, or an invalid
      setting.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry with the ledger, network and
    checksum, tying every later operation to the configuration in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from payroll_config.loader import compute_checksum, load_yaml_file, parse_config
from payroll_config.schema import PayrollConfig
from payroll_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("payroll_kernel.config")

CONFIG_PATH_ENV = "PAYROLL_CONFIG_PATH"


def get_active_config(path: Path | str | None = None) -> PayrollConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``$PAYROLL_CONFIG_PATH``.

    Returns:
        Frozen PayrollConfig.

    Raises:
        ConfigurationError: no path given and none in the environment, or
            the file's contents are invalid.
        FileNotFoundError: the file does not exist.
    """
    source = path or os.environ.get(CONFIG_PATH_ENV)
    if not source:
        raise ConfigurationError(
            CONFIG_PATH_ENV, "no configuration file given and none in the environment"
        )

    config = parse_config(load_yaml_file(Path(source)))

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_path": str(source),
            "ledger_address": config.ledger_address,
            "network_name": config.network_name,
            "settlement_token": config.settlement_token_address,
            "checksum": compute_checksum(config),
        },
    )
    return config


__all__ = [
    "PayrollConfig",
    "get_active_config",
    "parse_config",
    "compute_checksum",
]
