"""
invoice_config -- single public entrypoint for kernel settings.

Runtime code obtains settings only through ``get_active_settings()``.
The settings file is named by the ``INVOICE_KERNEL_CONFIG`` environment
variable; without it the built-in defaults apply.  Every call emits an
``INVOICE_CONFIG_TRACE`` log record carrying the settings checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from invoice_config.loader import compute_checksum, load_settings
from invoice_config.schema import InvoiceDefaults, KernelSettings, NumberingSettings

_logger = logging.getLogger("invoice_kernel.config")

CONFIG_ENV_VAR = "INVOICE_KERNEL_CONFIG"


def get_active_settings(path: Path | str | None = None) -> KernelSettings:
    """
    Return the settings in force.

    Args:
        path: Explicit settings file.  Falls back to ``$INVOICE_KERNEL_CONFIG``
            and then to built-in defaults.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
        ValueError: If the file fails validation.
    """
    source = path or os.environ.get(CONFIG_ENV_VAR)
    settings = load_settings(Path(source)) if source else KernelSettings()

    _logger.info(
        "INVOICE_CONFIG_TRACE",
        extra={
            "trace_type": "INVOICE_CONFIG_TRACE",
            "source": str(source) if source else "<defaults>",
            "checksum": compute_checksum(settings),
            "numbering_backend": settings.numbering.backend,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "InvoiceDefaults",
    "KernelSettings",
    "NumberingSettings",
    "get_active_settings",
]
