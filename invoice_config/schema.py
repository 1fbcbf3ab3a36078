"""
Kernel settings schema.

Frozen dataclasses parsed from YAML by ``invoice_config.loader``.  Defaults
reproduce the built-in behaviour, so an empty or missing file is a valid
configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field

NUMBERING_BACKENDS = ("memory", "database")


@dataclass(frozen=True)
class NumberingSettings:
    """Invoice number issuance.

    ``width`` digits, zero padded, rendering ``counter % modulus``.
    """

    width: int = 8
    modulus: int = 100_000_000
    start: int = 1
    sequence_name: str = "invoice_number"
    backend: str = "memory"  # memory | database


@dataclass(frozen=True)
class InvoiceDefaults:
    """Values filled in when an invoice is created without them."""

    currency: str = "USD"
    due_days: int = 14  # used when the invoice carries no payment terms


@dataclass(frozen=True)
class KernelSettings:
    """Root settings object."""

    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    defaults: InvoiceDefaults = field(default_factory=InvoiceDefaults)
    database_url: str | None = None
