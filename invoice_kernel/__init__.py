"""
Invoice Kernel - ledger computation for customer invoices.

Derives line totals, invoice aggregates and balance-due with:
- Round-every-step, two-decimal fixed-point arithmetic
- Recompute-from-scratch totals (never trusted from input)
- Status lifecycle driven by balance and explicit finalize
- Atomic invoice number issuance
"""

__version__ = "0.1.0"
