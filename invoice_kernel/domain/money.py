"""
Money -- Two-decimal fixed-point arithmetic with round-every-step semantics.

Responsibility:
    The only sanctioned arithmetic for invoice amounts. Every value leaving
    this module is a ``Decimal`` with exactly two fraction digits, rounded
    ROUND_HALF_UP (midpoints move away from zero).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the ledger computation and the invoice aggregate.

Invariants enforced:
    - Scale: every returned amount has exponent -2.
    - Round every step: ``add``, ``sub`` and ``mul`` round both operands,
      compute, then round the result. Historical figures depend on this
      double rounding, so totals must never be computed once and rounded
      at the end.
    - No binary floating point: floats are converted through ``str()``
      and all math happens in a wide Decimal context.

Failure modes:
    - None for numeric input. Missing (None), unparseable or non-finite
      input is normalized to zero and logged at WARNING.

Audit relevance:
    Rounding drift here silently corrupts invoice totals. The tests pin the
    midpoint behaviour (``scale("1.005") == Decimal("1.01")``).
"""

from __future__ import annotations

from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Iterable

from invoice_kernel.logging_config import get_logger

logger = get_logger("domain.money")

MONEY_DECIMAL_PLACES = 2
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
ZERO = Decimal(0).quantize(MONEY_QUANTUM)

# Unbounded precision and exponent: sums and products are exact at any
# magnitude and only the final quantize rounds.
_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN, rounding=ROUND_HALF_UP)

Numeric = Decimal | int | str | float | None


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a raw numeric input to Decimal without rounding.

    Floats go through ``str()`` so ``1.005`` becomes ``Decimal("1.005")``
    rather than its binary approximation. ``None``, unparseable strings and
    NaN/Infinity become zero.
    """
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        # bool is an int subclass; True is not an amount
        logger.warning("money_input_normalized", extra={"raw_value": repr(value)})
        return Decimal(0)
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, (int, float)):
            result = Decimal(str(value))
        else:
            result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("money_input_normalized", extra={"raw_value": repr(value)})
        return Decimal(0)

    if not result.is_finite():
        logger.warning("money_input_normalized", extra={"raw_value": repr(value)})
        return Decimal(0)
    return result


def scale(value: Numeric) -> Decimal:
    """Round to two fraction digits, ROUND_HALF_UP. Absent input is 0.00."""
    return to_decimal(value).quantize(MONEY_QUANTUM, context=_CONTEXT)


def add(a: Numeric, b: Numeric) -> Decimal:
    """Scale both operands, add, scale the sum."""
    return scale(_CONTEXT.add(scale(a), scale(b)))


def sub(a: Numeric, b: Numeric) -> Decimal:
    """Scale both operands, subtract, scale the difference."""
    return scale(_CONTEXT.subtract(scale(a), scale(b)))


def mul(a: Numeric, b: Numeric) -> Decimal:
    """
    Scale both operands, multiply, scale the product.

    Note that both factors are rounded first: a quantity of ``2.555`` is
    multiplied as ``2.56``.
    """
    return scale(_CONTEXT.multiply(scale(a), scale(b)))


def percent(rate: Numeric) -> Decimal:
    """Convert a percentage (``10.00``) to a fraction (``0.1000``), unrounded."""
    return to_decimal(rate).scaleb(-2, context=_CONTEXT)


def total_of(values: Iterable[Numeric]) -> Decimal:
    """Fold ``add`` over values starting from 0.00."""
    result = ZERO
    for value in values:
        result = add(result, value)
    return result


def is_zero(value: Numeric) -> bool:
    return scale(value) == ZERO
