"""
Invoice status workflow (``invoice_kernel.domain.workflow``).

Responsibility
--------------
Declares the invoice lifecycle as frozen ``Workflow`` / ``Transition``
values and derives the status a recompute should land on.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and functions.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* DRAFT leaves only through the explicit ``finalize`` action; recompute
  never advances a DRAFT invoice.
* PARTIALLY_PAID and PAID are entered only through ``recompute``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from invoice_kernel.domain.invoice import InvoiceStatus
from invoice_kernel.exceptions import InvalidStatusTransitionError
from invoice_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")

FINALIZE = "finalize"
RECOMPUTE = "recompute"


@dataclass(frozen=True)
class Guard:
    """A condition that must hold before a transition fires.

    Descriptive only; ``derive_status`` evaluates the conditions.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid status transition."""
    from_state: InvoiceStatus
    to_state: InvoiceStatus
    action: str
    guard: Guard | None = None
    assigns_number: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for the invoice lifecycle."""
    name: str
    description: str
    initial_state: InvoiceStatus
    states: tuple[InvoiceStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[InvoiceStatus, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"initial_state {self.initial_state} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"Transition {t.from_state} -> {t.to_state} uses undeclared state")

    def find(self, from_state: InvoiceStatus, to_state: InvoiceStatus) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def allowed_from(self, state: InvoiceStatus) -> tuple[InvoiceStatus, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == state)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

BALANCE_ZERO = Guard(
    name="balance_zero",
    description="Balance due is exactly 0.00 and at least one payment exists",
)

PAYMENT_RECEIVED = Guard(
    name="payment_received",
    description="Sum of payments is greater than zero",
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Customer invoice lifecycle",
    initial_state=InvoiceStatus.DRAFT,
    states=tuple(InvoiceStatus),
    transitions=(
        Transition(InvoiceStatus.DRAFT, InvoiceStatus.SENT, action=FINALIZE, assigns_number=True),
        Transition(InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, action=RECOMPUTE, guard=PAYMENT_RECEIVED),
        Transition(InvoiceStatus.SENT, InvoiceStatus.PAID, action=RECOMPUTE, guard=BALANCE_ZERO),
        Transition(InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, action=RECOMPUTE, guard=BALANCE_ZERO),
        # Items edited upward after settlement
        Transition(InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID, action=RECOMPUTE, guard=PAYMENT_RECEIVED),
        Transition(InvoiceStatus.OVERDUE, InvoiceStatus.PARTIALLY_PAID, action=RECOMPUTE, guard=PAYMENT_RECEIVED),
        Transition(InvoiceStatus.OVERDUE, InvoiceStatus.PAID, action=RECOMPUTE, guard=BALANCE_ZERO),
    ),
    terminal_states=(InvoiceStatus.VOID,),
)

# Statuses recompute never touches
_FROZEN_BY_RECOMPUTE = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.VOID})


def derive_status(
    current: InvoiceStatus,
    balance_due: Decimal,
    paid: Decimal,
    payment_count: int,
) -> InvoiceStatus:
    """
    Status a recompute should produce from freshly computed figures.

    Rules, first match wins:
        - DRAFT and VOID are returned unchanged.
        - balance_due == 0 with at least one payment -> PAID.
        - paid > 0 -> PARTIALLY_PAID (this includes overpayment, where
          balance_due is negative).
        - otherwise the current status is kept; there is no demotion
          back to an unpaid state.
    """
    if current in _FROZEN_BY_RECOMPUTE:
        return current
    if balance_due == 0 and payment_count > 0:
        return InvoiceStatus.PAID
    if paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return current


def require_transition(
    invoice_id: str,
    from_state: InvoiceStatus,
    to_state: InvoiceStatus,
    action: str,
    workflow: Workflow = INVOICE_WORKFLOW,
) -> Transition:
    """
    Look up a declared transition for ``action``.

    Raises:
        InvalidStatusTransitionError: If the workflow does not declare
            ``from_state -> to_state`` for this action.
    """
    transition = workflow.find(from_state, to_state)
    if transition is None or transition.action != action:
        logger.warning(
            "invoice_status_transition_rejected",
            extra={
                "invoice_id": invoice_id,
                "from_status": from_state.value,
                "to_status": to_state.value,
                "action": action,
                "allowed": [s.value for s in workflow.allowed_from(from_state)],
            },
        )
        raise InvalidStatusTransitionError(invoice_id, from_state.value, to_state.value)
    return transition
