"""Invoice status vocabulary.

Stored statuses keep the alias the user picked; aggregation and filtering work on
the canonical lifecycle state so that ``due``/``sent`` and ``unpaid``/``overdue``
are always treated identically.
"""

DRAFT = "draft"
DUE = "due"
SENT = "sent"
UNPAID = "unpaid"
OVERDUE = "overdue"
PAID = "paid"
VOID = "void"

INVOICE_STATUSES = (DRAFT, DUE, UNPAID, PAID, VOID, SENT, OVERDUE)

# alias -> canonical lifecycle state
CANONICAL_STATUS = {
    DRAFT: DRAFT,
    DUE: "awaiting",
    SENT: "awaiting",
    UNPAID: "late",
    OVERDUE: "late",
    PAID: PAID,
    VOID: VOID,
}

OUTSTANDING_STATUSES = frozenset({DUE, UNPAID, SENT, OVERDUE})
DUE_STATUSES = frozenset({DUE, SENT})
OVERDUE_STATUSES = frozenset({OVERDUE})
PAID_STATUSES = frozenset({PAID})


def canonical_status(status: str) -> str:
    return CANONICAL_STATUS.get(status, status)


def expand_status_filter(wanted: str) -> tuple:
    """Stored statuses matched by a listing filter; ``due`` also matches ``sent`` and ``unpaid`` also matches ``overdue``."""
    canonical = canonical_status(wanted)
    return tuple(status for status in INVOICE_STATUSES if canonical_status(status) == canonical)
