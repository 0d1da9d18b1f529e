"""Amendment status transitions, event types, and order guards."""

from __future__ import annotations

from orderdesk.models.enums import AmendmentStatus

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

AMENDMENT_TRANSITIONS: dict[AmendmentStatus, set[AmendmentStatus]] = {
    AmendmentStatus.DRAFT: {
        AmendmentStatus.APPLIED,
    },
    AmendmentStatus.PENDING_APPROVAL: {
        AmendmentStatus.APPROVED,
        AmendmentStatus.REJECTED,
    },
    AmendmentStatus.APPROVED: {
        AmendmentStatus.APPLIED,
    },
}

TERMINAL_AMENDMENT_STATUSES: set[AmendmentStatus] = {
    AmendmentStatus.REJECTED,
    AmendmentStatus.APPLIED,
}

AMENDMENT_NUMBER_PREFIX = "AMD"

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

EVENT_AMENDMENT_CREATED = "amendment.created"
EVENT_AMENDMENT_APPROVED = "amendment.approved"
EVENT_AMENDMENT_REJECTED = "amendment.rejected"
EVENT_AMENDMENT_APPLIED = "amendment.applied"
