"""
State machine for gatepass requests.
ALL status transitions must go through this module's tables.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from gatepass.models.gatepass_request import GatepassStatus


class GatepassEvent(str, Enum):
    """Actions that move a request between statuses"""
    PARENT_APPROVE = "parent_approve"
    PARENT_REJECT = "parent_reject"
    WARDEN_APPROVE = "warden_approve"
    WARDEN_DENY = "warden_deny"
    COMPLETE = "complete"


# Define allowed status transitions
ALLOWED_TRANSITIONS: Dict[GatepassStatus, list[GatepassStatus]] = {
    GatepassStatus.PENDING_PARENT_APPROVAL: [
        GatepassStatus.APPROVED_BY_PARENT,
        GatepassStatus.REJECTED_BY_PARENT,
    ],
    GatepassStatus.APPROVED_BY_PARENT: [
        GatepassStatus.WARDEN_APPROVED,
        GatepassStatus.WARDEN_DENIED,
    ],
    GatepassStatus.WARDEN_APPROVED: [GatepassStatus.COMPLETED],  # Student returned
    GatepassStatus.REJECTED_BY_PARENT: [],  # Terminal state
    GatepassStatus.WARDEN_DENIED: [],  # Terminal state
    GatepassStatus.COMPLETED: [],  # Terminal state
}

# Each event is valid from exactly one status
EVENT_TRANSITIONS: Dict[GatepassEvent, Tuple[GatepassStatus, GatepassStatus]] = {
    GatepassEvent.PARENT_APPROVE: (GatepassStatus.PENDING_PARENT_APPROVAL, GatepassStatus.APPROVED_BY_PARENT),
    GatepassEvent.PARENT_REJECT: (GatepassStatus.PENDING_PARENT_APPROVAL, GatepassStatus.REJECTED_BY_PARENT),
    GatepassEvent.WARDEN_APPROVE: (GatepassStatus.APPROVED_BY_PARENT, GatepassStatus.WARDEN_APPROVED),
    GatepassEvent.WARDEN_DENY: (GatepassStatus.APPROVED_BY_PARENT, GatepassStatus.WARDEN_DENIED),
    GatepassEvent.COMPLETE: (GatepassStatus.WARDEN_APPROVED, GatepassStatus.COMPLETED),
}


def can_transition(from_status: GatepassStatus, to_status: GatepassStatus) -> bool:
    """Check if a transition is allowed without touching the database"""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def is_terminal(status: GatepassStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def resolve_event(event: GatepassEvent) -> Tuple[GatepassStatus, GatepassStatus]:
    """Return the (from, to) pair for an event, validated against the status graph."""
    from_status, to_status = EVENT_TRANSITIONS[event]
    if not can_transition(from_status, to_status):
        raise ValueError(f"Event {event.value} maps to a disallowed transition")
    return from_status, to_status


def derived_fields(
    to_status: GatepassStatus,
    now: datetime,
    rejection_reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Compute every column written alongside a status change.

    Status, derived fields and updated_at are applied in a single UPDATE, so
    a transition either commits fully or not at all.
    """
    fields: Dict[str, Any] = {"status": to_status, "updated_at": now}

    if to_status == GatepassStatus.APPROVED_BY_PARENT:
        fields["parent_approved_at"] = now
    elif to_status == GatepassStatus.REJECTED_BY_PARENT:
        fields["parent_approved_at"] = now
        if rejection_reason:
            fields["parent_rejection_reason"] = rejection_reason
    elif to_status == GatepassStatus.WARDEN_APPROVED:
        fields["warden_approved_at"] = now
        fields["warden_notes"] = notes
    elif to_status == GatepassStatus.WARDEN_DENIED:
        fields["warden_notes"] = notes
    elif to_status == GatepassStatus.COMPLETED:
        fields["completed_at"] = now
    elif to_status == GatepassStatus.PENDING_PARENT_APPROVAL:
        # Only reachable through creation, never through an update
        raise ValueError("Cannot transition back to Pending Parent Approval")
    else:
        raise ValueError(f"Unhandled gatepass status: {to_status!r}")

    return fields
