"""
Status Workflow Engine - strict report state machine.

DESIGN PRINCIPLES:
- No skipping states
- No backward transitions
- Every transition produces exactly one status_updates audit entry
- Invalid transitions rejected programmatically
"""

from enum import Enum
from typing import Dict, List, Optional
import logging

from geocivic.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    """
    Canonical report lifecycle.

    States must be traversed in order:
    OPEN → IN_PROGRESS → RESOLVED → CLOSED
    """
    OPEN = "OPEN"                  # Filed by a citizen, awaiting dispatch
    IN_PROGRESS = "IN_PROGRESS"    # Assigned to a staff member
    RESOLVED = "RESOLVED"          # Staff submitted on-site proof
    CLOSED = "CLOSED"              # Citizen verified on site, terminal


class Transition(str, Enum):
    """Named lifecycle operations and the status each one produces."""
    CREATE = "create"
    ASSIGN = "assign"
    RESOLVE = "resolve"
    VERIFY = "verify"


class StatusWorkflowEngine:
    """
    Strict state machine for report status transitions.

    Rules:
    - No skipping states
    - No backward transitions
    - All transitions logged
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.OPEN: [ReportStatus.IN_PROGRESS],
        ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED],
        ReportStatus.RESOLVED: [ReportStatus.CLOSED],
        ReportStatus.CLOSED: []  # Terminal state, no transitions allowed
    }

    # Status a report must be in for each transition, and the status it moves to.
    TRANSITION_STATES: Dict[Transition, tuple] = {
        Transition.ASSIGN: (ReportStatus.OPEN, ReportStatus.IN_PROGRESS),
        Transition.RESOLVE: (ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED),
        Transition.VERIFY: (ReportStatus.RESOLVED, ReportStatus.CLOSED),
    }

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid.

        Unlike a generic workflow, re-entering the same status is NOT a no-op
        here: every lifecycle operation must advance the report.
        """
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def source_and_target(cls, transition: Transition) -> tuple:
        """(required current status, resulting status) for a transition."""
        return cls.TRANSITION_STATES[transition]

    @classmethod
    def create_status_update_entry(
        cls,
        report_id: str,
        status: ReportStatus,
        changed_by: str,
        comment: Optional[str] = None
    ) -> Dict:
        """
        Create a status_updates audit document.

        Args:
            report_id: Report the entry belongs to
            status: Status value at the time of the entry
            changed_by: Actor identifier
            comment: Optional note shown in the report timeline

        Returns:
            Document dict ready to be written in the transition batch
        """
        return {
            "report_id": report_id,
            "status": status.value,
            "comment": comment,
            "changed_by": changed_by,
            "created_at": utc_now(),
        }
