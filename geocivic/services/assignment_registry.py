"""
Assignment Registry - which staff member owns which report.

The registry validates staff identities and stages assignment fields into
the lifecycle's transition batch; it never commits on its own, so an
assignment can only land together with the IN_PROGRESS status change.
"""

from geocivic.config.firebase import get_db
from geocivic.services.errors import StaffNotFound
from geocivic.services.user_service import UserService, get_user_service
from geocivic.utils.firestore_helpers import where_filter, snapshot_to_dict
from firebase_admin import firestore
from datetime import datetime
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class AssignmentRegistry:

    REPORTS_COLLECTION = "reports"

    def __init__(self, db=None, user_service: Optional[UserService] = None):
        self.db = db if db is not None else get_db()
        self.user_service = user_service or get_user_service()

    def require_staff(self, staff_id: str) -> Dict:
        """
        Resolve a staff identity.

        Raises:
            StaffNotFound: If staff_id is not a known STAFF user
        """
        staff = self.user_service.get_staff(staff_id)
        if staff is None:
            logger.warning(f"Assignment refused: {staff_id!r} is not a staff member")
            raise StaffNotFound(staff_id)
        return staff

    def assign(
        self,
        batch,
        report_ref,
        staff_id: str,
        expected_resolution_time: Optional[datetime] = None
    ) -> Dict:
        """
        Stage the assignment of a report to a staff member.

        Args:
            batch: The caller's write batch (committed by the caller)
            report_ref: Document reference of the report
            staff_id: User id of the staff member
            expected_resolution_time: Optional ETA shown to the citizen

        Returns:
            The assignment fields written to the report

        Raises:
            StaffNotFound: If staff_id is not a known STAFF user
        """
        staff = self.require_staff(staff_id)
        fields = {
            "assigned_staff": staff["id"],
            "assigned_staff_name": staff.get("name"),
            "expected_resolution_time": expected_resolution_time,
        }
        batch.update(report_ref, fields)
        return fields

    def tasks_for(self, staff_id: str) -> List[Dict]:
        """
        Reports assigned to a staff member, oldest first.

        Ties on created_at are broken by report id so the order is stable
        across calls.
        """
        query = where_filter(self.db.collection(self.REPORTS_COLLECTION), "assigned_staff", "==", staff_id)
        query = query.order_by("created_at", direction=firestore.Query.ASCENDING)
        return sorted(
            (snapshot_to_dict(doc) for doc in query.stream()),
            key=lambda report: (report["created_at"], report["id"]),
        )


# Global service instance
_assignment_registry = None


def get_assignment_registry() -> AssignmentRegistry:
    """Get or create AssignmentRegistry singleton."""
    global _assignment_registry
    if _assignment_registry is None:
        _assignment_registry = AssignmentRegistry()
    return _assignment_registry
