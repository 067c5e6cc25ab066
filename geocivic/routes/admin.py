"""
Admin endpoints - dispatch of open reports to field staff.

SCOPE OF ADMIN:
✅ Assign an OPEN report to a staff member (moves it to IN_PROGRESS)
✅ Browse every report with status filtering

❌ NOT resolve or verify reports (field staff and citizens do that on site)
❌ NOT edit report content or delete reports
❌ NOT move a report backwards in the workflow
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional

from geocivic.models.report import AssignRequest, ReportResponse
from geocivic.models.user import Actor, Role
from geocivic.routes.dependencies import get_current_actor
from geocivic.services.errors import WrongActor
from geocivic.services.report_lifecycle import get_report_lifecycle
from geocivic.utils.status_labels import normalize_status


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.put("/reports/{report_id}/assign", response_model=ReportResponse)
def assign_report(report_id: str, request: AssignRequest, actor: Actor = Depends(get_current_actor)):
    """
    Assign an OPEN report to a staff member.

    **Effects:**
    - assigned_staff set, status → IN_PROGRESS
    - Audit entry recorded
    - Staff member and citizen notified

    Raises:
        403: Caller is not an admin
        404: Report or staff member not found
        409: Report is not OPEN
    """
    return get_report_lifecycle().assign(
        actor,
        report_id,
        request.staff_id,
        expected_resolution_time=request.expected_resolution_time,
        comment=request.comment,
    )


@router.get("/reports", response_model=List[ReportResponse])
async def get_reports(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status (synonyms accepted)"),
    actor: Actor = Depends(get_current_actor)
):
    """Every report, newest first (admin dashboard)."""
    if actor.role != Role.ADMIN:
        raise WrongActor("Only admins can browse the admin report list")
    try:
        canonical = normalize_status(status_filter)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return get_report_lifecycle().list_all(status=canonical)
