"""
Staff endpoints - a field worker's task list.
"""

from fastapi import APIRouter, Depends
from typing import List

from geocivic.models.report import ReportResponse
from geocivic.models.user import Actor, Role
from geocivic.routes.dependencies import get_current_actor
from geocivic.services.errors import WrongActor
from geocivic.services.report_lifecycle import get_report_lifecycle


router = APIRouter(prefix="/staff", tags=["Staff"])


@router.get("/tasks", response_model=List[ReportResponse])
async def get_my_tasks(actor: Actor = Depends(get_current_actor)):
    """Reports assigned to the calling staff member, oldest first."""
    if actor.role != Role.STAFF:
        raise WrongActor("Only staff members have a task list")
    return get_report_lifecycle().list_for_staff(actor.id)
