"""
Report endpoints - citizen filing, field resolution and on-site verification.

Endpoints that notify are plain functions and run in the threadpool,
so notification retries never block the event loop.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
import logging

from geocivic.core.settings import settings
from geocivic.models.report import ReportCreate, ReportResponse, StatusUpdateResponse, VerifyRequest
from geocivic.models.user import Actor
from geocivic.routes.dependencies import get_current_actor
from geocivic.services.errors import GeoCivicError
from geocivic.services.report_lifecycle import get_report_lifecycle
from geocivic.utils.geo import Coordinate
from geocivic.utils.status_labels import normalize_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def read_upload(upload: Optional[UploadFile]) -> Optional[bytes]:
    """Read an uploaded image, enforcing EVIDENCE_MAX_BYTES. Empty uploads read as None."""
    if upload is None:
        return None
    data = upload.file.read()
    if len(data) > settings.EVIDENCE_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds {settings.EVIDENCE_MAX_BYTES} bytes"
        )
    return data or None


def gps_or_none(latitude: Optional[float], longitude: Optional[float]) -> Optional[Coordinate]:
    if latitude is None or longitude is None:
        return None
    return Coordinate(latitude, longitude)


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def submit_report(
    title: str = Form(...),
    category: str = Form(...),
    location: str = Form(""),
    description: str = Form(""),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    image: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
):
    """
    File a new civic issue report.

    Multipart form: report fields plus an optional citizen photo.
    Returns the created report in OPEN status.
    """
    try:
        logger.info(f"📝 POST /reports - category={category}, user={actor.id}")
        report_data = ReportCreate(
            title=title,
            category=category,
            location=location,
            description=description,
            latitude=latitude,
            longitude=longitude,
        )
        image_bytes = read_upload(image)
        return get_report_lifecycle().create(
            actor,
            report_data,
            image=image_bytes,
            image_filename=image.filename if image else None,
            image_content_type=image.content_type if image else None,
        )
    except (HTTPException, GeoCivicError):
        raise
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in e.errors()]
        )
    except Exception as e:
        logger.error(f"❌ POST /reports - Report creation failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Report creation failed: {str(e)}"
        )


@router.get("", response_model=List[ReportResponse])
async def get_reports(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status (synonyms accepted)")
):
    try:
        canonical = normalize_status(status_filter)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return get_report_lifecycle().list_all(status=canonical)


@router.get("/mine", response_model=List[ReportResponse])
async def get_my_reports(actor: Actor = Depends(get_current_actor)):
    """Reports filed by the current user, newest first."""
    return get_report_lifecycle().list_for_user(actor.id)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str):
    return get_report_lifecycle().get(report_id)


@router.get("/{report_id}/updates", response_model=List[StatusUpdateResponse])
async def get_report_updates(report_id: str):
    """Audit trail of status changes, oldest first."""
    return get_report_lifecycle().get_updates(report_id)


@router.post("/{report_id}/upvote", response_model=ReportResponse)
async def upvote_report(report_id: str, actor: Actor = Depends(get_current_actor)):
    return get_report_lifecycle().upvote(actor, report_id)


@router.put("/{report_id}/resolve", response_model=ReportResponse)
def resolve_report(
    report_id: str,
    proof_image: Optional[UploadFile] = File(None),
    staff_lat: Optional[float] = Form(None),
    staff_lng: Optional[float] = Form(None),
    comment: Optional[str] = Form(None),
    actor: Actor = Depends(get_current_actor),
):
    """
    Resolve an assigned report from the field.

    Requires the assigned staff member, a proof photo, and staff GPS within
    the staff geofence of the issue. A geofence failure returns 422 with the
    measured distance.
    """
    proof = read_upload(proof_image)
    return get_report_lifecycle().resolve(
        actor,
        report_id,
        proof=proof,
        staff_location=gps_or_none(staff_lat, staff_lng),
        proof_filename=proof_image.filename if proof_image else None,
        proof_content_type=proof_image.content_type if proof_image else None,
        comment=comment,
    )


@router.put("/{report_id}/verify", response_model=ReportResponse)
def verify_report(report_id: str, request: VerifyRequest, actor: Actor = Depends(get_current_actor)):
    """
    Confirm a resolved report on site and close it.

    Requires the citizen who filed it, within the citizen geofence.
    """
    return get_report_lifecycle().verify(
        actor,
        report_id,
        citizen_location=gps_or_none(request.latitude, request.longitude),
        comment=request.comment,
    )
