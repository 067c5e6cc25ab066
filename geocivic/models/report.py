"""
Pydantic models for civic issue reports.
These models handle validation for report submission and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class Category(str, Enum):
    """Fixed set of issue categories a citizen can file under."""
    ROADS = "Roads"
    WASTE_MANAGEMENT = "Waste Management"
    STREET_LIGHTING = "Street Lighting"
    WATER_LEAKAGE = "Water Leakage"
    PUBLIC_PARKS = "Public Parks"
    OTHER = "Other"


class ReportCreate(BaseModel):
    """
    Fields a citizen provides when filing a report.

    Title and location emptiness is checked by the lifecycle so that a blank
    location can first be back-filled from coordinates.
    """
    title: str = Field(..., max_length=200, description="Short summary of the issue")
    category: str = Field(..., max_length=100, description="One of the Category values")
    location: str = Field("", max_length=500, description="Free-text address or landmark")
    description: str = Field("", max_length=2000, description="What the citizen observed")
    latitude: Optional[float] = Field(None, description="Issue latitude (optional)")
    longitude: Optional[float] = Field(None, description="Issue longitude (optional)")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Deep pothole near bus stop",
                "category": "Roads",
                "location": "MG Road, Bengaluru",
                "description": "Two-wheelers are swerving into traffic to avoid it.",
                "latitude": 12.9716,
                "longitude": 77.5946,
            }
        }
        extra = "ignore"


class ResolutionProof(BaseModel):
    """Staff evidence captured on the RESOLVED transition."""
    evidence_ref: str = Field(..., description="EvidenceStore reference of the proof photo")
    latitude: float = Field(..., description="Staff latitude at time of resolve")
    longitude: float = Field(..., description="Staff longitude at time of resolve")
    distance_meters: Optional[float] = Field(None, description="Measured distance to the issue, if it has coordinates")
    resolved_at: datetime


class ReportResponse(BaseModel):
    """Model for report responses (what the API returns)."""
    id: str = Field(..., description="Firestore document ID")
    title: str
    category: str
    location: str
    description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    evidence_ref: Optional[str] = Field(None, description="Citizen photo reference")
    status: str = Field(..., description="OPEN, IN_PROGRESS, RESOLVED or CLOSED")
    created_by: str
    assigned_staff: Optional[str] = None
    assigned_staff_name: Optional[str] = None
    expected_resolution_time: Optional[datetime] = None
    resolution_proof: Optional[ResolutionProof] = None
    verified_at: Optional[datetime] = None
    upvote_count: int = 0
    version: int = 1
    created_at: datetime
    updated_at: Optional[datetime] = None


class StatusUpdateResponse(BaseModel):
    """Audit trail entry; one per lifecycle transition."""
    id: str
    report_id: str
    status: str
    comment: Optional[str] = None
    changed_by: str
    created_at: datetime


class AssignRequest(BaseModel):
    """Admin dispatch of an OPEN report to a staff member."""
    staff_id: str = Field(..., min_length=1, description="User id of a STAFF member")
    expected_resolution_time: Optional[datetime] = Field(None, description="Optional ETA shown to the citizen")
    comment: Optional[str] = Field(None, max_length=500, description="Optional note for the audit trail")


class VerifyRequest(BaseModel):
    """Citizen on-site confirmation of a RESOLVED report."""
    latitude: Optional[float] = Field(None, description="Citizen GPS latitude")
    longitude: Optional[float] = Field(None, description="Citizen GPS longitude")
    comment: Optional[str] = Field(None, max_length=500)
