"""
User models: roles, registration and the explicit request actor.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class Role(str, Enum):
    CITIZEN = "CITIZEN"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """
    Who is performing a lifecycle call.

    Passed explicitly into every lifecycle operation; never read from
    ambient state.
    """
    id: str
    role: Role

    class Config:
        frozen = True


class UserCreate(BaseModel):
    """Model for registering a user."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    role: Role = Field(default=Role.CITIZEN, description="CITIZEN, STAFF or ADMIN")
    email: Optional[str] = Field(None, max_length=200, description="Contact email (optional)")


class UserUpdate(BaseModel):
    """Profile fields a user may change. Role is not editable here."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    area: Optional[str] = Field(None, max_length=200, description="Home ward or neighbourhood")


class UserResponse(BaseModel):
    """Model for user responses."""
    id: str = Field(..., description="Firestore document ID")
    name: str
    role: Role
    email: Optional[str] = None
    phone: Optional[str] = None
    area: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
