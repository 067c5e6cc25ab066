"""
Civic coin ledger models.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class LedgerReason(str, Enum):
    REPORT_FILED = "REPORT_FILED"
    ISSUE_RESOLVED = "ISSUE_RESOLVED"
    RESOLUTION_VERIFIED = "RESOLUTION_VERIFIED"
    REWARD_REDEEMED = "REWARD_REDEEMED"


class LedgerEntryResponse(BaseModel):
    id: str
    user_id: str
    delta: int = Field(..., description="Signed amount in civic coins")
    reason: LedgerReason
    report_id: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime


class BalanceResponse(BaseModel):
    user_id: str
    balance: int


class RedeemRequest(BaseModel):
    """Debit request from the (external) rewards flow."""
    amount: int = Field(..., gt=0, description="Coins to spend")
    item: Optional[str] = Field(None, max_length=200, description="What the coins were spent on")
