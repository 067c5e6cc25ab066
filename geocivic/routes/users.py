"""
User endpoints - registration, civic coins and the notification inbox.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List
import logging

from geocivic.models.ledger import BalanceResponse, LedgerEntryResponse, LedgerReason, RedeemRequest
from geocivic.models.notification import NotificationResponse
from geocivic.models.user import Actor, UserCreate, UserResponse, UserUpdate
from geocivic.routes.dependencies import get_current_actor, require_self_or_admin
from geocivic.services.coin_ledger import get_coin_ledger
from geocivic.services.errors import WrongActor
from geocivic.services.notification_service import get_notification_service
from geocivic.services.user_service import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(request: UserCreate):
    """
    Register a user with a role.

    Account provisioning (who may create STAFF/ADMIN users) is handled by the
    upstream auth layer.
    """
    return get_user_service().create_user(name=request.name, role=request.role, email=request.email)


@router.get("/staff", response_model=List[UserResponse])
async def get_staff_users():
    """All staff members (admin assignment dropdown)."""
    return get_user_service().list_staff()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_profile(user_id: str):
    return get_user_service().require_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_profile(user_id: str, request: UserUpdate, actor: Actor = Depends(get_current_actor)):
    """Update profile fields (name, email, phone, area). Self or admin only."""
    require_self_or_admin(actor, user_id)
    return get_user_service().update_profile(user_id, request.model_dump(exclude_unset=True))


@router.get("/{user_id}/balance", response_model=BalanceResponse)
async def get_balance(user_id: str, actor: Actor = Depends(get_current_actor)):
    require_self_or_admin(actor, user_id)
    return BalanceResponse(user_id=user_id, balance=get_coin_ledger().balance(user_id))


@router.get("/{user_id}/ledger", response_model=List[LedgerEntryResponse])
async def get_ledger(user_id: str, actor: Actor = Depends(get_current_actor)):
    """Civic coin history, newest first."""
    require_self_or_admin(actor, user_id)
    return get_coin_ledger().history(user_id)


@router.post("/{user_id}/redeem", response_model=BalanceResponse)
async def redeem_coins(user_id: str, request: RedeemRequest, actor: Actor = Depends(get_current_actor)):
    """
    Spend civic coins.

    Returns 409 with the current balance unchanged when the amount exceeds it.
    """
    if actor.id != user_id:
        raise WrongActor("You can only redeem your own civic coins")
    new_balance = get_coin_ledger().debit(user_id, request.amount, LedgerReason.REWARD_REDEEMED, note=request.item)
    logger.info(f"User {user_id} redeemed {request.amount} coins for {request.item or 'unspecified item'}")
    return BalanceResponse(user_id=user_id, balance=new_balance)


@router.get("/{user_id}/notifications")
async def get_notifications(
    user_id: str,
    unread_only: bool = Query(False, description="Only unread notifications"),
    actor: Actor = Depends(get_current_actor)
):
    """Notification inbox, newest first, with the unread count (polled by clients)."""
    require_self_or_admin(actor, user_id)
    dispatcher = get_notification_service()
    notifications = dispatcher.list_for_user(user_id, unread_only=unread_only)
    return {
        "unread_count": dispatcher.unread_count(user_id),
        "notifications": [NotificationResponse(**n) for n in notifications],
    }


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: str, actor: Actor = Depends(get_current_actor)):
    """Acknowledge a notification. Acknowledging it again is a no-op."""
    dispatcher = get_notification_service()
    notification = dispatcher.get(notification_id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification {notification_id} not found"
        )
    if notification["recipient_id"] != actor.id:
        raise WrongActor("You can only acknowledge your own notifications")
    return dispatcher.mark_read(notification_id)
