from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from ..accounts import AccountService
from ..auth import Identity, get_optional_identity, get_store, require_identity
from ..db import DEFAULT_NOTIFICATION_SETTINGS, SQLAccountRepository
from ..lifecycle import Clock, get_clock
from ..schemas import NotificationSettings, ProfileUpdate
from ..store import Store

router = APIRouter(
    prefix="/api/v1/me",
    tags=["me"],
)


def get_account_service(
    identity: Identity = Depends(require_identity),
    store: Store = Depends(get_store),
    now: Clock = Depends(get_clock),
) -> AccountService:
    return AccountService(SQLAccountRepository(store, identity.user_id), now=now)


# PUBLIC_INTERFACE
@router.patch(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update Profile Name",
)
def update_profile(payload: ProfileUpdate, service: AccountService = Depends(get_account_service)) -> Response:
    service.update_profile_name(payload.name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.get(
    "/notifications",
    response_model=NotificationSettings,
    summary="Get Notification Settings",
    description="Stored notification preferences, or the defaults when none are stored.",
)
def get_notification_settings(
    identity: Optional[Identity] = Depends(get_optional_identity),
    store: Store = Depends(get_store),
) -> NotificationSettings:
    if identity is None:
        return NotificationSettings(**DEFAULT_NOTIFICATION_SETTINGS)
    service = AccountService(SQLAccountRepository(store, identity.user_id))
    return NotificationSettings(**service.get_notification_settings())


# PUBLIC_INTERFACE
@router.put(
    "/notifications",
    response_model=NotificationSettings,
    summary="Save Notification Settings",
)
def put_notification_settings(
    payload: NotificationSettings, service: AccountService = Depends(get_account_service)
) -> NotificationSettings:
    saved = service.update_notification_settings(payload.model_dump())  # type: ignore[arg-type]
    return NotificationSettings(**saved)
