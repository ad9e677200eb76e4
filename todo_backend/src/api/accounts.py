from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .db import DEFAULT_NOTIFICATION_SETTINGS, SQLAccountRepository
from .errors import NotFoundError, StoreError, ValidationError, failing_as
from .models import NotificationSettingsEntity

logger = logging.getLogger(__name__)


class AccountService:
    """Display name and notification preferences of one identity."""

    def __init__(self, repository: SQLAccountRepository, now: Callable[[], datetime] = datetime.now) -> None:
        self._repo = repository
        self._now = now

    def update_profile_name(self, name: str) -> None:
        label = (name or "").strip()
        if not label:
            raise ValidationError("Name must not be empty")
        with failing_as("update profile name", logger):
            updated = self._repo.update_name(label)
        if not updated:
            raise NotFoundError("User not found")

    def get_notification_settings(self) -> NotificationSettingsEntity:
        """Stored preferences, or the defaults when none are stored or the store fails."""
        try:
            return self._repo.get_notification_settings()
        except StoreError as exc:
            logger.error("Failed to fetch notification settings: %s", exc.detail)
            return dict(DEFAULT_NOTIFICATION_SETTINGS)  # type: ignore[return-value]

    def update_notification_settings(self, settings: NotificationSettingsEntity) -> NotificationSettingsEntity:
        with failing_as("update notification settings", logger):
            self._repo.upsert_notification_settings(settings, self._now())
        return settings
