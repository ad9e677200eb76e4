from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .db import SQLFolderRepository
from .errors import NotFoundError, StoreError, ValidationError, failing_as
from .models import FolderEntity

logger = logging.getLogger(__name__)


class FolderService:
    """Folder CRUD for one owner. Deleting a folder detaches its todos instead of deleting them."""

    def __init__(
        self,
        repository: SQLFolderRepository,
        default_color: str = "blue-500",
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repository
        self._default_color = default_color
        self._now = now

    def list(self) -> List[FolderEntity]:
        try:
            return self._repo.list()
        except StoreError as exc:
            logger.error("Failed to fetch folders: %s", exc.detail)
            return []

    def create(self, name: str, color: Optional[str] = None) -> FolderEntity:
        label = (name or "").strip()
        if not label:
            raise ValidationError("Folder name must not be empty")
        with failing_as("create folder", logger):
            return self._repo.create(str(uuid.uuid4()), label, color or self._default_color, self._now())

    def update(self, folder_id: str, name: Optional[str] = None, color: Optional[str] = None) -> Optional[FolderEntity]:
        """Rename and/or recolor. Returns None when neither is given."""
        fields: Dict[str, str] = {}
        if name is not None:
            label = name.strip()
            if not label:
                raise ValidationError("Folder name must not be empty")
            fields["name"] = label
        if color is not None:
            fields["color"] = color
        if not fields:
            return None
        with failing_as("update folder", logger):
            updated = self._repo.update(folder_id, fields)
        if updated is None:
            raise NotFoundError("Folder not found")
        return updated

    def delete(self, folder_id: str) -> None:
        with failing_as("delete folder", logger):
            removed = self._repo.delete(folder_id)
        if not removed:
            raise NotFoundError("Folder not found")
