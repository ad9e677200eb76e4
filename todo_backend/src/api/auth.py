from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from .errors import AuthError
from .settings import get_settings
from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """An authenticated caller. Only `user_id` is used for scoping."""

    user_id: str
    name: Optional[str] = None


@lru_cache(maxsize=None)
def _store_for(path: str) -> Store:
    return Store(path)


# PUBLIC_INTERFACE
def get_store() -> Store:
    """FastAPI dependency returning the process-wide relational store."""
    return _store_for(get_settings().sqlite_db_path)


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if header:
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    cookie = request.cookies.get(get_settings().session_cookie_name)
    return cookie or None


# PUBLIC_INTERFACE
def resolve_identity(store: Store, token: Optional[str], now: Optional[datetime] = None) -> Optional[Identity]:
    """
    Look up the session for `token` and return its identity.

    Expired sessions are deleted and treated as absent.
    """
    if not token:
        return None
    rows = store.query(
        """
        SELECT s.user_id, s.expires_at, u.name
        FROM session s
        JOIN "user" u ON u.id = s.user_id
        WHERE s.token = ?
        """,
        (token,),
    )
    if not rows:
        logger.debug("no session for presented token")
        return None
    row = rows[0]
    expires_at = row["expires_at"]
    if expires_at is not None and datetime.fromisoformat(expires_at) < (now or datetime.now()):
        logger.info("session for user %s expired", row["user_id"])
        store.execute("DELETE FROM session WHERE token = ?", (token,))
        return None
    return Identity(user_id=str(row["user_id"]), name=row["name"])


# PUBLIC_INTERFACE
def get_optional_identity(request: Request, store: Store = Depends(get_store)) -> Optional[Identity]:
    """FastAPI dependency: the caller's identity, or None when no valid session is presented."""
    return resolve_identity(store, _token_from_request(request))


# PUBLIC_INTERFACE
def require_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    """FastAPI dependency: the caller's identity; raises AuthError (401) when absent."""
    if identity is None:
        raise AuthError()
    return identity


def ensure_user(store: Store, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> None:
    """Create the user row if missing. Accounts normally come from the external auth provider."""
    store.execute(
        'INSERT OR IGNORE INTO "user" (id, name, email, created_at) VALUES (?, ?, ?, ?)',
        (user_id, name, email, datetime.now().isoformat()),
    )


def issue_session(store: Store, user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """
    Create a session row for `user_id` and return its token.

    Used for seeding and tests; production sessions are issued by the auth provider.
    """
    token = secrets.token_urlsafe(32)
    expires_at = (datetime.now() + expires_in).isoformat() if expires_in else None
    store.execute(
        "INSERT INTO session (token, user_id, expires_at) VALUES (?, ?, ?)",
        (token, user_id, expires_at),
    )
    return token
