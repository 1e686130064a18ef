# src/taskpilot/core/session.py

"""
Signed-in session.

Replaces a shared auth singleton: the Session is constructed once by the composition root
and passed to every component that needs the token. `invalidate()` is wired as the HTTP
transport's 401 hook so an expired token forces a logout everywhere at once.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .errors import Unauthorized
from .models import AuthUser
from .ports import CredentialStore
from .state import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionState:
    token: str | None = None
    user: AuthUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


class Session:
    def __init__(self, credentials: CredentialStore) -> None:
        self._credentials = credentials
        self.store: StateStore[SessionState] = StateStore(SessionState())

    @property
    def state(self) -> SessionState:
        return self.store.snapshot

    @property
    def token(self) -> str | None:
        return self.store.snapshot.token

    @property
    def is_authenticated(self) -> bool:
        return self.store.snapshot.is_authenticated

    def restore(self) -> bool:
        """Auto-login from stored credentials. Returns True when a token was found."""
        saved = self._credentials.load()
        if not saved:
            return False
        token, user = saved
        self.store.set(SessionState(token=token, user=user))
        logger.info("Session restored for user=%s", user.user_id if user else "?")
        return True

    def sign_in(self, token: str, user: AuthUser | None) -> None:
        self._credentials.save(token, user)
        self.store.set(SessionState(token=token, user=user))
        logger.info("Signed in user=%s", user.user_id if user else "?")

    def require_token(self) -> str:
        token = self.token
        if not token:
            raise Unauthorized("You must be logged in.")
        return token

    def invalidate(self) -> None:
        """Logout side effect (explicit logout or HTTP 401)."""
        if not self.is_authenticated:
            return
        self._credentials.clear()
        self.store.set(SessionState())
        logger.info("Session invalidated.")


class FileCredentialStore:
    """
    JSON file credential store.

    Stand-in for the OS keychain: the file is written atomically and chmod'ed to 0600.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> tuple[str, AuthUser | None] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable credentials file %s", self._path)
            return None
        if not isinstance(data, dict):
            return None
        token = data.get("token")
        if not isinstance(token, str) or not token.strip():
            return None
        user: AuthUser | None = None
        raw_user = data.get("user")
        if isinstance(raw_user, dict):
            try:
                user = AuthUser.from_json(raw_user)
            except Exception:
                logger.debug("Stored user profile is invalid; ignoring it.", exc_info=True)
        return token, user

    def save(self, token: str, user: AuthUser | None) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": token, "user": user.to_json() if user else None}
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)

    def clear(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path.unlink()
