from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.exceptions import AuthExpiredError
from ..storage.repository import KeyValueStore
from .model import Session

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


class SessionStore:
    """Single writer of the persisted bearer credentials.

    Readers take an immutable `Session` snapshot per request. Every login and
    every clear starts a new generation; a write tagged with an older
    generation is refused so a slow refresh cannot resurrect a cleared session.
    """

    def __init__(self, storage: KeyValueStore):
        self._storage = storage
        self._lock = threading.Lock()
        self._generation = 0
        self._current = Session(
            access_token=storage.get(ACCESS_TOKEN_KEY),
            refresh_token=storage.get(REFRESH_TOKEN_KEY),
        )

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> Session:
        return self._current

    def start(self, access_token: str, refresh_token: Optional[str] = None) -> Session:
        """Credentials from a fresh login."""
        with self._lock:
            self._generation += 1
            return self._write(access_token, refresh_token)

    def replace(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        *,
        generation: Optional[int] = None,
    ) -> Session:
        """Store a new access token; the refresh token only changes when a new one is given.

        With `generation`, raises `AuthExpiredError` instead of writing when the
        session was cleared or replaced by a login since that generation.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.warning("Discarding refreshed token for a session that was cleared")
                raise AuthExpiredError()
            return self._write(access_token, refresh_token)

    def clear(self, *, generation: Optional[int] = None) -> None:
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            self._generation += 1
            self._current = Session()
            for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY):
                try:
                    self._storage.delete(key)
                except Exception:
                    logger.exception("Failed to remove %s from storage", key)
        logger.info("Session cleared")

    def _write(self, access_token: str, refresh_token: Optional[str]) -> Session:
        new_refresh = refresh_token or self._current.refresh_token
        self._storage.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token:
            self._storage.set(REFRESH_TOKEN_KEY, refresh_token)
        self._current = Session(access_token=access_token, refresh_token=new_refresh)
        return self._current
