from __future__ import annotations

import logging

from common.directory import DirectoryAuthError
from state.session_store import SessionStore


logger = logging.getLogger(__name__)

LOGIN_ROUTE = "login"


class AuthGuard:
    """Admit entry to the directory only when a session token is stored.

    The token is not checked against the server; a token the server rejects
    shows up later as a failed request like any other.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def admit(self) -> str:
        try:
            token = self._store.read()
        except ValueError as ex:
            logger.warning("Session token unreadable: %s", ex)
            raise DirectoryAuthError("Stored session is unreadable") from ex
        if not token:
            raise DirectoryAuthError("No session token; login required")
        return token
