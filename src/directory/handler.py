from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

import httpx

from common.config import DirectorySettings
from common.directory import (
    DirectoryAuthError,
    DirectoryClient,
    DirectoryError,
    DirectoryNetworkError,
    DirectoryValidationError,
    Record,
)
from common.notices import Notice, NoticeFactory
from state.models import ViewState
from state.session_store import SessionStore

from .cache import CollectionCache
from .controller import ModeController
from .guard import LOGIN_ROUTE, AuthGuard
from .sync import MutationSynchronizer


logger = logging.getLogger(__name__)

MSG_LOAD_FAILED = "Failed to load users. Please try again."
MSG_SEARCH_FAILED = "Failed to load all users for search."
MSG_INVALID = "Please fill all fields with valid data."
MSG_UPDATE_FAILED = "Failed to update user."
MSG_UPDATED = "User updated successfully!"
MSG_DELETE_FAILED = "Failed to delete user."
MSG_DELETED = "User deleted successfully!"
MSG_LOGIN_FAILED = "Login failed. Check your credentials."


async def sign_in(client: DirectoryClient, store: SessionStore, email: str, password: str) -> str:
    """
    Log in through the account service and persist the session token.

    Raises DirectoryAuthError carrying the server's `error` text verbatim
    when it provides one, or a generic message otherwise.
    """
    try:
        token = await client.login(email, password)
    except DirectoryNetworkError as e:
        raise DirectoryAuthError(MSG_LOGIN_FAILED) from e
    store.write(token)
    logger.info("Session token stored")
    return token


class DirectoryView:
    """
    One authenticated visit to the user directory.

    `enter()` runs the auth guard and loads page 1. Each UI event method
    (`search`, `next_page`, `prev_page`, `update`, `delete`) returns True on
    success and False on failure; failures are turned into a single error
    notice on `state.notice` and never raised to the caller.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        settings: Optional[DirectorySettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        notices: Optional[NoticeFactory] = None,
    ) -> None:
        self._store = store
        self._settings = settings or DirectorySettings.from_env()
        self._http_client = http_client
        self._notices = notices or NoticeFactory(ttl=self._settings.notice_ttl)
        self.state = ViewState()
        self.cache: Optional[CollectionCache] = None
        self.controller: Optional[ModeController] = None
        self.sync: Optional[MutationSynchronizer] = None
        self._client: Optional[DirectoryClient] = None
        self._pending = 0

    @classmethod
    def from_env(cls, *, http_client: Optional[httpx.AsyncClient] = None) -> "DirectoryView":
        """Build a view whose settings and session store come from `DIRECTORY_*` env vars."""
        settings = DirectorySettings.from_env()
        return cls(SessionStore.from_settings(settings), settings=settings, http_client=http_client)

    @property
    def records(self) -> List[Record]:
        return self.cache.display_view if self.cache is not None else []

    def active_notice(self) -> Optional[Notice]:
        notice = self.state.notice
        if notice is not None and notice.is_active(self._notices.now()):
            return notice
        return None

    # --------------- Lifecycle ---------------
    async def enter(self) -> bool:
        try:
            token = AuthGuard(self._store).admit()
        except DirectoryAuthError as e:
            logger.info("Redirecting to login: %s", e)
            self.state.redirect_to = LOGIN_ROUTE
            return False

        await self.aclose()
        self._client = DirectoryClient.from_settings(self._settings, token=token, client=self._http_client)
        self.cache = CollectionCache(self.state)
        self.controller = ModeController(self._client, self.cache, self.state)
        self.sync = MutationSynchronizer(self._client, self.cache)
        return await self._run(self.controller.start, MSG_LOAD_FAILED)

    async def logout(self) -> None:
        self._store.clear()
        await self.aclose()
        self.cache = None
        self.controller = None
        self.sync = None
        self.state.redirect_to = LOGIN_ROUTE
        logger.info("Logged out")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --------------- UI events ---------------
    async def search(self, term: str) -> bool:
        controller = self._require_controller()
        failure = MSG_SEARCH_FAILED if term.strip() else MSG_LOAD_FAILED
        return await self._run(lambda: controller.set_search_term(term), failure)

    async def next_page(self) -> bool:
        controller = self._require_controller()
        if not controller.can_next:
            return False
        return await self._run(controller.next_page, MSG_LOAD_FAILED)

    async def prev_page(self) -> bool:
        controller = self._require_controller()
        if not controller.can_prev:
            return False
        return await self._run(controller.prev_page, MSG_LOAD_FAILED)

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> bool:
        sync = self._require_sync()
        return await self._run(
            lambda: sync.update(record_id, fields),
            MSG_UPDATE_FAILED,
            success=MSG_UPDATED,
            invalid=MSG_INVALID,
        )

    async def delete(self, record_id: int) -> bool:
        sync = self._require_sync()
        return await self._run(lambda: sync.delete(record_id), MSG_DELETE_FAILED, success=MSG_DELETED)

    # --------------- Internal ---------------
    def _require_controller(self) -> ModeController:
        if self.controller is None:
            raise RuntimeError("Directory view has not been entered")
        return self.controller

    def _require_sync(self) -> MutationSynchronizer:
        if self.sync is None:
            raise RuntimeError("Directory view has not been entered")
        return self.sync

    async def _run(
        self,
        op: Callable[[], Awaitable[Any]],
        failure: str,
        *,
        success: Optional[str] = None,
        invalid: Optional[str] = None,
    ) -> bool:
        # Overlapping events each hold the flag until the last one finishes
        self._pending += 1
        self.state.loading = True
        try:
            await op()
        except DirectoryValidationError as e:
            logger.warning("%s (%s)", failure, e)
            self.state.notice = self._notices.error(invalid or failure)
            return False
        except DirectoryError as e:
            logger.warning("%s (%s)", failure, e)
            self.state.notice = self._notices.error(failure)
            return False
        finally:
            self._pending -= 1
            self.state.loading = self._pending > 0
        if success is not None:
            self.state.notice = self._notices.success(success)
        return True
