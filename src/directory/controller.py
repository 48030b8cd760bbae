from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from common.directory import DirectoryClient, DirectoryError, Page, Record
from state.models import Mode, ViewState

from .cache import CollectionCache


logger = logging.getLogger(__name__)


class ModeController:
    """
    Two-state machine deciding what feeds the display.

    - Paginated(page): the display is one server page; Previous/Next fetch
      neighbouring pages within 1..total_pages.
    - Searching(term): the display is a filter over the full collection,
      which is fetched once (all pages) on first use and then reused.

    Every display-affecting request takes a new generation number when it is
    issued. When its response arrives it is applied only if no newer request
    has been issued since; otherwise it is dropped. Failures propagate as
    `DirectoryError` after leaving the previous display in place.
    """

    def __init__(self, client: DirectoryClient, cache: CollectionCache, state: ViewState) -> None:
        self._client = client
        self._cache = cache
        self._state = state
        self._generation = 0
        self._materializing: Optional[asyncio.Future[None]] = None

    @property
    def can_next(self) -> bool:
        return self._state.mode is Mode.PAGINATED and self._state.page < self._state.total_pages

    @property
    def can_prev(self) -> bool:
        return self._state.mode is Mode.PAGINATED and self._state.page > 1

    # --------------- Pagination ---------------
    async def start(self) -> Optional[Page]:
        """Load the current page (page 1 for a fresh session)."""
        return await self._show_page(self._state.page)

    async def next_page(self) -> bool:
        return await self.go_to_page(self._state.page + 1)

    async def prev_page(self) -> bool:
        return await self.go_to_page(self._state.page - 1)

    async def go_to_page(self, number: int) -> bool:
        """Fetch and show page `number`. Returns False (no request) when not enabled."""
        if self._state.mode is not Mode.PAGINATED:
            return False
        if not 1 <= number <= self._state.total_pages:
            return False
        await self._show_page(number)
        return True

    # --------------- Search ---------------
    async def set_search_term(self, term: str) -> Optional[List[Record]]:
        """
        React to a search box change.

        A blank term leaves search mode (never "show all while searching").
        A non-empty term enters or stays in search mode and filters the full
        collection, materializing it first when needed. Returns the filtered
        records, or None when the result was superseded or search was left.
        """
        if not term.strip():
            await self.clear_search()
            return None

        if self._state.mode is Mode.PAGINATED:
            self._state.return_page = self._state.page
            self._state.mode = Mode.SEARCHING
            logger.info("Entering search mode from page %d", self._state.page)
        self._state.term = term
        generation = self._next_generation()

        if not self._cache.is_materialized:
            try:
                await self._ensure_materialized()
            except DirectoryError:
                if not self._is_current(generation):
                    logger.debug("Dropping failure of superseded search for %r", term)
                    return None
                # Mode stays SEARCHING with the stale display
                raise

        if not self._is_current(generation):
            logger.debug("Discarding superseded search for %r", term)
            return None
        return self._cache.apply_filter(term)

    async def clear_search(self) -> Optional[Page]:
        """Return to the page that was active before searching and re-fetch it."""
        if self._state.mode is Mode.PAGINATED:
            return None
        self._state.mode = Mode.PAGINATED
        self._state.term = ""
        self._state.page = self._state.return_page
        self._cache.restore_page_display()
        logger.info("Leaving search mode, back to page %d", self._state.page)

        page = await self._show_page(self._state.page)
        if page is not None and page.number > page.total_pages:
            # Directory shrank while searching; fall back to its last page
            page = await self._show_page(page.total_pages)
        return page

    # --------------- Internal ---------------
    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _show_page(self, number: int) -> Optional[Page]:
        generation = self._next_generation()
        page = await self._client.fetch_page(number)
        if not self._is_current(generation):
            logger.debug("Discarding stale page %d (generation %d)", number, generation)
            return None
        self._state.total_pages = page.total_pages
        if page.number > page.total_pages:
            # Out of range; keep the current display and clamp the page number
            self._state.page = page.total_pages
            return page
        self._cache.load_page(page)
        self._state.page = page.number
        return page

    async def _ensure_materialized(self) -> None:
        # Concurrent searches share a single in-flight materialization
        if self._materializing is None or self._materializing.done():
            self._materializing = asyncio.ensure_future(self._materialize())
        await self._materializing

    async def _materialize(self) -> None:
        """Fetch pages 1..total_pages; store them only if every fetch succeeded."""
        first = await self._client.fetch_page(1)
        pages = [first]
        for number in range(2, first.total_pages + 1):
            pages.append(await self._client.fetch_page(number))
        self._cache.materialize_full(pages)
