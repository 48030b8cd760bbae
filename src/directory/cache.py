from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from common.directory import Page, Record
from state.models import Mode, ViewState


logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    UPDATE = "update"
    DELETE = "delete"


class CollectionCache:
    """
    In-memory views over one remote user collection.

    Three views are exposed: `page_view` (one server page), `full_view` (all
    pages, None until materialized) and `display_view` (what is rendered).
    They are not independent copies: records live once in a store keyed by
    id, and each view is an ordered list of ids resolved on read. An update
    is therefore a single write, and a delete removes the id from the store
    and from every id list.

    Mutations confirmed by the server during this session are remembered and
    re-applied to anything loaded afterwards, so a late or stale fetch cannot
    bring back a deleted record or revert a confirmed edit.
    """

    def __init__(self, state: ViewState) -> None:
        self._state = state
        self._records: Dict[int, Record] = {}
        self._page_ids: Optional[List[int]] = None
        self._page_number = 1
        self._page_total = 1
        self._full_ids: Optional[List[int]] = None
        self._display_ids: List[int] = []
        self._deleted: Set[int] = set()
        self._confirmed: Dict[int, Record] = {}

    # --------------- Views ---------------
    @property
    def page_view(self) -> Optional[Page]:
        if self._page_ids is None:
            return None
        return Page(
            number=self._page_number,
            records=self._resolve(self._page_ids),
            total_pages=self._page_total,
        )

    @property
    def full_view(self) -> Optional[List[Record]]:
        if self._full_ids is None:
            return None
        return self._resolve(self._full_ids)

    @property
    def display_view(self) -> List[Record]:
        return self._resolve(self._display_ids)

    @property
    def is_materialized(self) -> bool:
        return self._full_ids is not None

    def get(self, record_id: int) -> Optional[Record]:
        return self._records.get(record_id)

    def was_deleted(self, record_id: int) -> bool:
        return record_id in self._deleted

    # --------------- Loading ---------------
    def load_page(self, page: Page) -> None:
        """Replace the page view; in paginated mode the display follows it verbatim."""
        self._page_ids = self._ingest(page.records)
        self._page_number = page.number
        self._page_total = page.total_pages
        if self._state.mode is Mode.PAGINATED:
            self._display_ids = list(self._page_ids)
        self._prune()

    def materialize_full(self, pages: Sequence[Page]) -> None:
        """
        Store the concatenation of `pages` as the full view.

        `pages` must be exactly pages 1..total_pages in ascending order (as
        reported by page 1); anything else is rejected and the previous full
        view is kept.
        """
        if not pages:
            raise ValueError("materialize_full needs at least one page")
        expected = list(range(1, pages[0].total_pages + 1))
        got = [p.number for p in pages]
        if got != expected:
            raise ValueError(f"Incomplete materialization: got pages {got}, expected {expected}")

        records: List[Record] = []
        for p in pages:
            records.extend(p.records)
        self._full_ids = self._ingest(records)
        self._prune()
        logger.debug("Materialized %d records from %d pages", len(self._full_ids), len(pages))

    def apply_filter(self, term: str) -> List[Record]:
        """Show every full-view record whose "first last" name contains `term` (case-insensitive)."""
        if not term.strip():
            raise ValueError("empty search term must leave search mode, not filter")
        if self._state.mode is not Mode.SEARCHING:
            raise RuntimeError("apply_filter is only valid in searching mode")
        if self._full_ids is None:
            raise RuntimeError("full view has not been materialized")
        needle = term.lower()
        self._display_ids = [
            rid for rid in self._full_ids if needle in self._records[rid].full_name.lower()
        ]
        return self.display_view

    def restore_page_display(self) -> None:
        self._display_ids = list(self._page_ids or [])

    # --------------- Mutation ---------------
    def apply_mutation(self, kind: MutationKind, target: Union[Record, int]) -> None:
        """
        Apply a server-confirmed update or delete to every view.

        - UPDATE takes the new `Record`; position in each view is unchanged.
        - DELETE takes the id; it is dropped from every view that holds it.
        Ids absent from a view are a no-op for that view.
        """
        if kind is MutationKind.UPDATE:
            if not isinstance(target, Record):
                raise TypeError("UPDATE expects a Record")
            self._confirmed[target.id] = target
            if target.id in self._records:
                self._records[target.id] = target
            return

        record_id = target.id if isinstance(target, Record) else int(target)
        self._deleted.add(record_id)
        self._confirmed.pop(record_id, None)
        self._records.pop(record_id, None)
        if self._page_ids is not None:
            self._page_ids = [rid for rid in self._page_ids if rid != record_id]
        if self._full_ids is not None:
            self._full_ids = [rid for rid in self._full_ids if rid != record_id]
        self._display_ids = [rid for rid in self._display_ids if rid != record_id]

    # --------------- Internal ---------------
    def _ingest(self, records: Iterable[Record]) -> List[int]:
        ids: List[int] = []
        seen: Set[int] = set()
        for rec in records:
            if rec.id in self._deleted or rec.id in seen:
                continue
            seen.add(rec.id)
            self._records[rec.id] = self._confirmed.get(rec.id, rec)
            ids.append(rec.id)
        return ids

    def _resolve(self, ids: Iterable[int]) -> List[Record]:
        return [self._records[rid] for rid in ids]

    def _prune(self) -> None:
        # Drop records no view refers to any more
        live = set(self._display_ids)
        live.update(self._page_ids or ())
        live.update(self._full_ids or ())
        for rid in [rid for rid in self._records if rid not in live]:
            del self._records[rid]
