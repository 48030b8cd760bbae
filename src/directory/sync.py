from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from common.directory import DirectoryClient, DirectoryValidationError, Record

from .cache import CollectionCache, MutationKind


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("first_name", "last_name", "email", "avatar")


def validate_record(record: Record) -> None:
    """Reject records with a blank name or an email without '@'."""
    if not record.first_name.strip() or not record.last_name.strip():
        raise DirectoryValidationError("First and last name are required")
    if not record.email.strip() or "@" not in record.email:
        raise DirectoryValidationError(f"Invalid email: {record.email!r}")


class MutationSynchronizer:
    """
    Applies edits and deletes to the server, then to every cached view.

    The cache is touched only after the server confirms, and then in a
    single `apply_mutation` call. A failure raises and leaves every view as
    it was; nothing is removed or changed optimistically.
    """

    def __init__(self, client: DirectoryClient, cache: CollectionCache) -> None:
        self._client = client
        self._cache = cache

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> Record:
        """
        Merge `fields` onto the cached record, PUT it, and sync all views.

        Returns the merged record exactly as sent; the server's echo is
        ignored. Raises DirectoryValidationError before any request when the
        merged record is invalid or the id is unknown.
        """
        current = self._cache.get(record_id)
        if current is None:
            raise DirectoryValidationError(f"Unknown record id {record_id}")
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise DirectoryValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        try:
            merged = Record.model_validate({**current.model_dump(), **dict(fields)})
        except ValidationError as ve:
            raise DirectoryValidationError(f"Invalid field values: {ve}") from ve
        validate_record(merged)

        await self._client.update_record(record_id, merged.model_dump())
        self._cache.apply_mutation(MutationKind.UPDATE, merged)
        logger.info("Updated record %d", record_id)
        return merged

    async def delete(self, record_id: int) -> None:
        """DELETE the record, then drop it from every view."""
        if self._cache.was_deleted(record_id):
            raise DirectoryValidationError(f"Record {record_id} was already deleted")
        await self._client.delete_record(record_id)
        self._cache.apply_mutation(MutationKind.DELETE, record_id)
        logger.info("Deleted record %d", record_id)
