from __future__ import annotations

import json
from typing import List

import pytest

from common.directory import DirectoryClient, DirectoryNetworkError, DirectoryValidationError, Record
from directory.cache import CollectionCache
from directory.controller import ModeController
from directory.sync import MutationSynchronizer, validate_record
from state.models import ViewState


async def _loaded(fake, *, search: str = ""):
    state = ViewState()
    cache = CollectionCache(state)
    client = DirectoryClient(client=fake.client())
    ctl = ModeController(client, cache, state)
    await ctl.start()
    if search:
        await ctl.set_search_term(search)
    return cache, ctl, MutationSynchronizer(client, cache)


def _ids(records) -> List[int]:
    return [r.id for r in records]


@pytest.mark.asyncio
async def test_update_merges_fields_and_syncs_every_view(fake_directory):
    cache, _, sync = await _loaded(fake_directory, search="an")
    before = cache.get(2)

    merged = await sync.update(2, {"first_name": "Janette", "email": "janette@reqres.in"})

    assert merged == before.model_copy(update={"first_name": "Janette", "email": "janette@reqres.in"})
    assert cache.page_view.records[1] == merged
    assert cache.full_view[1] == merged
    assert cache.display_view[0] == merged

    req = fake_directory.requests[-1]
    assert req.method == "PUT" and req.url.path == "/api/users/2"
    assert json.loads(req.content)["first_name"] == "Janette"


@pytest.mark.asyncio
async def test_update_ignores_server_echo(fake_directory):
    cache, _, sync = await _loaded(fake_directory)

    merged = await sync.update(1, {"last_name": "Bluthe"})

    # The fake echoes an extra `updatedAt`; the cached record is what was sent
    assert cache.get(1) == merged
    assert "updatedAt" not in cache.get(1).model_dump()


@pytest.mark.asyncio
async def test_invalid_email_rejected_before_any_request(fake_directory):
    cache, _, sync = await _loaded(fake_directory, search="wong")
    before = (cache.page_view, cache.full_view, cache.display_view)
    sent = len(fake_directory.requests)

    with pytest.raises(DirectoryValidationError):
        await sync.update(3, {"email": "emma.wong.reqres.in"})

    assert len(fake_directory.requests) == sent
    assert (cache.page_view, cache.full_view, cache.display_view) == before


@pytest.mark.asyncio
async def test_blank_name_and_unknown_fields_rejected(fake_directory):
    _, _, sync = await _loaded(fake_directory)

    with pytest.raises(DirectoryValidationError):
        await sync.update(1, {"first_name": "  "})
    with pytest.raises(DirectoryValidationError):
        await sync.update(1, {"id": 99})
    with pytest.raises(DirectoryValidationError):
        await sync.update(42, {"first_name": "Nobody"})

    assert fake_directory.count("PUT") == 0


@pytest.mark.asyncio
async def test_update_failure_leaves_cache_untouched(fake_directory):
    cache, _, sync = await _loaded(fake_directory)
    fake_directory.fail_methods.add("PUT")

    with pytest.raises(DirectoryNetworkError):
        await sync.update(1, {"first_name": "Georgie"})

    assert cache.get(1).first_name == "George"


@pytest.mark.asyncio
async def test_delete_removes_everywhere_and_is_never_reissued(fake_directory):
    cache, ctl, sync = await _loaded(fake_directory, search="an")

    await sync.delete(2)

    assert _ids(cache.page_view.records) == [1]
    assert _ids(cache.full_view) == [1, 3, 4]
    assert _ids(cache.display_view) == [4]

    with pytest.raises(DirectoryValidationError):
        await sync.delete(2)
    assert fake_directory.count("DELETE") == 1

    # The fake server still lists id 2 on page 1; it must not come back
    await ctl.clear_search()
    assert _ids(cache.display_view) == [1]


@pytest.mark.asyncio
async def test_delete_failure_keeps_record_visible(fake_directory):
    cache, _, sync = await _loaded(fake_directory)
    fake_directory.fail_methods.add("DELETE")

    with pytest.raises(DirectoryNetworkError):
        await sync.delete(1)

    assert _ids(cache.display_view) == [1, 2]
    assert not cache.was_deleted(1)


@pytest.mark.asyncio
async def test_delete_before_full_view_exists(fake_directory):
    cache, ctl, sync = await _loaded(fake_directory)

    await sync.delete(1)
    found = await ctl.set_search_term("e")

    assert cache.full_view is not None
    assert 1 not in _ids(cache.full_view)
    assert 1 not in _ids(found)


def test_validate_record_accepts_well_formed():
    validate_record(Record(id=1, first_name="A", last_name="B", email="a@b"))
