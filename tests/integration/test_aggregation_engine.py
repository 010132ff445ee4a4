"""
Aggregation engine against the real store (in-memory SQLite) and the
in-memory Redis double.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.core.exceptions import CacheError, GroupConsistencyError, OutageStoreError
from backend.app.schemas.outages import GroupSnapshot, ProcessAction
from backend.app.services.group_cache import cache_key
from backend.app.services.group_store import GroupStore

T = 1756665796
CONTROLLER = "AOT1D-25090001"
LED = "led_outage"


def _boom(*args, **kwargs):
    raise OperationalError("UPDATE outages_groups", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_scenario_a_creates_group_when_nothing_matches(aggregation_engine, store, cache):
    """No cache entry, no stored match: a single-instant group with one item."""
    result = await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert result.action == ProcessAction.CREATED_NEW_GROUP
    group = await store.get_group(result.group_id)
    assert (group.start_time, group.end_time) == (T, T)
    assert len(await store.list_items(group.id)) == 1

    cached = await cache.get(CONTROLLER, LED)
    assert cached.id == result.group_id
    assert (cached.start_time, cached.end_time) == (T, T)


@pytest.mark.asyncio
async def test_scenario_b_merges_into_cached_group(aggregation_engine, store, cache, monkeypatch):
    """Cached group ended 10 minutes ago: event extends it without a store probe."""
    existing = await store.create_group_with_first_item(CONTROLLER, LED, T - 600)
    await cache.set(CONTROLLER, LED, existing)
    probe = AsyncMock(wraps=store.find_active_group)
    monkeypatch.setattr(store, "find_active_group", probe)

    result = await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert result.action == ProcessAction.ADDED_TO_CACHED_GROUP
    assert result.group_id == existing.id
    probe.assert_not_awaited()

    group = await store.get_group(existing.id)
    assert (group.start_time, group.end_time) == (T - 600, T)
    cached = await cache.get(CONTROLLER, LED)
    assert cached.end_time == T
    assert cached.created_at == existing.created_at


@pytest.mark.asyncio
async def test_scenario_c_stale_cached_group_starts_new_group(aggregation_engine, store, cache):
    """Cached group ended two hours ago and nothing in the store matches."""
    old = await store.create_group_with_first_item(CONTROLLER, LED, T - 7200)
    await cache.set(CONTROLLER, LED, old)

    result = await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert result.action == ProcessAction.CREATED_NEW_GROUP
    assert result.group_id != old.id

    untouched = await store.get_group(old.id)
    assert (untouched.start_time, untouched.end_time) == (T - 7200, T - 7200)
    assert len(await store.list_items(old.id)) == 1
    assert (await cache.get(CONTROLLER, LED)).id == result.group_id


@pytest.mark.asyncio
async def test_scenario_d_merges_into_stored_group(aggregation_engine, store, cache, monkeypatch):
    """Cache is empty; the store holds a group within range."""
    existing = await store.create_group_with_first_item(CONTROLLER, LED, T - 1800)
    probe = AsyncMock(wraps=store.find_active_group)
    monkeypatch.setattr(store, "find_active_group", probe)

    result = await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert result.action == ProcessAction.ADDED_TO_DB_GROUP
    assert result.group_id == existing.id
    probe.assert_awaited_once_with(CONTROLLER, LED, T)

    cached = await cache.get(CONTROLLER, LED)
    assert (cached.id, cached.start_time, cached.end_time) == (existing.id, T - 1800, T)


@pytest.mark.asyncio
async def test_scenario_e_failed_boundary_update_rolls_back_merge(
    aggregation_engine, store, cache, fake_redis, monkeypatch
):
    """Item insert succeeds, boundary update fails: nothing persists, cache untouched."""
    existing = await store.create_group_with_first_item(CONTROLLER, LED, T - 600)
    await cache.set(CONTROLLER, LED, existing)
    cached_before = fake_redis.data[cache_key(CONTROLLER, LED)]
    writes_before = fake_redis.set_calls
    monkeypatch.setattr(GroupStore, "_extend_boundary", staticmethod(_boom))

    with pytest.raises(OutageStoreError):
        await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert [i.occurrence_time for i in await store.list_items(existing.id)] == [T - 600]
    group = await store.get_group(existing.id)
    assert (group.start_time, group.end_time) == (T - 600, T - 600)
    assert fake_redis.set_calls == writes_before
    assert fake_redis.data[cache_key(CONTROLLER, LED)] == cached_before


@pytest.mark.asyncio
async def test_failed_create_never_reaches_cache(aggregation_engine, store, fake_redis, monkeypatch):
    monkeypatch.setattr(store, "create_group_with_first_item", AsyncMock(side_effect=OutageStoreError("down")))

    with pytest.raises(OutageStoreError):
        await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert fake_redis.set_calls == 0


@pytest.mark.asyncio
async def test_cache_write_failure_propagates_but_commit_stands(aggregation_engine, store, fake_redis):
    fake_redis.fail_writes = True

    with pytest.raises(CacheError):
        await aggregation_engine.process_event(CONTROLLER, LED, T)

    committed = await store.find_active_group(CONTROLLER, LED, T)
    assert committed is not None
    assert (committed.start_time, committed.end_time) == (T, T)


@pytest.mark.asyncio
async def test_cache_write_failure_on_merge_keeps_extended_boundary(aggregation_engine, store, cache, fake_redis):
    existing = await store.create_group_with_first_item(CONTROLLER, LED, T - 600)
    await cache.set(CONTROLLER, LED, existing)
    fake_redis.fail_writes = True

    with pytest.raises(CacheError):
        await aggregation_engine.process_event(CONTROLLER, LED, T)

    group = await store.get_group(existing.id)
    assert (group.start_time, group.end_time) == (T - 600, T)
    assert [i.occurrence_time for i in await store.list_items(existing.id)] == [T - 600, T]

    stale = await cache.get(CONTROLLER, LED)
    assert stale.end_time == T - 600


@pytest.mark.asyncio
async def test_cache_read_failure_falls_through_to_store(aggregation_engine, store, fake_redis):
    existing = await store.create_group_with_first_item(CONTROLLER, LED, T - 300)
    fake_redis.fail_reads = True

    result = await aggregation_engine.process_event(CONTROLLER, LED, T)

    assert result.action == ProcessAction.ADDED_TO_DB_GROUP
    assert result.group_id == existing.id


@pytest.mark.asyncio
async def test_cached_group_missing_from_store_is_consistency_error(aggregation_engine, cache, fake_redis):
    ghost = GroupSnapshot(id=999, event_type=LED, controller_id=CONTROLLER, start_time=T, end_time=T)
    await cache.set(CONTROLLER, LED, ghost)
    writes_before = fake_redis.set_calls

    with pytest.raises(GroupConsistencyError):
        await aggregation_engine.process_event(CONTROLLER, LED, T + 60)

    assert fake_redis.set_calls == writes_before


@pytest.mark.asyncio
async def test_series_with_small_gaps_forms_one_group(aggregation_engine, store):
    """Gaps of up to 60 minutes chain into one group spanning min..max."""
    timestamps = [T, T + 3600, T + 7000, T + 10600, T + 12000]
    group_ids = set()
    for ts in timestamps:
        group_ids.add((await aggregation_engine.process_event(CONTROLLER, LED, ts)).group_id)

    assert len(group_ids) == 1
    group = await store.get_group(group_ids.pop())
    assert (group.start_time, group.end_time) == (min(timestamps), max(timestamps))
    assert len(await store.list_items(group.id)) == len(timestamps)


@pytest.mark.asyncio
async def test_out_of_order_arrivals_within_tolerance_form_one_group(aggregation_engine, store):
    arrivals = [T, T + 3000, T - 2000, T + 6000, T + 1000]
    results = [await aggregation_engine.process_event(CONTROLLER, LED, ts) for ts in arrivals]

    assert {r.group_id for r in results} == {results[0].group_id}
    group = await store.get_group(results[0].group_id)
    assert (group.start_time, group.end_time) == (T - 2000, T + 6000)


@pytest.mark.asyncio
async def test_gap_over_tolerance_splits_into_two_groups(aggregation_engine, store):
    first = await aggregation_engine.process_event(CONTROLLER, LED, T)
    second = await aggregation_engine.process_event(CONTROLLER, LED, T + 3601)

    assert second.action == ProcessAction.CREATED_NEW_GROUP
    assert first.group_id != second.group_id
    assert (await store.get_group(first.group_id)).end_time == T


@pytest.mark.asyncio
async def test_event_inside_window_leaves_boundaries_unchanged(aggregation_engine, store):
    first = await aggregation_engine.process_event(CONTROLLER, LED, T)
    await aggregation_engine.process_event(CONTROLLER, LED, T + 1800)
    before = await store.get_group(first.group_id)

    await aggregation_engine.process_event(CONTROLLER, LED, T + 900)

    after = await store.get_group(first.group_id)
    assert (after.start_time, after.end_time) == (before.start_time, before.end_time)


@pytest.mark.asyncio
async def test_cache_hit_and_store_hit_reach_same_stored_state(aggregation_engine, store, fake_redis):
    via_cache = "AOT1D-25090001"
    via_store = "AOT1D-25090002"

    await aggregation_engine.process_event(via_cache, LED, T)
    cached_result = await aggregation_engine.process_event(via_cache, LED, T + 1200)

    await aggregation_engine.process_event(via_store, LED, T)
    fake_redis.data.pop(cache_key(via_store, LED))
    stored_result = await aggregation_engine.process_event(via_store, LED, T + 1200)

    assert cached_result.action == ProcessAction.ADDED_TO_CACHED_GROUP
    assert stored_result.action == ProcessAction.ADDED_TO_DB_GROUP

    a = await store.get_group(cached_result.group_id)
    b = await store.get_group(stored_result.group_id)
    assert (a.start_time, a.end_time) == (b.start_time, b.end_time)
    items_a = [i.occurrence_time for i in await store.list_items(a.id)]
    items_b = [i.occurrence_time for i in await store.list_items(b.id)]
    assert items_a == items_b


@pytest.mark.asyncio
async def test_event_types_are_aggregated_separately(aggregation_engine):
    led = await aggregation_engine.process_event(CONTROLLER, LED, T)
    panel = await aggregation_engine.process_event(CONTROLLER, "panel_outage", T + 60)

    assert panel.action == ProcessAction.CREATED_NEW_GROUP
    assert led.group_id != panel.group_id


@pytest.mark.asyncio
async def test_racing_groups_converge_on_most_recently_ended(aggregation_engine, store):
    """Two overlapping groups (as left by a create race); next event joins the later one."""
    await store.create_group_with_first_item(CONTROLLER, LED, T)
    later = await store.create_group_with_first_item(CONTROLLER, LED, T + 1200)

    result = await aggregation_engine.process_event(CONTROLLER, LED, T + 1500)

    assert result.action == ProcessAction.ADDED_TO_DB_GROUP
    assert result.group_id == later.id
