"""
Tests for the capacity-aware scheduler.
"""

from datetime import date

import pytest

from app.config import settings
from app.features.dialer_capacity.domain.models import CapacityBucket, ScheduleOptions
from app.features.dialer_capacity.services.capacity_service import capacity_service
from app.features.dialer_capacity.services.scheduler import find_best_day, scheduler_service
from tests.fakes import TODAY, USER_ID

JAN = {day: date(2025, 1, day) for day in range(1, 32)}


def test_find_best_day_prefers_least_loaded_then_earliest():
    buckets = [
        CapacityBucket(date=JAN[15], total_due=5),
        CapacityBucket(date=JAN[16], total_due=3),
        CapacityBucket(date=JAN[17], total_due=3),
    ]

    best = find_best_day(buckets, is_new=False, options=ScheduleOptions(10, 5, 3))

    assert best.date == JAN[16]


def test_find_best_day_applies_new_quota_only_to_new_contacts():
    buckets = [
        CapacityBucket(date=JAN[15], total_due=1, new_due=1),
        CapacityBucket(date=JAN[16], total_due=2, new_due=0, follow_up_due=2),
    ]
    options = ScheduleOptions(target_per_day=3, new_quota_per_day=1, window_days=2)

    assert find_best_day(buckets, is_new=True, options=options).date == JAN[16]
    assert find_best_day(buckets, is_new=False, options=options).date == JAN[15]


def test_find_best_day_returns_none_when_everything_is_full():
    buckets = [CapacityBucket(date=JAN[15], total_due=2, new_due=0, follow_up_due=2)]

    assert find_best_day(buckets, False, ScheduleOptions(2, 1, 1)) is None


@pytest.mark.asyncio
async def test_schedule_spreads_load_and_respects_limits(store):
    ids = [f"c{i:02d}" for i in range(10)]
    for contact_id in ids:
        store.add_contact(contact_id)
    options = ScheduleOptions(target_per_day=3, new_quota_per_day=2, window_days=5)

    result = await scheduler_service.schedule_contacts(USER_ID, ids, options)

    assert result.scheduled == 10
    assert result.capacity_exhausted is False
    assert [(e.date, e.count) for e in result.distribution] == [
        (JAN[15], 2),
        (JAN[16], 2),
        (JAN[17], 2),
        (JAN[20], 2),
        (JAN[21], 2),
    ]

    buckets = await capacity_service.get_capacity_buckets(USER_ID, 5)
    assert all(b.total_due <= 3 and b.new_due <= 2 for b in buckets)
    assert all(b.total_due == b.new_due + b.follow_up_due for b in buckets)


@pytest.mark.asyncio
async def test_existing_load_is_respected(store):
    for i in range(3):
        store.add_contact(f"existing-{i}", next_call_date=TODAY, total_calls=2)
    store.add_contact("fresh", total_calls=1)

    result = await scheduler_service.schedule_contacts(
        USER_ID, ["fresh"], ScheduleOptions(target_per_day=3, new_quota_per_day=1, window_days=3)
    )

    assert result.scheduled == 1
    assert store.contacts["fresh"].next_call_date == JAN[16]


@pytest.mark.asyncio
async def test_aaa_and_new_contacts_are_placed_first(store, monkeypatch):
    monkeypatch.setattr(settings, "DIALER_MAX_WINDOW_EXTENSIONS", 0)
    store.add_contact("follow-up", total_calls=3)
    store.add_contact("new")
    store.add_contact("aaa", total_calls=5, is_aaa=True)

    result = await scheduler_service.schedule_contacts(
        USER_ID,
        ["follow-up", "new", "aaa"],
        ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=2),
    )

    assert store.contacts["aaa"].next_call_date == JAN[15]
    assert store.contacts["new"].next_call_date == JAN[16]
    assert store.contacts["follow-up"].next_call_date is None
    assert result.unplaced == ["follow-up"]
    assert result.capacity_exhausted is True
    assert result.scheduled == 2


@pytest.mark.asyncio
async def test_full_window_extends_and_counts_existing_load(store):
    store.add_contact("booked", next_call_date=JAN[16], total_calls=1)
    store.add_contact("first")
    store.add_contact("second")

    result = await scheduler_service.schedule_contacts(
        USER_ID,
        ["first", "second"],
        ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=1),
    )

    assert store.contacts["first"].next_call_date == JAN[15]
    # Jan 16 already holds "booked", so the extension lands on Jan 17
    assert store.contacts["second"].next_call_date == JAN[17]
    assert result.scheduled == 2
    assert result.unplaced == []


@pytest.mark.asyncio
async def test_extension_is_bounded(store, monkeypatch):
    monkeypatch.setattr(settings, "DIALER_MAX_WINDOW_EXTENSIONS", 1)
    monkeypatch.setattr(settings, "DIALER_WINDOW_EXTENSION_DAYS", 2)
    ids = [f"c{i}" for i in range(5)]
    for contact_id in ids:
        store.add_contact(contact_id)

    result = await scheduler_service.schedule_contacts(
        USER_ID, ids, ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=1)
    )

    # 1 base day + 2 extension days
    assert result.scheduled == 3
    assert result.unplaced == ["c3", "c4"]
    assert result.capacity_exhausted is True


@pytest.mark.asyncio
async def test_zero_new_quota_never_places_new_contacts(store):
    store.add_contact("new")
    store.add_contact("follow-up", total_calls=2)

    result = await scheduler_service.schedule_contacts(
        USER_ID,
        ["new", "follow-up"],
        ScheduleOptions(target_per_day=5, new_quota_per_day=0, window_days=3),
    )

    assert result.unplaced == ["new"]
    assert result.scheduled == 1
    assert store.update_calls == [(JAN[15], ["follow-up"])]


@pytest.mark.asyncio
async def test_reads_and_writes_are_chunked(store):
    ids = [f"c{i:03d}" for i in range(120)]
    for contact_id in ids:
        store.add_contact(contact_id)

    result = await scheduler_service.schedule_contacts(
        USER_ID, ids, ScheduleOptions(target_per_day=200, new_quota_per_day=200, window_days=1)
    )

    assert result.scheduled == 120
    assert [len(chunk) for chunk in store.fetch_by_ids_calls] == [50, 50, 20]
    assert [len(chunk) for _, chunk in store.update_calls] == [50, 50, 20]


@pytest.mark.asyncio
async def test_failed_write_chunk_does_not_abort_the_pass(store):
    for contact_id in ("a", "b", "c", "d"):
        store.add_contact(contact_id)
    store.fail_update_dates.add(JAN[16])

    result = await scheduler_service.schedule_contacts(
        USER_ID,
        ["a", "b", "c", "d"],
        ScheduleOptions(target_per_day=2, new_quota_per_day=2, window_days=2),
    )

    assert result.scheduled == 2
    assert [(e.date, e.count) for e in result.distribution] == [(JAN[15], 2)]


@pytest.mark.asyncio
async def test_failed_read_chunk_skips_only_that_chunk(store):
    ids = [f"c{i:02d}" for i in range(60)]
    for contact_id in ids:
        store.add_contact(contact_id)
    store.fail_fetch_ids.add("c00")

    result = await scheduler_service.schedule_contacts(
        USER_ID, ids, ScheduleOptions(target_per_day=100, new_quota_per_day=100, window_days=1)
    )

    assert result.scheduled == 10
    assert store.contacts["c59"].next_call_date == JAN[15]
    assert store.contacts["c00"].next_call_date is None


@pytest.mark.asyncio
async def test_pass_runs_under_user_lock_and_uses_stored_settings(store):
    store.settings_rows[USER_ID] = {
        "target_per_day": 1,
        "new_quota_per_day": 1,
        "schedule_window_days": 2,
        "bloat_threshold": 10,
    }
    store.add_contact("a")
    store.add_contact("b")

    result = await scheduler_service.schedule_contacts(USER_ID, ["a", "b", "a"])

    assert store.locks_taken == [USER_ID]
    assert result.scheduled == 2
    assert {store.contacts["a"].next_call_date, store.contacts["b"].next_call_date} == {
        JAN[15],
        JAN[16],
    }


@pytest.mark.asyncio
async def test_empty_request_is_a_no_op(store):
    result = await scheduler_service.schedule_contacts(
        USER_ID, [], ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=1)
    )

    assert result.scheduled == 0
    assert result.distribution == []
    assert store.locks_taken == []


@pytest.mark.asyncio
async def test_rescheduling_stays_within_capacity(store):
    ids = [f"c{i}" for i in range(6)]
    for contact_id in ids:
        store.add_contact(contact_id, total_calls=1)
    options = ScheduleOptions(target_per_day=3, new_quota_per_day=1, window_days=3)

    await scheduler_service.schedule_contacts(USER_ID, ids, options)
    await scheduler_service.schedule_contacts(USER_ID, ids, options)

    buckets = await capacity_service.get_capacity_buckets(USER_ID, 10)
    assert all(store.contacts[cid].next_call_date is not None for cid in ids)
    assert sum(b.total_due for b in buckets) == 6
    assert all(b.total_due <= 3 for b in buckets)


@pytest.mark.asyncio
async def test_contacts_being_moved_do_not_count_against_their_old_day(store, monkeypatch):
    monkeypatch.setattr(settings, "DIALER_MAX_WINDOW_EXTENSIONS", 0)
    store.add_contact("a", next_call_date=TODAY, total_calls=1)

    result = await scheduler_service.schedule_contacts(
        USER_ID, ["a"], ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=1)
    )

    assert result.scheduled == 1
    assert result.unplaced == []
    assert store.contacts["a"].next_call_date == TODAY


@pytest.mark.asyncio
async def test_moved_contacts_are_excluded_from_extension_days_too(store, monkeypatch):
    monkeypatch.setattr(settings, "DIALER_WINDOW_EXTENSION_DAYS", 1)
    store.add_contact("booked", next_call_date=TODAY, total_calls=1)
    store.add_contact("a", next_call_date=JAN[16], total_calls=1)

    result = await scheduler_service.schedule_contacts(
        USER_ID, ["a"], ScheduleOptions(target_per_day=1, new_quota_per_day=1, window_days=1)
    )

    assert result.unplaced == []
    assert store.contacts["a"].next_call_date == JAN[16]
    assert store.contacts["booked"].next_call_date == TODAY
