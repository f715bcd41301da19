"""
Tests for tiered removal-candidate classification.
"""

from datetime import date

import pytest

from app.features.dialer_capacity.services.bloat_service import bloat_service
from tests.fakes import TODAY, USER_ID


@pytest.mark.asyncio
async def test_each_tier_is_recognised(store):
    store.add_contact("dnc", first_name="Dana", last_name="Nope", total_calls=2)
    store.add_calls("dnc", ["no_answer", "connected"], disposition="do_not_contact")

    store.add_contact("wrong", total_calls=1, next_call_date=TODAY)
    store.add_calls("wrong", ["wrong_number"])

    store.add_contact("budget", total_calls=3, company_name="Acme")
    store.add_calls("budget", ["voicemail", "connected"], disposition="not_interested_budget")

    store.add_contact("ghost", total_calls=7)
    store.add_calls("ghost", ["no_answer"] * 7)

    store.add_contact("quiet", total_calls=6)
    store.add_calls("quiet", ["voicemail"] * 4)

    result = await bloat_service.get_removal_candidates(USER_ID)

    tier0 = {c.contact_id: c for c in result.tier0}
    assert tier0["dnc"].reason == "Marked as Do Not Contact"
    assert tier0["dnc"].suggested_action == "pause_12mo"
    assert tier0["dnc"].contact_name == "Dana Nope"
    assert tier0["wrong"].reason == "Wrong number"

    assert [c.contact_id for c in result.tier1] == ["budget"]
    assert result.tier1[0].reason == "Budget constraints"
    assert result.tier1[0].suggested_action == "pause_6mo"
    assert result.tier1[0].company_name == "Acme"

    tier2 = {c.contact_id: c for c in result.tier2}
    assert tier2["ghost"].unreachable_score == 60
    assert tier2["ghost"].suggested_action == "throttle_14d"
    assert tier2["ghost"].reason == "7 attempts, no connection"
    assert tier2["quiet"].unreachable_score == 32
    assert tier2["quiet"].suggested_action == "throttle_10d"

    assert result.total == 5


@pytest.mark.asyncio
async def test_do_not_contact_wins_over_high_unreachable_score(store):
    store.add_contact("c1", total_calls=8)
    store.add_calls("c1", ["no_answer"] * 6, disposition="do_not_contact")

    result = await bloat_service.get_removal_candidates(USER_ID)

    assert [c.contact_id for c in result.tier0] == ["c1"]
    assert result.tier2 == []


@pytest.mark.asyncio
async def test_population_filters(store):
    # Qualifying history for everyone, so only the filters decide
    cases = {
        "aaa": {"is_aaa": True},
        "future": {"next_call_date": date(2025, 1, 20)},
        "paused": {"dialer_status": "paused"},
        "retired": {"total_calls": 10},
        "no-phone": {"phone": None},
        "paused-company": {"company_id": "co-1"},
    }
    for contact_id, fields in cases.items():
        fields.setdefault("total_calls", 7)
        store.add_contact(contact_id, **fields)
        store.add_calls(contact_id, ["wrong_number"])
    store.add_contact("never-called", total_calls=0)
    store.pause_company("co-1", date(2025, 6, 1))

    result = await bloat_service.get_removal_candidates(USER_ID)
    assert result.total == 0

    with_aaa = await bloat_service.get_removal_candidates(USER_ID, exclude_aaa=False)
    assert [c.contact_id for c in with_aaa.tier0] == ["aaa"]
    assert with_aaa.tier0[0].is_aaa is True


@pytest.mark.asyncio
async def test_below_threshold_or_too_few_calls_is_not_tier_two(store):
    store.add_contact("low-score", total_calls=6)
    store.add_calls("low-score", ["voicemail", "gatekeeper"])
    store.add_contact("few-calls", total_calls=5)
    store.add_calls("few-calls", ["no_answer"] * 5)

    result = await bloat_service.get_removal_candidates(USER_ID)

    assert result.total == 0


@pytest.mark.asyncio
async def test_tiers_are_sorted_and_truncated_after_counting(store):
    for index, total_calls in enumerate([2, 9, 5]):
        contact_id = f"dnc-{index}"
        store.add_contact(contact_id, total_calls=total_calls)
        store.add_calls(contact_id, ["connected"], disposition="do_not_contact")
    for contact_id, outcomes in {
        "t2-low": ["voicemail"] * 4,
        "t2-high": ["no_answer"] * 6,
        "t2-mid": ["no_answer"] * 4,
    }.items():
        store.add_contact(contact_id, total_calls=8)
        store.add_calls(contact_id, outcomes)

    result = await bloat_service.get_removal_candidates(USER_ID, limit=2)

    assert [c.total_calls for c in result.tier0] == [9, 5]
    assert [c.contact_id for c in result.tier2] == ["t2-high", "t2-mid"]
    assert result.total == 6
