import pytest

from app.features.dialer_capacity.domain.eligibility import filter_eligible, is_contact_eligible
from app.features.dialer_capacity.domain.models import DialerContact


def _contact(**fields) -> DialerContact:
    fields.setdefault("phone", "+15550001111")
    return DialerContact(id=fields.pop("id", "c1"), **fields)


def test_contact_without_any_number_is_never_eligible():
    for status in (None, "active", "paused"):
        for total_calls in (0, 3, 12):
            contact = _contact(phone=None, mobile=None, dialer_status=status, total_calls=total_calls)
            assert is_contact_eligible(contact, set()) is False


def test_mobile_alone_is_enough():
    assert is_contact_eligible(_contact(phone=None, mobile="+15550002222")) is True


@pytest.mark.parametrize("status", ["paused", "exhausted", "converted"])
def test_inactive_statuses_are_excluded(status):
    assert is_contact_eligible(_contact(dialer_status=status)) is False


@pytest.mark.parametrize("status", [None, "active"])
def test_active_or_missing_status_is_eligible(status):
    assert is_contact_eligible(_contact(dialer_status=status)) is True


def test_attempt_cap_retires_contact_at_ten_calls():
    assert is_contact_eligible(_contact(total_calls=9)) is True
    assert is_contact_eligible(_contact(total_calls=10)) is False


def test_company_pause_overrides_contact_state():
    contact = _contact(company_id="co-1")

    assert is_contact_eligible(contact, {"co-1"}) is False
    assert is_contact_eligible(contact, {"co-2"}) is True
    assert is_contact_eligible(_contact(company_id=None), {"co-1"}) is True


def test_filter_eligible_keeps_order():
    contacts = [
        _contact(id="a"),
        _contact(id="b", dialer_status="converted"),
        _contact(id="c", company_id="co-1"),
        _contact(id="d"),
    ]

    assert [c.id for c in filter_eligible(contacts, {"co-1"})] == ["a", "d"]
