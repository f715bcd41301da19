"""
Capacity counting over a user's contact book.

Every count here applies `is_contact_eligible` to exhaustively paginated
reads, so dashboard numbers, bloat detection and the scheduler agree on
what "due" means.
"""

import math
from collections.abc import Set
from datetime import date

from app.config import settings
from app.features.dialer_capacity.domain import business_days
from app.features.dialer_capacity.domain.eligibility import filter_eligible, is_contact_eligible
from app.features.dialer_capacity.domain.models import (
    BackfillPreview,
    CapacityBucket,
    DialerContact,
    DueTodayStats,
    UnreachableToday,
    UnscheduledCounts,
)
from app.features.dialer_capacity.repository.contact_repository import (
    CompanyRepository,
    ContactRepository,
)
from app.features.dialer_capacity.services.settings_service import capacity_settings_service
from app.features.dialer_capacity.services.unreachability import (
    has_recent_connection,
    unreachability_service,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

UNREACHABLE_MIN_CALLS = 6


def scheduling_priority(contact: DialerContact) -> tuple[bool, int]:
    """AAA contacts first, then fewest attempts first."""
    return (not contact.is_aaa, contact.total_calls)


class CapacityService:
    async def get_capacity_buckets(self, user_id: str, window_days: int) -> list[CapacityBucket]:
        """Per-day due load for the next `window_days` business days."""
        today = business_days.dialer_today()
        days = business_days.business_days_list(today, window_days)
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        return await self.count_buckets(user_id, days, paused_company_ids)

    async def count_buckets(
        self,
        user_id: str,
        days: list[date],
        paused_company_ids: Set[str],
        exclude_ids: Set[str] = frozenset(),
    ) -> list[CapacityBucket]:
        """
        Buckets for exactly `days`, in order. Empty days are zero buckets.

        Contacts in `exclude_ids` are left out of the counts; the scheduler
        passes the contacts it is about to move so their current dates do not
        also count against capacity.
        """
        buckets = {day: CapacityBucket(date=day) for day in days}
        contacts = await ContactRepository.fetch_due_on_dates(user_id, days)

        for contact in contacts:
            bucket = buckets.get(contact.next_call_date)
            if contact.id in exclude_ids or bucket is None:
                continue
            if not is_contact_eligible(contact, paused_company_ids):
                continue
            bucket.add(contact.is_new)

        return list(buckets.values())

    async def get_due_today(self, user_id: str) -> DueTodayStats:
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        contacts = await ContactRepository.fetch_due_by(user_id, today)

        stats = DueTodayStats()
        for contact in filter_eligible(contacts, paused_company_ids):
            stats.total += 1
            if contact.is_new:
                stats.new += 1
            else:
                stats.follow_up += 1
            # Unscheduled contacts are due but never overdue
            if contact.next_call_date is not None and contact.next_call_date < today:
                stats.overdue += 1

        return stats

    async def get_unscheduled_counts(self, user_id: str) -> UnscheduledCounts:
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        unscheduled = await ContactRepository.fetch_unscheduled(user_id)
        overdue = await ContactRepository.fetch_overdue(user_id, today)

        return UnscheduledCounts(
            total=len(filter_eligible(unscheduled, paused_company_ids)),
            overdue=len(filter_eligible(overdue, paused_company_ids)),
        )

    async def get_eligible_unscheduled_contacts(
        self,
        user_id: str,
        *,
        include_overdue: bool = True,
        limit: int = 500,
        offset: int = 0,
    ) -> list[DialerContact]:
        """
        Eligible contacts that need a date, in scheduling priority order.

        Uses the same reads and predicate as `get_unscheduled_counts`, so the
        number of contacts returned across all pages matches those counts.
        """
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)

        contacts = await ContactRepository.fetch_unscheduled(user_id)
        if include_overdue:
            contacts += await ContactRepository.fetch_overdue(user_id, today)

        seen: set[str] = set()
        unique: list[DialerContact] = []
        for contact in contacts:
            if contact.id in seen:
                continue
            seen.add(contact.id)
            unique.append(contact)

        eligible = filter_eligible(unique, paused_company_ids)
        eligible.sort(key=scheduling_priority)
        return eligible[offset : offset + limit]

    async def get_backfill_preview(self, user_id: str) -> BackfillPreview:
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        contacts = await ContactRepository.fetch_all_for_user(user_id)

        eligible = unscheduled = overdue = already_scheduled = 0
        for contact in filter_eligible(contacts, paused_company_ids):
            eligible += 1
            if contact.next_call_date is None:
                unscheduled += 1
            elif contact.next_call_date < today:
                overdue += 1
            elif contact.next_call_date > today:
                already_scheduled += 1

        capacity = await capacity_settings_service.get_capacity_settings(user_id)
        to_schedule = unscheduled + overdue
        estimated_days = (
            math.ceil(to_schedule / capacity.target_per_day) if capacity.target_per_day > 0 else 0
        )

        return BackfillPreview(
            eligible=eligible,
            unscheduled=unscheduled,
            overdue=overdue,
            already_scheduled=already_scheduled,
            estimated_days=estimated_days,
        )

    async def get_unreachable_today_count(self, user_id: str, due_today: int) -> UnreachableToday:
        """
        Estimate how many due contacts are high-attempt and never connect.

        Only the first DIALER_UNREACHABLE_SAMPLE_LIMIT high-attempt contacts
        have their call history inspected.
        """
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        contacts = await ContactRepository.fetch_due_by(user_id, today)

        high_attempt = [
            contact
            for contact in filter_eligible(contacts, paused_company_ids)
            if contact.total_calls >= UNREACHABLE_MIN_CALLS
        ]
        if not high_attempt:
            return UnreachableToday()

        sample = [contact.id for contact in high_attempt[: settings.DIALER_UNREACHABLE_SAMPLE_LIMIT]]
        history = await unreachability_service.fetch_recent_history(sample)
        count = sum(1 for contact_id in sample if not has_recent_connection(history.get(contact_id, [])))

        percentage = round(count / due_today * 100) if due_today > 0 else 0
        return UnreachableToday(count=count, percentage=percentage)


capacity_service = CapacityService()
