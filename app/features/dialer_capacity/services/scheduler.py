"""
Capacity-aware scheduler.

Assigns each requested contact to the least-loaded business day that still
has room under the daily target and, for first-touch contacts, the new-contact
quota. Assignment is strictly sequential: each placement updates the
in-memory bucket counters that the next placement reads. The whole pass runs
under the per-user capacity lock so concurrent passes cannot both fill the
same day.
"""

from collections import defaultdict
from datetime import date

from app.config import settings
from app.db.helpers import DatabaseError, chunked
from app.features.dialer_capacity.domain import business_days
from app.features.dialer_capacity.domain.models import (
    CapacityBucket,
    DialerContact,
    DistributionEntry,
    ScheduleOptions,
    ScheduleResult,
)
from app.features.dialer_capacity.repository.contact_repository import (
    CompanyRepository,
    ContactRepository,
)
from app.features.dialer_capacity.repository.lock_repository import CapacityLockRepository
from app.features.dialer_capacity.services.capacity_service import (
    capacity_service,
    scheduling_priority,
)
from app.features.dialer_capacity.services.settings_service import capacity_settings_service
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def find_best_day(
    buckets: list[CapacityBucket], is_new: bool, options: ScheduleOptions
) -> CapacityBucket | None:
    """
    Least-loaded bucket with room for this contact.

    Buckets are in date order and only a strictly lower load replaces the
    current pick, so ties go to the earliest date.
    """
    best: CapacityBucket | None = None
    for bucket in buckets:
        if bucket.total_due >= options.target_per_day:
            continue
        if is_new and bucket.new_due >= options.new_quota_per_day:
            continue
        if best is None or bucket.total_due < best.total_due:
            best = bucket
    return best


def can_ever_place(is_new: bool, options: ScheduleOptions) -> bool:
    """False when no amount of extra days could fit this contact."""
    if options.target_per_day <= 0:
        return False
    if is_new and options.new_quota_per_day <= 0:
        return False
    return True


class SchedulerService:
    async def schedule_contacts(
        self,
        user_id: str,
        contact_ids: list[str],
        options: ScheduleOptions | None = None,
    ) -> ScheduleResult:
        """
        Give each contact a next_call_date within capacity.

        Args:
            user_id: Owner of the contacts
            contact_ids: Contacts to (re)schedule; unknown ids are ignored
            options: Overrides; defaults to the user's capacity settings

        Returns:
            ScheduleResult with the persisted count, per-day distribution and
            any contacts that could not be placed within the bounded horizon.
        """
        if options is None:
            capacity = await capacity_settings_service.get_capacity_settings(user_id)
            options = capacity.schedule_options()

        unique_ids = list(dict.fromkeys(contact_ids))
        if not unique_ids:
            return ScheduleResult(scheduled=0, distribution=[])

        async with CapacityLockRepository.user_lock(user_id):
            return await self._schedule_locked(user_id, unique_ids, options)

    async def _schedule_locked(
        self, user_id: str, contact_ids: list[str], options: ScheduleOptions
    ) -> ScheduleResult:
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        days = business_days.business_days_list(today, options.window_days)
        moving = set(contact_ids)
        buckets = await capacity_service.count_buckets(
            user_id, days, paused_company_ids, exclude_ids=moving
        )

        contacts = await self._fetch_scheduling_rows(user_id, contact_ids)
        contacts.sort(key=scheduling_priority)

        assignments: dict[date, list[str]] = defaultdict(list)
        unplaced: list[str] = []
        extensions = 0

        for contact in contacts:
            if not can_ever_place(contact.is_new, options):
                unplaced.append(contact.id)
                continue

            bucket = find_best_day(buckets, contact.is_new, options)
            while bucket is None and extensions < settings.DIALER_MAX_WINDOW_EXTENSIONS:
                buckets.extend(
                    await self._extend_window(user_id, buckets, today, paused_company_ids, moving)
                )
                extensions += 1
                bucket = find_best_day(buckets, contact.is_new, options)

            if bucket is None:
                unplaced.append(contact.id)
                continue

            bucket.add(contact.is_new)
            assignments[bucket.date].append(contact.id)

        persisted = await self._persist_assignments(user_id, assignments)

        if unplaced:
            logger.warning(
                "Scheduling horizon exhausted",
                user_id=user_id,
                unplaced_count=len(unplaced),
                extensions=extensions,
            )

        result = ScheduleResult(
            scheduled=sum(persisted.values()),
            distribution=[
                DistributionEntry(date=day, count=count)
                for day, count in sorted(persisted.items())
                if count > 0
            ],
            unplaced=unplaced,
            capacity_exhausted=bool(unplaced),
        )

        logger.info(
            "Contacts scheduled",
            user_id=user_id,
            requested=len(contact_ids),
            found=len(contacts),
            scheduled=result.scheduled,
            days_used=len(result.distribution),
            extensions=extensions,
        )
        return result

    async def _fetch_scheduling_rows(
        self, user_id: str, contact_ids: list[str]
    ) -> list[DialerContact]:
        contacts: list[DialerContact] = []
        for chunk in chunked(contact_ids, settings.DIALER_ID_CHUNK_SIZE):
            try:
                contacts.extend(await ContactRepository.fetch_by_ids(user_id, chunk))
            except DatabaseError as e:
                logger.error(
                    "Failed to fetch scheduling chunk",
                    user_id=user_id,
                    chunk_size=len(chunk),
                    error=str(e),
                )
        return contacts

    async def _extend_window(
        self,
        user_id: str,
        buckets: list[CapacityBucket],
        today: date,
        paused_company_ids: set[str],
        moving: set[str],
    ) -> list[CapacityBucket]:
        # Extra days may already hold contacts, so count them like the base window
        start = business_days.add_business_days(buckets[-1].date, 1) if buckets else today
        days = business_days.business_days_list(start, settings.DIALER_WINDOW_EXTENSION_DAYS)
        logger.debug(
            "Extending scheduling window",
            user_id=user_id,
            from_date=days[0].isoformat(),
            to_date=days[-1].isoformat(),
        )
        return await capacity_service.count_buckets(
            user_id, days, paused_company_ids, exclude_ids=moving
        )

    async def _persist_assignments(
        self, user_id: str, assignments: dict[date, list[str]]
    ) -> dict[date, int]:
        """One batched update per date and id chunk. Failed chunks are skipped."""
        persisted: dict[date, int] = {}
        for day in sorted(assignments):
            persisted[day] = 0
            for chunk in chunked(assignments[day], settings.DIALER_ID_CHUNK_SIZE):
                try:
                    persisted[day] += await ContactRepository.update_next_call_date(
                        user_id, chunk, day
                    )
                except DatabaseError as e:
                    logger.error(
                        "Failed to persist schedule chunk",
                        user_id=user_id,
                        next_call_date=day.isoformat(),
                        chunk_size=len(chunk),
                        error=str(e),
                    )
        return persisted


scheduler_service = SchedulerService()
