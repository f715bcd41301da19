"""
Backfill: give every eligible unscheduled or overdue contact a date.

Each round takes the highest-priority batch of contacts still needing a date
and schedules it. Scheduled contacts drop out of the next read, so the loop
always asks for the first batch.
"""

from collections import defaultdict
from datetime import date

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.dialer_capacity.domain.models import BackfillResult, DistributionEntry
from app.features.dialer_capacity.services.capacity_service import capacity_service
from app.features.dialer_capacity.services.scheduler import scheduler_service
from app.features.dialer_capacity.services.settings_service import capacity_settings_service
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class BackfillService:
    async def run_backfill(
        self, user_id: str, *, include_overdue: bool = True, dry_run: bool = False
    ) -> BackfillResult:
        batch_size = settings.DIALER_BACKFILL_BATCH_SIZE
        max_contacts = settings.DIALER_BACKFILL_MAX_CONTACTS

        if dry_run:
            pending = await capacity_service.get_eligible_unscheduled_contacts(
                user_id, include_overdue=include_overdue, limit=max_contacts
            )
            logger.info("Backfill dry run", user_id=user_id, would_schedule=len(pending))
            return BackfillResult(scheduled=len(pending), dry_run=True)

        options = (await capacity_settings_service.get_capacity_settings(user_id)).schedule_options()
        result = BackfillResult()
        by_day: dict[date, int] = defaultdict(int)
        processed = 0
        last_first_id: str | None = None

        while processed < max_contacts:
            batch = await capacity_service.get_eligible_unscheduled_contacts(
                user_id,
                include_overdue=include_overdue,
                limit=min(batch_size, max_contacts - processed),
            )
            if not batch:
                break
            # Same head as last round means nothing moved; stop rather than spin
            if batch[0].id == last_first_id:
                logger.warning("Backfill made no progress", user_id=user_id, contact_id=last_first_id)
                break
            last_first_id = batch[0].id
            processed += len(batch)

            try:
                scheduled = await scheduler_service.schedule_contacts(
                    user_id, [contact.id for contact in batch], options
                )
            except DatabaseError as e:
                logger.error(
                    "Backfill batch failed",
                    user_id=user_id,
                    batch_size=len(batch),
                    error=str(e),
                )
                result.errors += len(batch)
                break

            result.scheduled += scheduled.scheduled
            result.skipped += len(batch) - scheduled.scheduled
            result.capacity_exhausted = result.capacity_exhausted or scheduled.capacity_exhausted
            for entry in scheduled.distribution:
                by_day[entry.date] += entry.count

            if scheduled.scheduled == 0:
                break
        else:
            logger.warning("Backfill safety limit reached", user_id=user_id, limit=max_contacts)

        result.distribution = [
            DistributionEntry(date=day, count=count) for day, count in sorted(by_day.items())
        ]
        logger.info(
            "Backfill completed",
            user_id=user_id,
            scheduled=result.scheduled,
            skipped=result.skipped,
            errors=result.errors,
            capacity_exhausted=result.capacity_exhausted,
        )
        return result


backfill_service = BackfillService()
