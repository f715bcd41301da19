"""
Backfill job: schedule every eligible unscheduled or overdue contact, per user.

Usage:
    python -m app.jobs.worker dialer_backfill
"""

import asyncio

from app.db.pool import db_pool
from app.features.dialer_capacity.repository.contact_repository import ContactRepository
from app.features.dialer_capacity.services.backfill_service import backfill_service
from app.infrastructure.observability.logging import get_logger, job_name

logger = get_logger(__name__)


class DialerBackfillJob:
    def __init__(self, include_overdue: bool = True):
        self.include_overdue = include_overdue

    async def run(self) -> dict:
        result = {"users_processed": 0, "contacts_scheduled": 0, "errors": []}

        user_ids = await ContactRepository.fetch_user_ids_with_contacts()
        logger.info("Starting dialer backfill", user_count=len(user_ids))

        for user_id in user_ids:
            try:
                outcome = await backfill_service.run_backfill(
                    user_id, include_overdue=self.include_overdue
                )
            except Exception as e:
                logger.error("Backfill failed for user", user_id=user_id, error=str(e))
                result["errors"].append(f"{user_id}: {e}")
                continue

            result["users_processed"] += 1
            result["contacts_scheduled"] += outcome.scheduled

        logger.info(
            "Dialer backfill completed",
            users_processed=result["users_processed"],
            contacts_scheduled=result["contacts_scheduled"],
            error_count=len(result["errors"]),
        )
        return result


async def run_dialer_backfill() -> dict:
    token = job_name.set("dialer_backfill")
    await db_pool.initialize()
    try:
        return await DialerBackfillJob().run()
    finally:
        await db_pool.close()
        job_name.reset(token)


if __name__ == "__main__":
    asyncio.run(run_dialer_backfill())
