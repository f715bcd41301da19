"""
Nightly bloat check.

For every user with contacts: measure today's queue against the bloat
threshold, log bloated users and, when DIALER_AUTO_FIX_ENABLED is set, shrink
the queue by the overage using the tiered auto-fix.

Design:
- One user's failure is logged and the job moves on
- Returns a summary dict for the worker log

Usage:
    python -m app.jobs.worker dialer_bloat_check
"""

import asyncio
from datetime import UTC, datetime

from app.config import settings
from app.db.pool import db_pool
from app.features.dialer_capacity.repository.contact_repository import ContactRepository
from app.features.dialer_capacity.services.bloat_service import bloat_service
from app.infrastructure.observability.logging import get_logger, job_name

logger = get_logger(__name__)


class DialerBloatCheckJob:
    def __init__(self, auto_fix: bool | None = None):
        self.auto_fix = settings.DIALER_AUTO_FIX_ENABLED if auto_fix is None else auto_fix

    async def run(self) -> dict:
        """
        Check every user's queue.

        Returns:
            dict: {
                "users_checked": int,
                "users_bloated": int,
                "contacts_fixed": int,
                "errors": list,
            }
        """
        started = datetime.now(UTC)
        result = {
            "users_checked": 0,
            "users_bloated": 0,
            "contacts_fixed": 0,
            "errors": [],
        }

        user_ids = await ContactRepository.fetch_user_ids_with_contacts()
        logger.info("Starting dialer bloat check", user_count=len(user_ids), auto_fix=self.auto_fix)

        for user_id in user_ids:
            try:
                await self._check_user(user_id, result)
            except Exception as e:
                logger.error("Bloat check failed for user", user_id=user_id, error=str(e))
                result["errors"].append(f"{user_id}: {e}")

        logger.info(
            "Dialer bloat check completed",
            duration_seconds=(datetime.now(UTC) - started).total_seconds(),
            users_checked=result["users_checked"],
            users_bloated=result["users_bloated"],
            contacts_fixed=result["contacts_fixed"],
            error_count=len(result["errors"]),
        )
        return result

    async def _check_user(self, user_id: str, result: dict) -> None:
        status = await bloat_service.detect_bloat(user_id)
        result["users_checked"] += 1

        if not status.is_bloated:
            return

        result["users_bloated"] += 1
        logger.warning(
            "Dialer queue bloated",
            user_id=user_id,
            due_today=status.due_today,
            bloat_threshold=status.bloat_threshold,
            overage=status.overage,
        )

        if self.auto_fix and status.overage > 0:
            fixed = await bloat_service.auto_fix_bloat(user_id, status.overage)
            result["contacts_fixed"] += fixed.applied


async def run_dialer_bloat_check() -> dict:
    """Worker entrypoint: owns the pool for the lifetime of the run."""
    token = job_name.set("dialer_bloat_check")
    await db_pool.initialize()
    try:
        return await DialerBloatCheckJob().run()
    finally:
        await db_pool.close()
        job_name.reset(token)


if __name__ == "__main__":
    asyncio.run(run_dialer_bloat_check())
