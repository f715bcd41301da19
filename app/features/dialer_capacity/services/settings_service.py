"""
Per-user capacity settings: defaults merged with the stored row.
"""

from app.db.helpers import with_db_retry
from app.features.dialer_capacity.domain.models import CapacitySettings
from app.features.dialer_capacity.repository.settings_repository import (
    CapacitySettingsRepository,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CapacitySettingsService:
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_capacity_settings(self, user_id: str) -> CapacitySettings:
        """Effective settings for a user; defaults when no row exists."""
        row = await CapacitySettingsRepository.fetch(user_id)
        return CapacitySettings.from_row(row)

    async def update_capacity_settings(
        self,
        user_id: str,
        *,
        target_per_day: int | None = None,
        new_quota_per_day: int | None = None,
        window_days: int | None = None,
        bloat_threshold: int | None = None,
    ) -> CapacitySettings:
        """
        Merge a partial update over the current settings and persist the result.

        Raises:
            ValueError: if the merged settings are inconsistent
                (e.g. new quota above the daily target).
        """
        current = await self.get_capacity_settings(user_id)
        updated = current.merged(
            target_per_day=target_per_day,
            new_quota_per_day=new_quota_per_day,
            window_days=window_days,
            bloat_threshold=bloat_threshold,
        )

        row = await CapacitySettingsRepository.upsert(user_id, updated)

        logger.info(
            "Capacity settings updated",
            user_id=user_id,
            target_per_day=updated.target_per_day,
            new_quota_per_day=updated.new_quota_per_day,
            window_days=updated.window_days,
            bloat_threshold=updated.bloat_threshold,
        )
        return CapacitySettings.from_row(row) if row else updated


capacity_settings_service = CapacitySettingsService()
