"""
Persistence for per-user capacity settings.
"""

from typing import Any

from app.db.helpers import fetch_one
from app.features.dialer_capacity.domain.models import CapacitySettings


class CapacitySettingsRepository:
    @staticmethod
    async def fetch(user_id: str) -> dict[str, Any] | None:
        return await fetch_one(
            """
            SELECT user_id, target_per_day, new_quota_per_day,
                   schedule_window_days, bloat_threshold, updated_at
            FROM capacity_settings
            WHERE user_id = %s
            """,
            (user_id,),
        )

    @staticmethod
    async def upsert(user_id: str, capacity: CapacitySettings) -> dict[str, Any] | None:
        return await fetch_one(
            """
            INSERT INTO capacity_settings (
                user_id, target_per_day, new_quota_per_day,
                schedule_window_days, bloat_threshold, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (user_id) DO UPDATE SET
                target_per_day = EXCLUDED.target_per_day,
                new_quota_per_day = EXCLUDED.new_quota_per_day,
                schedule_window_days = EXCLUDED.schedule_window_days,
                bloat_threshold = EXCLUDED.bloat_threshold,
                updated_at = NOW()
            RETURNING user_id, target_per_day, new_quota_per_day,
                      schedule_window_days, bloat_threshold, updated_at
            """,
            (
                user_id,
                capacity.target_per_day,
                capacity.new_quota_per_day,
                capacity.window_days,
                capacity.bloat_threshold,
            ),
        )
