"""
Dashboard payload combining the capacity reads.
"""

from app.features.dialer_capacity.domain.models import CapacityOverview
from app.features.dialer_capacity.services.bloat_service import bloat_service
from app.features.dialer_capacity.services.capacity_service import capacity_service
from app.features.dialer_capacity.services.settings_service import capacity_settings_service


class CapacityOverviewService:
    async def get_capacity_overview(self, user_id: str) -> CapacityOverview:
        capacity = await capacity_settings_service.get_capacity_settings(user_id)
        today = await capacity_service.get_due_today(user_id)
        buckets = await capacity_service.get_capacity_buckets(user_id, capacity.window_days)
        bloat = await bloat_service.detect_bloat(user_id)
        unscheduled = await capacity_service.get_unscheduled_counts(user_id)
        unreachable = await capacity_service.get_unreachable_today_count(user_id, today.total)

        return CapacityOverview(
            settings=capacity,
            today=today,
            buckets=buckets,
            bloat=bloat,
            unscheduled=unscheduled,
            unreachable_today=unreachable,
        )


capacity_overview_service = CapacityOverviewService()
