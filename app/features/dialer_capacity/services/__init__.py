"""
Service layer for the dialer capacity feature.
"""

from .backfill_service import BackfillService, backfill_service
from .bloat_service import BloatService, bloat_service
from .capacity_service import CapacityService, capacity_service
from .overview_service import CapacityOverviewService, capacity_overview_service
from .scheduler import SchedulerService, scheduler_service
from .settings_service import CapacitySettingsService, capacity_settings_service
from .unreachability import UnreachabilityService, unreachability_service

__all__ = [
    "BackfillService",
    "backfill_service",
    "BloatService",
    "bloat_service",
    "CapacityService",
    "capacity_service",
    "CapacityOverviewService",
    "capacity_overview_service",
    "SchedulerService",
    "scheduler_service",
    "CapacitySettingsService",
    "capacity_settings_service",
    "UnreachabilityService",
    "unreachability_service",
]
