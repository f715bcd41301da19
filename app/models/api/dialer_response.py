# app/models/api/dialer_response.py
import datetime as dt

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DialerResponse(BaseModel):
    """Built from domain dataclasses; serialised camelCased."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class CapacitySettingsResponse(DialerResponse):
    target_per_day: int
    new_quota_per_day: int
    window_days: int
    bloat_threshold: int


class CapacityBucketResponse(DialerResponse):
    date: dt.date
    total_due: int
    new_due: int
    follow_up_due: int


class DueTodayResponse(DialerResponse):
    total: int
    new: int
    follow_up: int
    overdue: int


class BloatStatusResponse(DialerResponse):
    due_today: int
    target: int
    overage: int
    is_bloated: bool
    bloat_threshold: int
    new_count: int
    follow_up_count: int
    overdue_count: int


class UnscheduledCountsResponse(DialerResponse):
    total: int
    overdue: int


class UnreachableTodayResponse(DialerResponse):
    count: int
    percentage: int


class CapacityOverviewResponse(DialerResponse):
    """Response for GET /dialer/capacity"""

    settings: CapacitySettingsResponse
    today: DueTodayResponse
    buckets: list[CapacityBucketResponse]
    bloat: BloatStatusResponse
    unscheduled: UnscheduledCountsResponse
    unreachable_today: UnreachableTodayResponse


class DistributionEntryResponse(DialerResponse):
    date: dt.date
    count: int


class ScheduleResponse(DialerResponse):
    """Response for POST /dialer/schedule"""

    scheduled: int
    distribution: list[DistributionEntryResponse]
    unplaced: list[str]
    capacity_exhausted: bool


class BackfillPreviewResponse(DialerResponse):
    eligible: int
    unscheduled: int
    overdue: int
    already_scheduled: int
    estimated_days: int


class BackfillResponse(DialerResponse):
    scheduled: int
    skipped: int
    errors: int
    distribution: list[DistributionEntryResponse]
    dry_run: bool
    capacity_exhausted: bool


class RemovalCandidateResponse(DialerResponse):
    contact_id: str
    contact_name: str
    company_name: str | None = None
    tier: int
    reason: str
    suggested_action: str
    unreachable_score: int | None = None
    total_calls: int
    last_outcome: str | None = None
    last_disposition: str | None = None
    last_contacted_at: dt.datetime | None = None
    is_aaa: bool


class RemovalCandidatesResponse(DialerResponse):
    """Response for GET /dialer/bloat-fix"""

    tier0: list[RemovalCandidateResponse]
    tier1: list[RemovalCandidateResponse]
    tier2: list[RemovalCandidateResponse]
    total: int
    bloat: BloatStatusResponse
    tier_descriptions: dict[int, dict[str, str]]
    action_descriptions: dict[str, dict[str, str]]


class BloatFixResponse(DialerResponse):
    """Response for POST /dialer/bloat-fix"""

    applied: int
    failed: int = 0
    tier0: int | None = None
    tier1: int | None = None
    tier2: int | None = None
    message: str | None = None
