"""
Dialer capacity routes.

Thin HTTP layer over the capacity services. Every route is scoped to the
authenticated user; storage failures surface as 503 via the app-level
DatabaseError handler.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import current_user_id
from app.features.dialer_capacity.domain.models import (
    ACTION_DESCRIPTIONS,
    TIER_DESCRIPTIONS,
    BloatFix,
    ScheduleOptions,
)
from app.features.dialer_capacity.services.backfill_service import backfill_service
from app.features.dialer_capacity.services.bloat_service import bloat_service
from app.features.dialer_capacity.services.capacity_service import capacity_service
from app.features.dialer_capacity.services.overview_service import capacity_overview_service
from app.features.dialer_capacity.services.scheduler import scheduler_service
from app.features.dialer_capacity.services.settings_service import capacity_settings_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.dialer_request import (
    BackfillRequest,
    BloatFixRequest,
    CapacitySettingsUpdateRequest,
    ScheduleContactsRequest,
)
from app.models.api.dialer_response import (
    BackfillPreviewResponse,
    BackfillResponse,
    BloatFixResponse,
    BloatStatusResponse,
    CapacityOverviewResponse,
    CapacitySettingsResponse,
    RemovalCandidateResponse,
    RemovalCandidatesResponse,
    ScheduleResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/dialer", tags=["dialer-capacity"])


@router.get("/capacity", response_model=CapacityOverviewResponse)
async def get_capacity(user_id: str = Depends(current_user_id)):
    """Settings, today's queue, per-day buckets, bloat and unscheduled counts."""
    overview = await capacity_overview_service.get_capacity_overview(user_id)
    return CapacityOverviewResponse.model_validate(overview)


@router.get("/capacity/settings", response_model=CapacitySettingsResponse)
async def get_capacity_settings(user_id: str = Depends(current_user_id)):
    capacity = await capacity_settings_service.get_capacity_settings(user_id)
    return CapacitySettingsResponse.model_validate(capacity)


@router.put("/capacity/settings", response_model=CapacitySettingsResponse)
async def update_capacity_settings(
    body: CapacitySettingsUpdateRequest, user_id: str = Depends(current_user_id)
):
    try:
        capacity = await capacity_settings_service.update_capacity_settings(
            user_id,
            target_per_day=body.target_per_day,
            new_quota_per_day=body.new_quota_per_day,
            window_days=body.window_days,
            bloat_threshold=body.bloat_threshold,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return CapacitySettingsResponse.model_validate(capacity)


@router.post("/schedule", response_model=ScheduleResponse)
async def schedule_contacts(body: ScheduleContactsRequest, user_id: str = Depends(current_user_id)):
    """Assign next_call_date to the given contacts within daily capacity."""
    capacity = await capacity_settings_service.get_capacity_settings(user_id)
    options = ScheduleOptions(
        target_per_day=(
            body.target_per_day if body.target_per_day is not None else capacity.target_per_day
        ),
        new_quota_per_day=(
            body.new_quota_per_day
            if body.new_quota_per_day is not None
            else capacity.new_quota_per_day
        ),
        window_days=body.window_days if body.window_days is not None else capacity.window_days,
    )
    if options.new_quota_per_day > options.target_per_day:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="newQuotaPerDay cannot exceed targetPerDay",
        )

    result = await scheduler_service.schedule_contacts(
        user_id, [str(contact_id) for contact_id in body.contact_ids], options
    )
    return ScheduleResponse.model_validate(result)


@router.get("/backfill", response_model=BackfillPreviewResponse)
async def get_backfill_preview(user_id: str = Depends(current_user_id)):
    """Preview what a backfill would schedule. Makes no changes."""
    preview = await capacity_service.get_backfill_preview(user_id)
    return BackfillPreviewResponse.model_validate(preview)


@router.post("/backfill", response_model=BackfillResponse)
async def run_backfill(
    body: BackfillRequest | None = None, user_id: str = Depends(current_user_id)
):
    body = body or BackfillRequest()
    result = await backfill_service.run_backfill(
        user_id, include_overdue=body.include_overdue, dry_run=body.dry_run
    )
    return BackfillResponse.model_validate(result)


@router.get("/bloat-fix", response_model=RemovalCandidatesResponse)
async def get_bloat_fix_candidates(
    limit: int = Query(100, ge=1, le=1000),
    exclude_aaa: bool = Query(True, alias="excludeAaa"),
    user_id: str = Depends(current_user_id),
):
    """Current bloat status plus tiered removal candidates."""
    bloat = await bloat_service.detect_bloat(user_id)
    candidates = await bloat_service.get_removal_candidates(
        user_id, limit=limit, exclude_aaa=exclude_aaa
    )
    return RemovalCandidatesResponse(
        tier0=[RemovalCandidateResponse.model_validate(c) for c in candidates.tier0],
        tier1=[RemovalCandidateResponse.model_validate(c) for c in candidates.tier1],
        tier2=[RemovalCandidateResponse.model_validate(c) for c in candidates.tier2],
        total=candidates.total,
        bloat=BloatStatusResponse.model_validate(bloat),
        tier_descriptions=TIER_DESCRIPTIONS,
        action_descriptions=ACTION_DESCRIPTIONS,
    )


@router.post("/bloat-fix", response_model=BloatFixResponse)
async def apply_bloat_fix(body: BloatFixRequest, user_id: str = Depends(current_user_id)):
    """Apply chosen fixes, or let auto-fix shrink the queue by the current overage."""
    if body.auto_fix:
        bloat = await bloat_service.detect_bloat(user_id)
        if bloat.overage <= 0:
            return BloatFixResponse(applied=0, message="No bloat to fix")

        result = await bloat_service.auto_fix_bloat(user_id, bloat.overage)
        return BloatFixResponse.model_validate(result)

    fixes = [BloatFix(contact_id=str(c.contact_id), action=c.action) for c in body.candidates]
    result = await bloat_service.apply_bloat_fix(user_id, fixes)
    logger.info(
        "Manual bloat fix applied",
        user_id=user_id,
        requested=len(fixes),
        applied=result.applied,
        failed=result.failed,
    )
    return BloatFixResponse.model_validate(result)
