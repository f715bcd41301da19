# app/models/api/dialer_request.py
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.features.dialer_capacity.domain.models import SuggestedAction


class DialerRequest(BaseModel):
    """Bodies arrive camelCased; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleContactsRequest(DialerRequest):
    """Request body for POST /dialer/schedule. Omitted options use the user's settings."""

    contact_ids: list[UUID] = Field(..., min_length=1, max_length=10000)
    target_per_day: int | None = Field(None, ge=0)
    new_quota_per_day: int | None = Field(None, ge=0)
    window_days: int | None = Field(None, ge=1, le=260)


class CapacitySettingsUpdateRequest(DialerRequest):
    """Partial update for PUT /dialer/capacity/settings."""

    target_per_day: int | None = Field(None, ge=0)
    new_quota_per_day: int | None = Field(None, ge=0)
    window_days: int | None = Field(None, ge=1, le=260)
    bloat_threshold: int | None = Field(None, ge=0)


class BackfillRequest(DialerRequest):
    include_overdue: bool = True
    dry_run: bool = False


class BloatFixCandidateRequest(DialerRequest):
    contact_id: UUID
    action: SuggestedAction


class BloatFixRequest(DialerRequest):
    """Either an explicit candidate list or `autoFix: true`."""

    candidates: list[BloatFixCandidateRequest] = Field(default_factory=list)
    auto_fix: bool = False

    @model_validator(mode="after")
    def _require_candidates_or_auto_fix(self) -> "BloatFixRequest":
        if not self.auto_fix and not self.candidates:
            raise ValueError("Provide candidates or set autoFix")
        return self
