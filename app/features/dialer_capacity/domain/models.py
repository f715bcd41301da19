"""
Domain models for the dialer capacity feature.

Lightweight dataclasses describing contacts as the scheduler sees them,
per-user capacity settings, the computed per-day buckets, and the results
returned by the scheduling and bloat-remediation services. Repositories
build them from rows; the API layer serialises them.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Literal

DialerStatus = Literal["active", "paused", "exhausted", "converted"]
CallOutcome = Literal[
    "connected",
    "voicemail",
    "no_answer",
    "busy",
    "wrong_number",
    "gatekeeper",
    "ai_screener",
    "skipped",
]
CallDisposition = Literal[
    "interested_meeting",
    "interested_info",
    "callback",
    "not_interested_fit",
    "not_interested_solution",
    "not_interested_budget",
    "do_not_contact",
]
SuggestedAction = Literal["pause_12mo", "pause_6mo", "throttle_10d", "throttle_14d"]
RemovalTier = Literal[0, 1, 2]

INACTIVE_DIALER_STATUSES = frozenset({"paused", "exhausted", "converted"})
MAX_CALL_ATTEMPTS = 10

DEFAULT_TARGET_PER_DAY = 600
DEFAULT_NEW_QUOTA_PER_DAY = 150
DEFAULT_SCHEDULE_WINDOW_DAYS = 20
DEFAULT_BLOAT_THRESHOLD = 800

PAUSE_MONTHS: dict[str, int] = {"pause_12mo": 12, "pause_6mo": 6}
THROTTLE_CADENCE_DAYS: dict[str, int] = {"throttle_10d": 10, "throttle_14d": 14}
PAUSE_REASON_CODES: dict[str, str] = {
    "pause_12mo": "bloat_fix_dnc",
    "pause_6mo": "bloat_fix_not_interested",
}
SUGGESTED_ACTIONS = frozenset(PAUSE_MONTHS) | frozenset(THROTTLE_CADENCE_DAYS)

TIER_DESCRIPTIONS: dict[int, dict[str, str]] = {
    0: {
        "label": "Do Not Contact",
        "description": "Contacts marked as DNC or with repeated wrong numbers",
    },
    1: {
        "label": "Not Interested",
        "description": "Contacts who explicitly declined",
    },
    2: {
        "label": "Unreachable",
        "description": "High call attempts with no successful connection",
    },
}

ACTION_DESCRIPTIONS: dict[str, dict[str, str]] = {
    "pause_12mo": {
        "label": "Pause 12 months",
        "description": "Remove from dialer pool for 1 year",
    },
    "pause_6mo": {
        "label": "Pause 6 months",
        "description": "Remove from dialer pool for 6 months",
    },
    "throttle_10d": {
        "label": "Throttle to 10 days",
        "description": "Set calling cadence to every 10 business days",
    },
    "throttle_14d": {
        "label": "Throttle to 14 days",
        "description": "Set calling cadence to every 14 business days",
    },
}


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(slots=True)
class DialerContact:
    """A contact row reduced to the fields the capacity engine reads."""

    id: str
    next_call_date: date | None = None
    total_calls: int = 0
    company_id: str | None = None
    phone: str | None = None
    mobile: str | None = None
    dialer_status: str | None = None  # None is treated as active
    is_aaa: bool = False
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    last_contacted_at: datetime | None = None

    @property
    def is_new(self) -> bool:
        return self.total_calls == 0

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DialerContact":
        return cls(
            id=str(row["id"]),
            next_call_date=_as_date(row.get("next_call_date")),
            total_calls=row.get("total_calls") or 0,
            company_id=str(row["company_id"]) if row.get("company_id") else None,
            phone=row.get("phone"),
            mobile=row.get("mobile"),
            dialer_status=row.get("dialer_status"),
            is_aaa=bool(row.get("is_aaa")),
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            company_name=row.get("company_name"),
            last_contacted_at=row.get("last_contacted_at"),
        )


@dataclass(slots=True)
class CallRecord:
    """One immutable call attempt."""

    contact_id: str
    outcome: str
    disposition: str | None
    started_at: datetime | None


@dataclass(slots=True)
class ScheduleOptions:
    target_per_day: int = DEFAULT_TARGET_PER_DAY
    new_quota_per_day: int = DEFAULT_NEW_QUOTA_PER_DAY
    window_days: int = DEFAULT_SCHEDULE_WINDOW_DAYS


@dataclass(slots=True)
class CapacitySettings:
    """Per-user throughput configuration. Absent rows fall back to defaults."""

    target_per_day: int = DEFAULT_TARGET_PER_DAY
    new_quota_per_day: int = DEFAULT_NEW_QUOTA_PER_DAY
    window_days: int = DEFAULT_SCHEDULE_WINDOW_DAYS
    bloat_threshold: int = DEFAULT_BLOAT_THRESHOLD

    @classmethod
    def defaults(cls) -> "CapacitySettings":
        return cls()

    @classmethod
    def from_row(cls, row: dict[str, Any] | None) -> "CapacitySettings":
        """Overlay a capacity_settings row on the defaults, column by column."""
        base = cls.defaults()
        if not row:
            return base
        return cls(
            target_per_day=_coalesce(row.get("target_per_day"), base.target_per_day),
            new_quota_per_day=_coalesce(row.get("new_quota_per_day"), base.new_quota_per_day),
            window_days=_coalesce(row.get("schedule_window_days"), base.window_days),
            bloat_threshold=_coalesce(row.get("bloat_threshold"), base.bloat_threshold),
        )

    def merged(self, **overrides: int | None) -> "CapacitySettings":
        """Return a validated copy with the non-None overrides applied."""
        updated = replace(self, **{k: v for k, v in overrides.items() if v is not None})
        updated.validate()
        return updated

    def validate(self) -> None:
        if self.target_per_day < 0:
            raise ValueError("target_per_day must be >= 0")
        if self.new_quota_per_day < 0:
            raise ValueError("new_quota_per_day must be >= 0")
        if self.new_quota_per_day > self.target_per_day:
            raise ValueError("new_quota_per_day cannot exceed target_per_day")
        if self.window_days < 1:
            raise ValueError("window_days must be >= 1")
        if self.bloat_threshold < 0:
            raise ValueError("bloat_threshold must be >= 0")

    def schedule_options(self) -> ScheduleOptions:
        return ScheduleOptions(
            target_per_day=self.target_per_day,
            new_quota_per_day=self.new_quota_per_day,
            window_days=self.window_days,
        )


def _coalesce(value: Any, fallback: int) -> int:
    return fallback if value is None else int(value)


@dataclass(slots=True)
class CapacityBucket:
    """Due-contact load for one business day. Computed, never stored."""

    date: date
    total_due: int = 0
    new_due: int = 0
    follow_up_due: int = 0

    def add(self, is_new: bool) -> None:
        self.total_due += 1
        if is_new:
            self.new_due += 1
        else:
            self.follow_up_due += 1


@dataclass(slots=True)
class DueTodayStats:
    total: int = 0
    new: int = 0
    follow_up: int = 0
    overdue: int = 0


@dataclass(slots=True)
class DistributionEntry:
    date: date
    count: int


@dataclass(slots=True)
class ScheduleResult:
    scheduled: int
    distribution: list[DistributionEntry]
    unplaced: list[str] = field(default_factory=list)
    capacity_exhausted: bool = False


@dataclass(slots=True)
class UnscheduledCounts:
    total: int = 0
    overdue: int = 0


@dataclass(slots=True)
class BackfillPreview:
    eligible: int
    unscheduled: int
    overdue: int
    already_scheduled: int
    estimated_days: int


@dataclass(slots=True)
class BackfillResult:
    scheduled: int = 0
    skipped: int = 0
    errors: int = 0
    distribution: list[DistributionEntry] = field(default_factory=list)
    dry_run: bool = False
    capacity_exhausted: bool = False


@dataclass(slots=True)
class UnreachableToday:
    count: int = 0
    percentage: int = 0


@dataclass(slots=True)
class BloatStatus:
    due_today: int
    target: int
    overage: int
    is_bloated: bool
    bloat_threshold: int
    new_count: int
    follow_up_count: int
    overdue_count: int


@dataclass(slots=True)
class RemovalCandidate:
    contact_id: str
    contact_name: str
    company_name: str | None
    tier: int
    reason: str
    suggested_action: str
    total_calls: int
    last_outcome: str | None
    last_disposition: str | None
    last_contacted_at: datetime | None
    is_aaa: bool
    unreachable_score: int | None = None


@dataclass(slots=True)
class RemovalCandidates:
    tier0: list[RemovalCandidate] = field(default_factory=list)
    tier1: list[RemovalCandidate] = field(default_factory=list)
    tier2: list[RemovalCandidate] = field(default_factory=list)
    total: int = 0

    def in_priority_order(self) -> list[RemovalCandidate]:
        return [*self.tier0, *self.tier1, *self.tier2]


@dataclass(slots=True)
class BloatFix:
    contact_id: str
    action: str


@dataclass(slots=True)
class BloatFixResult:
    applied: int = 0
    failed: int = 0


@dataclass(slots=True)
class AutoFixResult:
    applied: int = 0
    failed: int = 0
    tier0: int = 0
    tier1: int = 0
    tier2: int = 0


@dataclass(slots=True)
class CapacityOverview:
    settings: CapacitySettings
    today: DueTodayStats
    buckets: list[CapacityBucket]
    bloat: BloatStatus
    unscheduled: UnscheduledCounts
    unreachable_today: UnreachableToday


@dataclass(slots=True)
class DialerPoolEvent:
    """Append-only audit row written whenever an entity is paused."""

    user_id: str
    entity_type: Literal["company", "contact"]
    entity_name: str
    action: Literal["paused", "unpaused", "deleted"]
    contact_id: str | None = None
    company_id: str | None = None
    paused_until: date | None = None
    duration_months: int | None = None
    reason_code: str | None = None
    reason_notes: str | None = None
