"""
Bloat detection and remediation.

When the due-today queue grows past the user's bloat threshold, already-called
contacts are ranked into three confidence tiers of "stop calling this person"
and paused or throttled, most confident tier first.
"""

from datetime import UTC, date, datetime

from app.features.dialer_capacity.domain import business_days
from app.features.dialer_capacity.domain.eligibility import filter_eligible
from app.features.dialer_capacity.domain.models import (
    PAUSE_MONTHS,
    PAUSE_REASON_CODES,
    THROTTLE_CADENCE_DAYS,
    AutoFixResult,
    BloatFix,
    BloatFixResult,
    BloatStatus,
    CallRecord,
    DialerContact,
    DialerPoolEvent,
    RemovalCandidate,
    RemovalCandidates,
)
from app.features.dialer_capacity.repository.contact_repository import (
    CompanyRepository,
    ContactRepository,
)
from app.features.dialer_capacity.repository.lock_repository import CapacityLockRepository
from app.features.dialer_capacity.repository.pool_event_repository import PoolEventRepository
from app.features.dialer_capacity.services.capacity_service import capacity_service
from app.features.dialer_capacity.services.settings_service import capacity_settings_service
from app.features.dialer_capacity.services.unreachability import (
    compute_unreachable_score,
    unreachability_service,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CANDIDATE_LIMIT = 100
UNREACHABLE_MIN_CALLS = 6
UNREACHABLE_SCORE_THRESHOLD = 30
HEAVY_THROTTLE_SCORE = 60

NOT_INTERESTED_REASONS: dict[str, str] = {
    "not_interested_fit": "Not a fit for their needs",
    "not_interested_solution": "Not interested in solution",
    "not_interested_budget": "Budget constraints",
}


def classify_candidate(
    contact: DialerContact, history: list[CallRecord]
) -> RemovalCandidate | None:
    """
    Place one called contact into a removal tier, or None.

    `history` is newest first. Tiers are tried 0, 1, 2 and the first match wins.
    """
    last_call = history[0] if history else None
    last_outcome = last_call.outcome if last_call else None
    last_disposition = last_call.disposition if last_call else None

    def candidate(tier: int, reason: str, action: str, score: int | None = None):
        return RemovalCandidate(
            contact_id=contact.id,
            contact_name=contact.display_name,
            company_name=contact.company_name,
            tier=tier,
            reason=reason,
            suggested_action=action,
            total_calls=contact.total_calls,
            last_outcome=last_outcome,
            last_disposition=last_disposition,
            last_contacted_at=contact.last_contacted_at,
            is_aaa=contact.is_aaa,
            unreachable_score=score,
        )

    if last_disposition == "do_not_contact":
        return candidate(0, "Marked as Do Not Contact", "pause_12mo")
    if last_outcome == "wrong_number":
        return candidate(0, "Wrong number", "pause_12mo")

    if last_disposition and last_disposition.startswith("not_interested"):
        reason = NOT_INTERESTED_REASONS.get(last_disposition, "Not interested")
        return candidate(1, reason, "pause_6mo")

    if contact.total_calls < UNREACHABLE_MIN_CALLS:
        return None

    score = compute_unreachable_score(call.outcome for call in history)
    if score < UNREACHABLE_SCORE_THRESHOLD:
        return None

    action = "throttle_14d" if score >= HEAVY_THROTTLE_SCORE else "throttle_10d"
    return candidate(2, f"{contact.total_calls} attempts, no connection", action, score)


class BloatService:
    async def detect_bloat(self, user_id: str) -> BloatStatus:
        capacity = await capacity_settings_service.get_capacity_settings(user_id)
        due = await capacity_service.get_due_today(user_id)

        return BloatStatus(
            due_today=due.total,
            target=capacity.target_per_day,
            overage=max(0, due.total - capacity.target_per_day),
            is_bloated=due.total >= capacity.bloat_threshold,
            bloat_threshold=capacity.bloat_threshold,
            new_count=due.new,
            follow_up_count=due.follow_up,
            overdue_count=due.overdue,
        )

    async def get_removal_candidates(
        self,
        user_id: str,
        *,
        limit: int = DEFAULT_CANDIDATE_LIMIT,
        exclude_aaa: bool = True,
    ) -> RemovalCandidates:
        """
        Tiered removal suggestions for due contacts that have been called.

        `total` counts every qualifying contact; each tier list is truncated to
        `limit` after sorting.
        """
        today = business_days.dialer_today()
        paused_company_ids = await CompanyRepository.fetch_paused_company_ids(today)
        due = await ContactRepository.fetch_due_by(user_id, today)

        population = [
            contact
            for contact in filter_eligible(due, paused_company_ids)
            if contact.total_calls >= 1 and not (exclude_aaa and contact.is_aaa)
        ]
        if not population:
            return RemovalCandidates()

        history = await unreachability_service.fetch_recent_history([c.id for c in population])

        tiers: dict[int, list[RemovalCandidate]] = {0: [], 1: [], 2: []}
        for contact in population:
            classified = classify_candidate(contact, history.get(contact.id, []))
            if classified is not None:
                tiers[classified.tier].append(classified)

        tiers[0].sort(key=lambda c: c.total_calls, reverse=True)
        tiers[1].sort(key=lambda c: c.total_calls, reverse=True)
        tiers[2].sort(key=lambda c: c.unreachable_score or 0, reverse=True)

        result = RemovalCandidates(
            tier0=tiers[0][:limit],
            tier1=tiers[1][:limit],
            tier2=tiers[2][:limit],
            total=sum(len(candidates) for candidates in tiers.values()),
        )
        logger.info(
            "Removal candidates computed",
            user_id=user_id,
            population=len(population),
            tier0=len(tiers[0]),
            tier1=len(tiers[1]),
            tier2=len(tiers[2]),
        )
        return result

    async def apply_bloat_fix(self, user_id: str, fixes: list[BloatFix]) -> BloatFixResult:
        """Apply pause/throttle actions under the user's capacity lock."""
        async with CapacityLockRepository.user_lock(user_id):
            return await self._apply_fixes(user_id, fixes)

    async def auto_fix_bloat(self, user_id: str, overage: int) -> AutoFixResult:
        """
        Remove up to `overage` contacts from today's queue, tier 0 first.

        AAA contacts are never selected.
        """
        async with CapacityLockRepository.user_lock(user_id):
            candidates = await self.get_removal_candidates(user_id, exclude_aaa=True)

            selected: list[RemovalCandidate] = []
            remaining = overage
            for candidate in candidates.in_priority_order():
                if remaining <= 0:
                    break
                selected.append(candidate)
                remaining -= 1

            fixes = [BloatFix(contact_id=c.contact_id, action=c.suggested_action) for c in selected]
            applied = await self._apply_fixes(user_id, fixes)

        result = AutoFixResult(
            applied=applied.applied,
            failed=applied.failed,
            tier0=sum(1 for c in selected if c.tier == 0),
            tier1=sum(1 for c in selected if c.tier == 1),
            tier2=sum(1 for c in selected if c.tier == 2),
        )
        logger.info(
            "Auto-fix bloat completed",
            user_id=user_id,
            overage=overage,
            applied=result.applied,
            failed=result.failed,
            tier0=result.tier0,
            tier1=result.tier1,
            tier2=result.tier2,
        )
        return result

    async def _apply_fixes(self, user_id: str, fixes: list[BloatFix]) -> BloatFixResult:
        result = BloatFixResult()
        today = business_days.dialer_today()
        now = datetime.now(UTC)

        for fix in fixes:
            try:
                await self._apply_fix(user_id, fix, today, now)
                result.applied += 1
            except Exception as e:
                # One bad contact must not abort the rest of the batch
                result.failed += 1
                logger.error(
                    "Failed to apply bloat fix",
                    user_id=user_id,
                    contact_id=fix.contact_id,
                    action=fix.action,
                    error=str(e),
                )

        return result

    async def _apply_fix(self, user_id: str, fix: BloatFix, today: date, now: datetime) -> None:
        if fix.action in PAUSE_MONTHS:
            months = PAUSE_MONTHS[fix.action]
            paused_until = business_days.add_months(today, months)
            reason_code = PAUSE_REASON_CODES[fix.action]

            contact = await ContactRepository.pause_contact(
                user_id,
                fix.contact_id,
                paused_until=paused_until,
                reason_code=reason_code,
                paused_at=now,
            )
            if contact is None:
                raise LookupError(f"Contact {fix.contact_id} not found")

            await PoolEventRepository.insert(
                DialerPoolEvent(
                    user_id=user_id,
                    entity_type="contact",
                    contact_id=fix.contact_id,
                    entity_name=contact.display_name,
                    action="paused",
                    paused_until=paused_until,
                    duration_months=months,
                    reason_code=reason_code,
                )
            )
            logger.debug(
                "Contact paused",
                user_id=user_id,
                contact_id=fix.contact_id,
                paused_until=paused_until.isoformat(),
            )

        elif fix.action in THROTTLE_CADENCE_DAYS:
            cadence_days = THROTTLE_CADENCE_DAYS[fix.action]
            next_call_date = business_days.add_business_days(today, cadence_days)

            updated = await ContactRepository.throttle_contact(
                user_id,
                fix.contact_id,
                cadence_days=cadence_days,
                next_call_date=next_call_date,
            )
            if not updated:
                raise LookupError(f"Contact {fix.contact_id} not found")

            logger.debug(
                "Contact throttled",
                user_id=user_id,
                contact_id=fix.contact_id,
                cadence_days=cadence_days,
            )

        else:
            raise ValueError(f"Unknown bloat fix action: {fix.action}")


bloat_service = BloatService()
