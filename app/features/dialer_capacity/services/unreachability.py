"""
Unreachability scoring from recent call outcomes.

The score estimates how pointless further dialing is: every recent
non-conversation adds a weighted penalty, and one real conversation in the
recent window wipes out most of it.
"""

from collections import defaultdict
from collections.abc import Iterable

from app.config import settings
from app.db.helpers import DatabaseError, chunked
from app.features.dialer_capacity.domain.models import CallRecord
from app.features.dialer_capacity.repository.call_repository import CallRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RECENT_CALL_WINDOW = 6
CONNECTED_CREDIT = 40
OUTCOME_WEIGHTS: dict[str, int] = {
    "no_answer": 10,
    "voicemail": 8,
    "ai_screener": 6,
    "wrong_number": 5,
    "gatekeeper": 3,
}


def compute_unreachable_score(outcomes: Iterable[str]) -> int:
    """Score outcomes given most-recent-first. Only the first six count."""
    score = 0
    connected = False
    for index, outcome in enumerate(outcomes):
        if index >= RECENT_CALL_WINDOW:
            break
        if outcome == "connected":
            connected = True
        score += OUTCOME_WEIGHTS.get(outcome, 0)

    if connected:
        score -= CONNECTED_CREDIT
    return max(score, 0)


def has_recent_connection(history: list[CallRecord]) -> bool:
    return any(call.outcome == "connected" for call in history[:RECENT_CALL_WINDOW])


class UnreachabilityService:
    async def fetch_recent_history(self, contact_ids: list[str]) -> dict[str, list[CallRecord]]:
        """
        Last six calls per contact, newest first.

        Fetched in id chunks; a failed chunk is logged and its contacts are
        left with an empty history.
        """
        history: dict[str, list[CallRecord]] = defaultdict(list)
        for chunk in chunked(contact_ids, settings.DIALER_ID_CHUNK_SIZE):
            try:
                calls = await CallRepository.fetch_recent_calls(chunk, RECENT_CALL_WINDOW)
            except DatabaseError as e:
                logger.error(
                    "Failed to fetch call history chunk",
                    chunk_size=len(chunk),
                    error=str(e),
                )
                continue

            for call in sorted(calls, key=_started_at, reverse=True):
                group = history[call.contact_id]
                if len(group) < RECENT_CALL_WINDOW:
                    group.append(call)

        return dict(history)

    async def compute_unreachable_score(self, contact_id: str) -> int:
        calls = await CallRepository.fetch_recent_calls([contact_id], RECENT_CALL_WINDOW)
        calls.sort(key=_started_at, reverse=True)
        return compute_unreachable_score(call.outcome for call in calls)

    async def compute_unreachable_scores(self, contact_ids: list[str]) -> dict[str, int]:
        """Batch variant; contacts without history score 0."""
        history = await self.fetch_recent_history(contact_ids)
        return {
            contact_id: compute_unreachable_score(
                call.outcome for call in history.get(contact_id, [])
            )
            for contact_id in contact_ids
        }


def _started_at(call: CallRecord):
    # Calls without a timestamp sort as the oldest
    return (call.started_at is not None, call.started_at or 0)


unreachability_service = UnreachabilityService()
