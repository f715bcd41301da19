"""
Per-user capacity lock.

Scheduling and bloat remediation read bucket counts and then write dates;
two passes for the same user must not interleave.
"""

from contextlib import AbstractAsyncContextManager

from app.config import settings
from app.db.helpers import advisory_lock


class CapacityLockRepository:
    @staticmethod
    def lock_key(user_id: str) -> str:
        return f"dialer_capacity:{user_id}"

    @staticmethod
    def user_lock(user_id: str) -> AbstractAsyncContextManager[None]:
        """Serialises capacity-mutating passes for one user across workers."""
        return advisory_lock(
            CapacityLockRepository.lock_key(user_id),
            timeout=settings.DIALER_LOCK_TIMEOUT_SECONDS,
            poll_interval=settings.DIALER_LOCK_POLL_INTERVAL_SECONDS,
        )
