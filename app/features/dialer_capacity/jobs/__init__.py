"""
Job runners for the dialer capacity feature.
"""

from .backfill_job import DialerBackfillJob, run_dialer_backfill
from .bloat_check_job import DialerBloatCheckJob, run_dialer_bloat_check

__all__ = [
    "DialerBackfillJob",
    "DialerBloatCheckJob",
    "run_dialer_backfill",
    "run_dialer_bloat_check",
]
