"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the matching job coroutine. Dialer jobs run once and exit;
schedule them from cron (bloat check nightly, backfill after imports).
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from app.config import settings
from app.features.dialer_capacity.jobs.backfill_job import run_dialer_backfill
from app.features.dialer_capacity.jobs.bloat_check_job import run_dialer_bloat_check
from app.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Jobs return a summary dict for the worker log, or None
JobCoroutine = Callable[[], Awaitable[dict | None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "dialer_bloat_check": run_dialer_bloat_check,
    "dialer_backfill": run_dialer_backfill,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "dialer_bloat_check").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    summary = await JOB_REGISTRY[name]()
    if summary is not None:
        logger.info("Background worker finished", job=name, **summary)


def main() -> None:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
