"""
Dialer capacity feature package.

Decides which business day each contact should next be called on, keeps the
daily queue under the user's throughput target, and detects and shrinks an
overgrown ("bloated") due-today queue. Domain models, repositories, services,
jobs and the HTTP router live together in this slice.
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as dialer_router  # noqa: F401
from .domain.eligibility import is_contact_eligible  # noqa: F401
from .domain.models import CapacitySettings, DialerContact, RemovalCandidate  # noqa: F401
from .services.bloat_service import bloat_service  # noqa: F401
from .services.capacity_service import capacity_service  # noqa: F401
from .services.scheduler import scheduler_service  # noqa: F401
