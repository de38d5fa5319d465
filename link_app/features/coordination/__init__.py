"""
Coordination feature package.

Availability, group chat and voting, realtime fan-out and matching live in
this slice (domain models, repositories, services, realtime hub and API
routers) so the whole coordination flow can be read in one place.
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as coordination_router  # noqa: F401
from .realtime.transport import router as realtime_router  # noqa: F401
from .services.coordination_service import (  # noqa: F401
    CoordinationService,
    build_coordination_service,
)
