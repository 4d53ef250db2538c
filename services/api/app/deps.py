"""FastAPI dependencies for the FryPlan API.

Provides:
- The process-wide cooking session service (one active session per process)
"""

from typing import Optional

from .db import get_session_factory
from .services.cooking_session import CookingSessionService
from .services.session_store import SqlSessionStore

_cooking_service: Optional[CookingSessionService] = None


def get_cooking_service() -> CookingSessionService:
    """Return the shared session service, building it on first use.

    The active session lives in memory between requests; only started,
    completed and cancelled sessions are written to the database.
    """
    global _cooking_service
    if _cooking_service is None:
        _cooking_service = CookingSessionService(SqlSessionStore(get_session_factory()))
    return _cooking_service
