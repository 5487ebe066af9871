"""
Session registry and FastAPI dependency providers

The application lifespan builds one store and one session object per
concern (schedule, navigation, settings, countdowns) and registers them
here. Routers resolve them through the provider functions at the bottom;
tests can swap any of them with FastAPI's dependency_overrides.
"""
import logging
from typing import Any, TypeVar

from fastapi import HTTPException, status

from season_calendar.services.countdown_service import CountdownService
from season_calendar.services.document_store import DocumentStore
from season_calendar.services.navigation_service import NavigationSession
from season_calendar.services.schedule_service import ScheduleSession
from season_calendar.services.settings_service import SettingsSession


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionRegistry:
    """Live calendar sessions keyed by their type."""

    def __init__(self):
        self._sessions: dict[type, Any] = {}

    def register(self, session_type: type[T], instance: T) -> None:
        if session_type in self._sessions:
            logger.warning(f"Replacing registered {session_type.__name__}")
        self._sessions[session_type] = instance
        logger.debug(f"Registered {session_type.__name__}")

    def resolve(self, session_type: type[T]) -> T:
        """
        Registered instance of session_type.

        Raises:
            LookupError: If the lifespan has not registered it (yet)
        """
        try:
            return self._sessions[session_type]
        except KeyError:
            raise LookupError(f"{session_type.__name__} is not running") from None

    def __contains__(self, session_type: type) -> bool:
        return session_type in self._sessions

    def clear(self) -> None:
        self._sessions.clear()
        logger.debug("Session registry cleared")


_registry: SessionRegistry | None = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry


def reset_registry() -> None:
    """Drop every registered session (shutdown and tests)."""
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None


def _resolve(session_type: type[T]) -> T:
    try:
        return get_registry().resolve(session_type)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def get_store() -> DocumentStore:
    return _resolve(DocumentStore)


def get_schedule_session() -> ScheduleSession:
    return _resolve(ScheduleSession)


def get_navigation_session() -> NavigationSession:
    return _resolve(NavigationSession)


def get_settings_session() -> SettingsSession:
    return _resolve(SettingsSession)


def get_countdown_service() -> CountdownService:
    return _resolve(CountdownService)
