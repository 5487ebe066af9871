"""
Document Store

Persistence adapter for the calendar. The schedule is sharded into one
document per season; navigation and settings are single documents per user.
Every successful write is published to the matching change feed so that all
live sessions converge on the stored state.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from time import perf_counter

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from season_calendar.config import settings
from season_calendar.database import session_scope
from season_calendar.models import (
    CountdownDocumentRow,
    NavigationDocumentRow,
    SeasonDocumentRow,
    SettingsDocumentRow,
)
from season_calendar.schemas import NavigationPrefs, ScheduleEntry, SeasonDocument, UserSettings
from season_calendar.services.change_feed import ChangeFeed, Handler, Subscription
from season_calendar.utils.logging_helpers import log_store_timing
from season_calendar.utils.season_index import TOTAL_SEASONS, group_by_season


logger = logging.getLogger(__name__)

# RuntimeError covers "database not initialized"
_STORE_FAILURES = (SQLAlchemyError, ValidationError, OSError, RuntimeError)


class StoreError(RuntimeError):
    """Base class for document store failures"""
    pass


class StoreReadError(StoreError):
    """Raised when a document could not be read"""
    pass


class StoreWriteError(StoreError):
    """Raised when a document could not be written"""
    pass


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


async def _upsert(session: AsyncSession, model: type, values: dict, *, key: str) -> None:
    """
    Insert or overwrite one document row in a single statement.

    The write is the first statement of its transaction, so concurrent
    writers wait on the SQLite busy timeout instead of failing on a stale
    WAL read snapshot.
    """
    stmt = sqlite_insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[key],
        set_={column: stmt.excluded[column] for column in values if column != key},
    )
    await session.execute(stmt)


def _season_document(row: SeasonDocumentRow) -> SeasonDocument:
    return SeasonDocument(
        season_number=row.season_number,
        entries=row.entries or [],
        updated_at=_as_utc(row.updated_at),
    )


class DocumentStore:
    """Async document operations backed by the SQLAlchemy session scope."""

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id or settings.user_id
        self.schedule_feed: ChangeFeed[SeasonDocument] = ChangeFeed("schedule")
        self.navigation_feed: ChangeFeed[NavigationPrefs] = ChangeFeed("navigation")
        self.settings_feed: ChangeFeed[UserSettings] = ChangeFeed("settings")

    # Schedule

    async def load_season(self, season_number: int) -> SeasonDocument | None:
        """
        Load one season document

        Args:
            season_number: 1-based season number

        Returns:
            The season document, or None if it was never written

        Raises:
            StoreReadError: If the read fails
        """
        try:
            async with session_scope() as session:
                row = await session.get(SeasonDocumentRow, season_number)
                return _season_document(row) if row is not None else None
        except _STORE_FAILURES as exc:
            raise StoreReadError(f"Failed to load season-{season_number}: {exc}") from exc

    async def load_schedule_entries(self) -> list[ScheduleEntry]:
        """
        Load schedule entries from every season document

        All seasons are read concurrently. Missing documents contribute no
        entries, so an unseeded store yields an empty list.

        Raises:
            StoreReadError: If any season read fails
        """
        started = perf_counter()
        try:
            documents = await asyncio.gather(
                *(self.load_season(season_number) for season_number in range(1, TOTAL_SEASONS + 1))
            )
        except StoreReadError as exc:
            logger.error("Error loading schedule: %s", exc, exc_info=True)
            raise

        entries: list[ScheduleEntry] = []
        for document in documents:
            if document is not None:
                entries.extend(document.entries)

        log_store_timing(logger, "Loaded", len(entries), perf_counter() - started)
        return entries

    async def _write_season(self, season_number: int, entries: list[ScheduleEntry]) -> SeasonDocument:
        updated_at = datetime.now(timezone.utc)
        payload = [entry.model_dump(by_alias=True) for entry in entries]

        async with session_scope() as session:
            await _upsert(
                session,
                SeasonDocumentRow,
                {"season_number": season_number, "entries": payload, "updated_at": updated_at},
                key="season_number",
            )

        logger.debug("Saved season-%s (%s entries)", season_number, len(entries))
        return SeasonDocument(season_number=season_number, entries=list(entries), updated_at=updated_at)

    async def save_seasons(self, seasons: Mapping[int, Iterable[ScheduleEntry]]) -> None:
        """
        Overwrite the given season documents

        Seasons are written concurrently; any failed write fails the whole
        call without identifying the season. Documents that were written are
        published to the schedule feed.

        Args:
            seasons: Season number -> complete list of that season's entries

        Raises:
            StoreWriteError: If any write fails
        """
        started = perf_counter()
        season_items = [(number, list(entries)) for number, entries in seasons.items()]
        results = await asyncio.gather(
            *(self._write_season(number, entries) for number, entries in season_items),
            return_exceptions=True,
        )

        failures: list[Exception] = []
        for result in results:
            if isinstance(result, SeasonDocument):
                self.schedule_feed.publish(result)
            elif isinstance(result, Exception):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result

        if failures:
            logger.error("Error saving schedule: %s", failures[0], exc_info=failures[0])
            raise StoreWriteError(f"Failed to save schedule: {failures[0]}") from failures[0]

        log_store_timing(
            logger,
            "Saved",
            sum(len(entries) for _, entries in season_items),
            perf_counter() - started,
        )

    async def save_schedule_entries(self, entries: Iterable[ScheduleEntry]) -> None:
        """Save entries split by season, one document per affected season."""
        await self.save_seasons(group_by_season(entries))

    def subscribe_to_schedule(self, handler: Handler[SeasonDocument]) -> Subscription[SeasonDocument]:
        return self.schedule_feed.subscribe(handler)

    # Navigation

    async def load_navigation_prefs(self) -> NavigationPrefs:
        """Load navigation preferences, defaulting to day 1 page 1."""
        try:
            async with session_scope() as session:
                row = await session.get(NavigationDocumentRow, self.user_id)
                if row is None:
                    return NavigationPrefs()
                return NavigationPrefs(
                    current_day=row.current_day,
                    current_page=row.current_page,
                    updated_at=_as_utc(row.updated_at),
                )
        except _STORE_FAILURES as exc:
            logger.error("Error loading navigation preferences: %s", exc)
            raise StoreReadError(f"Failed to load navigation preferences: {exc}") from exc

    async def save_navigation_prefs(self, prefs: NavigationPrefs) -> NavigationPrefs:
        """Write navigation preferences and publish the stored document."""
        updated_at = datetime.now(timezone.utc)
        try:
            async with session_scope() as session:
                await _upsert(
                    session,
                    NavigationDocumentRow,
                    {
                        "user_id": self.user_id,
                        "current_day": prefs.current_day,
                        "current_page": prefs.current_page,
                        "updated_at": updated_at,
                    },
                    key="user_id",
                )
        except _STORE_FAILURES as exc:
            logger.error("Error saving navigation preferences: %s", exc)
            raise StoreWriteError(f"Failed to save navigation preferences: {exc}") from exc

        stored = prefs.model_copy(update={"updated_at": updated_at})
        self.navigation_feed.publish(stored)
        return stored

    async def reset_navigation_prefs(self) -> NavigationPrefs:
        return await self.save_navigation_prefs(NavigationPrefs(current_day=1, current_page=1))

    def subscribe_to_navigation_prefs(self, handler: Handler[NavigationPrefs]) -> Subscription[NavigationPrefs]:
        return self.navigation_feed.subscribe(handler)

    # Settings

    async def load_user_settings(self) -> UserSettings:
        """Load user settings, defaulting to no channel suffixes."""
        try:
            async with session_scope() as session:
                row = await session.get(SettingsDocumentRow, self.user_id)
                if row is None:
                    return UserSettings()
                return UserSettings(
                    channel_suffixes=row.channel_suffixes or {},
                    updated_at=_as_utc(row.updated_at),
                )
        except _STORE_FAILURES as exc:
            logger.error("Error loading user settings: %s", exc)
            raise StoreReadError(f"Failed to load user settings: {exc}") from exc

    async def save_user_settings(self, user_settings: UserSettings) -> UserSettings:
        """Write user settings and publish the stored document."""
        updated_at = datetime.now(timezone.utc)
        suffixes = {str(index): suffix for index, suffix in user_settings.channel_suffixes.items()}
        try:
            async with session_scope() as session:
                await _upsert(
                    session,
                    SettingsDocumentRow,
                    {"user_id": self.user_id, "channel_suffixes": suffixes, "updated_at": updated_at},
                    key="user_id",
                )
        except _STORE_FAILURES as exc:
            logger.error("Error saving user settings: %s", exc)
            raise StoreWriteError(f"Failed to save user settings: {exc}") from exc

        stored = user_settings.model_copy(update={"updated_at": updated_at})
        self.settings_feed.publish(stored)
        return stored

    def subscribe_to_user_settings(self, handler: Handler[UserSettings]) -> Subscription[UserSettings]:
        return self.settings_feed.subscribe(handler)

    # Countdowns

    async def load_countdown_starts(self) -> dict[str, datetime]:
        try:
            async with session_scope() as session:
                result = await session.execute(select(CountdownDocumentRow))
                return {row.key: _as_utc(row.started_at) for row in result.scalars().all()}
        except _STORE_FAILURES as exc:
            raise StoreReadError(f"Failed to load countdown starts: {exc}") from exc

    async def save_countdown_start(self, key: str, started_at: datetime) -> None:
        try:
            async with session_scope() as session:
                await _upsert(
                    session,
                    CountdownDocumentRow,
                    {"key": key, "started_at": started_at},
                    key="key",
                )
        except _STORE_FAILURES as exc:
            raise StoreWriteError(f"Failed to save countdown '{key}': {exc}") from exc
