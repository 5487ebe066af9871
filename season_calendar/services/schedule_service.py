"""
Schedule Service

Session-scoped owner of the schedule entries. Applies toggles optimistically,
persists only the season documents a toggle touched, rolls back on write
failure and follows the schedule feed so every session converges on the
stored state.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Container, Iterable, Iterator, Mapping
from dataclasses import dataclass

from season_calendar.schemas import ScheduleEntry, SeasonDocument
from season_calendar.services.change_feed import Subscription
from season_calendar.services.document_store import (
    DocumentStore,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from season_calendar.services.schedule_generator import generate_season_schedule
from season_calendar.utils.season_index import season_of_entry_id


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToggleResult:
    entry_id: str
    completed: bool
    changed_entry_ids: tuple[str, ...]
    seasons: tuple[int, ...]
    persisted: bool
    error: str | None = None


def plan_toggle(
    season_entries: Iterable[ScheduleEntry],
    target: ScheduleEntry,
    unsaved_ids: Container[str] = frozenset(),
) -> dict[str, ScheduleEntry]:
    """
    Compute every entry a toggle changes

    The target flips. When it becomes completed, every earlier pending day of
    the same channel is completed too. Un-completing never cascades.

    Args:
        season_entries: Entries that may share the target's channel
        target: Entry being toggled
        unsaved_ids: Entries whose current value is not stored yet; a
            completing cascade includes them even when they look completed

    Returns:
        Entry id -> updated entry, target first
    """
    new_completed = not target.completed
    updates = {target.id: target.model_copy(update={"completed": new_completed})}

    if new_completed:
        target_day = target.day
        for entry in season_entries:
            if (
                entry.channel_id == target.channel_id
                and (not entry.completed or entry.id in unsaved_ids)
                and entry.day < target_day
            ):
                updates[entry.id] = entry.model_copy(update={"completed": True})

    return updates


class ScheduleSession:
    """Schedule state for one running application, kept in sync with the store."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._seasons: dict[int, dict[str, ScheduleEntry]] = {}
        # optimistic updates whose write has not finished yet
        self._pending: dict[str, ScheduleEntry] = {}
        # season contents as last loaded, saved or received from the feed
        self._stored: dict[int, dict[str, ScheduleEntry]] = {}
        self._persist_lock = asyncio.Lock()
        self._subscription: Subscription[SeasonDocument] | None = None
        self.is_loading = True
        self.load_error: StoreReadError | None = None
        # last load or save failure
        self.error: StoreError | None = None

    @property
    def entries(self) -> list[ScheduleEntry]:
        return list(self.iter_entries())

    def iter_entries(self) -> Iterator[ScheduleEntry]:
        for season_number in sorted(self._seasons):
            yield from self._seasons[season_number].values()

    @property
    def entry_count(self) -> int:
        return sum(len(season) for season in self._seasons.values())

    @property
    def completed_count(self) -> int:
        return sum(1 for entry in self.iter_entries() if entry.completed)

    def get_entry(self, entry_id: str) -> ScheduleEntry | None:
        return self._seasons.get(season_of_entry_id(entry_id), {}).get(entry_id)

    def season_entries(self, season_number: int) -> list[ScheduleEntry]:
        return list(self._seasons.get(season_number, {}).values())

    def _apply(self, entries: Iterable[ScheduleEntry]) -> None:
        for entry in entries:
            self._seasons.setdefault(entry.season_number, {})[entry.id] = entry

    def _mark_stored(self, season_number: int, entries: Iterable[ScheduleEntry]) -> None:
        self._stored[season_number] = {entry.id: entry for entry in entries}

    async def load(self) -> None:
        """Load every season from the store; failures leave the session in an error state."""
        logger.info("Loading schedule...")
        self.is_loading = True
        try:
            entries = await self._store.load_schedule_entries()
        except StoreReadError as exc:
            self.load_error = exc
            self.error = exc
            logger.error("Failed to load schedule: %s", exc)
        else:
            self._seasons = {}
            self._apply(entries)
            self._stored = {number: dict(season) for number, season in self._seasons.items()}
            self.load_error = None
            self.error = None
        finally:
            self.is_loading = False

    def start_sync(self) -> Subscription[SeasonDocument]:
        """Follow season document writes from every session."""
        if self._subscription is None or not self._subscription.active:
            self._subscription = self._store.subscribe_to_schedule(self._apply_remote_season)
        return self._subscription

    def stop_sync(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _apply_remote_season(self, document: SeasonDocument) -> None:
        self._mark_stored(document.season_number, document.entries)
        season = dict(self._stored[document.season_number])
        for entry_id, entry in self._pending.items():
            if entry.season_number == document.season_number:
                season[entry_id] = entry
        self._seasons[document.season_number] = season
        logger.debug(
            "Applied season-%s from store (%s entries)",
            document.season_number,
            len(season),
        )

    async def replace_entries(self, entries: Iterable[ScheduleEntry]) -> None:
        """
        Replace the whole schedule and save every affected season

        Unlike toggles this is an explicit save: on failure the previous
        state is restored and the error is re-raised to the caller.

        Raises:
            StoreWriteError: If any season write fails
        """
        new_entries = list(entries)
        previous = self._seasons
        self._seasons = {}
        self._apply(new_entries)

        try:
            async with self._persist_lock:
                await self._store.save_schedule_entries(new_entries)
        except StoreWriteError as exc:
            self._seasons = previous
            self.error = exc
            logger.error("Failed to save schedule: %s", exc)
            raise

        for season_number, season in self._seasons.items():
            self._mark_stored(season_number, season.values())

    async def initialize_if_empty(self) -> bool:
        """
        Seed the store with a freshly generated grid

        Only runs after a successful load that found no entries, so persisted
        completion state is never overwritten.

        Returns:
            True if the grid was generated and saved
        """
        if self.is_loading or self.load_error is not None or self.entry_count:
            return False

        logger.info("Schedule store is empty, generating season grid")
        await self.replace_entries(generate_season_schedule())
        return True

    async def toggle_entry(self, entry_id: str) -> ToggleResult | None:
        """
        Toggle one entry's completion state

        Applies the change locally at once, then writes only the season
        documents holding changed entries. If the write fails, entries still
        carrying this toggle's values go back to their last stored state and
        the error is recorded, not raised.

        A completion also takes over earlier days of the channel that another
        toggle changed but has not saved yet, so the cascade is written even
        if that other save fails.

        Args:
            entry_id: ID of the entry to toggle

        Returns:
            What changed, or None if no entry has this ID
        """
        target = self.get_entry(entry_id)
        if target is None:
            logger.warning("Toggle ignored, unknown entry %s", entry_id)
            return None

        updates = plan_toggle(self._seasons[target.season_number].values(), target, self._pending)
        previous = {changed_id: self.get_entry(changed_id) for changed_id in updates}
        seasons = tuple(sorted({entry.season_number for entry in updates.values()}))

        self._pending.update(updates)
        self._apply(updates.values())

        try:
            async with self._persist_lock:
                payload = {season_number: self.season_entries(season_number) for season_number in seasons}
                await self._store.save_seasons(payload)
        except StoreWriteError as exc:
            rolled_back = [
                self._stored.get(entry.season_number, {}).get(changed_id, previous[changed_id])
                for changed_id, entry in updates.items()
                if self._pending.get(changed_id) is entry
            ]
            self._clear_pending(updates)
            self._apply(rolled_back)
            self.error = exc
            logger.error(
                "Failed to save toggle of %s, rolled back %s entries: %s",
                entry_id,
                len(rolled_back),
                exc,
            )
            return ToggleResult(
                entry_id=entry_id,
                completed=self.get_entry(entry_id).completed,
                changed_entry_ids=tuple(updates),
                seasons=seasons,
                persisted=False,
                error=str(exc),
            )

        for season_number, season_entries in payload.items():
            self._mark_stored(season_number, season_entries)
        self._clear_pending(updates)
        new_completed = updates[entry_id].completed
        logger.info(
            "Toggled %s to %s (%s entries, seasons %s)",
            entry_id,
            "completed" if new_completed else "pending",
            len(updates),
            list(seasons),
        )
        return ToggleResult(
            entry_id=entry_id,
            completed=new_completed,
            changed_entry_ids=tuple(updates),
            seasons=seasons,
            persisted=True,
        )

    def _clear_pending(self, updates: Mapping[str, ScheduleEntry]) -> None:
        for changed_id, entry in updates.items():
            if self._pending.get(changed_id) is entry:
                del self._pending[changed_id]
