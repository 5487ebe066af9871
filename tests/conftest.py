"""
Pytest configuration and shared fixtures for test suite

Provides a per-test SQLite database, an in-memory store with failure
injection, and pre-generated schedule grids.
"""
import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Point settings at a scratch database BEFORE importing the package
os.environ.setdefault("DATABASE_PATH", str(Path(tempfile.mkdtemp()) / "calendar.db"))
os.environ.setdefault("SAVE_DEBOUNCE_MS", "0")

from season_calendar.database import close_db, init_db
from season_calendar.schemas import NavigationPrefs, ScheduleEntry, SeasonDocument, UserSettings
from season_calendar.services.document_store import DocumentStore, StoreReadError, StoreWriteError
from season_calendar.services.schedule_generator import generate_season_schedule
from season_calendar.utils.season_index import group_by_season


class InMemoryStore(DocumentStore):
    """
    DocumentStore keeping documents in dicts.

    fail_reads / fail_writes make every read or write fail, and
    fail_next_season_writes fails only that many upcoming season writes. A
    write_gate event, when set on the instance, holds season writes until it
    is set.
    """

    def __init__(self):
        super().__init__(user_id="test-user")
        self.seasons: dict[int, SeasonDocument] = {}
        self.navigation: NavigationPrefs | None = None
        self.user_settings: UserSettings | None = None
        self.countdowns: dict[str, datetime] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.fail_next_season_writes = 0
        self.write_gate: asyncio.Event | None = None
        self.season_writes: list[int] = []
        self.navigation_writes: list[NavigationPrefs] = []
        self.settings_writes: list[UserSettings] = []

    def seed(self, entries: list[ScheduleEntry]) -> None:
        for season_number, season_entries in group_by_season(entries).items():
            self.seasons[season_number] = SeasonDocument(season_number=season_number, entries=season_entries)

    async def load_season(self, season_number: int) -> SeasonDocument | None:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise StoreReadError("backend offline")
        return self.seasons.get(season_number)

    async def _write_season(self, season_number: int, entries: list[ScheduleEntry]) -> SeasonDocument:
        if self.write_gate is not None:
            await self.write_gate.wait()
        await asyncio.sleep(0)
        if self.fail_next_season_writes:
            self.fail_next_season_writes -= 1
            raise OSError("backend offline")
        if self.fail_writes:
            raise OSError("backend offline")
        document = SeasonDocument(
            season_number=season_number,
            entries=list(entries),
            updated_at=datetime.now(timezone.utc),
        )
        self.seasons[season_number] = document
        self.season_writes.append(season_number)
        return document

    async def load_navigation_prefs(self) -> NavigationPrefs:
        if self.fail_reads:
            raise StoreReadError("backend offline")
        return self.navigation or NavigationPrefs()

    async def save_navigation_prefs(self, prefs: NavigationPrefs) -> NavigationPrefs:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise StoreWriteError("backend offline")
        stored = prefs.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self.navigation = stored
        self.navigation_writes.append(stored)
        self.navigation_feed.publish(stored)
        return stored

    async def load_user_settings(self) -> UserSettings:
        if self.fail_reads:
            raise StoreReadError("backend offline")
        return self.user_settings or UserSettings()

    async def save_user_settings(self, user_settings: UserSettings) -> UserSettings:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise StoreWriteError("backend offline")
        stored = user_settings.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self.user_settings = stored
        self.settings_writes.append(stored)
        self.settings_feed.publish(stored)
        return stored

    async def load_countdown_starts(self) -> dict[str, datetime]:
        return dict(self.countdowns)

    async def save_countdown_start(self, key: str, started_at: datetime) -> None:
        self.countdowns[key] = started_at


@pytest.fixture(scope="session")
def full_grid() -> list[ScheduleEntry]:
    """Complete generated grid (entries are immutable, safe to share)"""
    return generate_season_schedule()


@pytest.fixture(scope="session")
def season_one(full_grid) -> list[ScheduleEntry]:
    return [entry for entry in full_grid if entry.season_number == 1]


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """DocumentStore backed by a fresh SQLite file"""
    await init_db(str(tmp_path / "store.db"))
    try:
        yield DocumentStore(user_id="test-user")
    finally:
        await close_db()
