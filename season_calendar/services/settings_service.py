"""
Settings Service

Per-channel display suffixes, persisted with a debounced write and
followed across sessions.
"""
import logging
from collections.abc import Mapping
from typing import Literal

from season_calendar.config import settings
from season_calendar.schemas import UserSettings
from season_calendar.services.change_feed import Subscription
from season_calendar.services.debounced_sync import DebouncedDocumentSync
from season_calendar.services.document_store import DocumentStore
from season_calendar.utils.season_index import TOTAL_CHANNELS, channel_name, validate_channel_index


logger = logging.getLogger(__name__)

FilterMode = Literal["all", "configured", "empty"]


def filter_channel_indexes(
    suffixes: Mapping[int, str],
    search: str = "",
    mode: FilterMode = "all",
) -> list[int]:
    """
    Channel indexes matching a settings filter

    Args:
        suffixes: Channel index -> suffix mapping
        search: Case-insensitive text matched against "c{n}" or the suffix
        mode: "configured" keeps channels with a suffix, "empty" those without

    Returns:
        Matching 0-based channel indexes in ascending order
    """
    indexes = range(TOTAL_CHANNELS)
    if mode == "configured":
        indexes = [index for index in indexes if suffixes.get(index)]
    elif mode == "empty":
        indexes = [index for index in indexes if not suffixes.get(index)]

    term = search.strip().lower()
    if term:
        indexes = [
            index for index in indexes
            if term in f"c{index + 1}" or term in (suffixes.get(index) or "").lower()
        ]

    return list(indexes)


class SettingsSession:
    """Channel suffix settings on top of a debounced document sync."""

    def __init__(self, store: DocumentStore, *, debounce_seconds: float | None = None):
        self._sync: DebouncedDocumentSync[UserSettings] = DebouncedDocumentSync(
            name="user settings",
            default=UserSettings(),
            load=store.load_user_settings,
            save=store.save_user_settings,
            subscribe=store.subscribe_to_user_settings,
            debounce_seconds=(
                settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
            ),
        )

    @property
    def settings(self) -> UserSettings:
        return self._sync.value

    @property
    def channel_suffixes(self) -> dict[int, str]:
        return dict(self._sync.value.channel_suffixes)

    @property
    def configured_count(self) -> int:
        return sum(1 for suffix in self._sync.value.channel_suffixes.values() if suffix)

    @property
    def is_loaded(self) -> bool:
        return self._sync.is_loaded

    @property
    def error(self) -> str | None:
        return self._sync.error

    async def load(self) -> None:
        await self._sync.load()

    def start_sync(self) -> Subscription[UserSettings]:
        return self._sync.start_sync()

    async def flush(self) -> None:
        await self._sync.flush()

    async def close(self) -> None:
        await self._sync.close()

    def display_name(self, channel_index: int) -> str:
        return channel_name(channel_index, self._sync.value.channel_suffixes)

    def update_channel_suffix(self, channel_index: int, suffix: str) -> None:
        """Set one channel's suffix; an empty suffix removes it."""
        validate_channel_index(channel_index)
        suffixes = self.channel_suffixes
        if suffix:
            suffixes[channel_index] = suffix
        else:
            suffixes.pop(channel_index, None)
        self._sync.update(UserSettings(channel_suffixes=suffixes))

    def bulk_update_channel_suffixes(self, suffixes: Mapping[int, str]) -> None:
        """Replace every suffix at once, dropping empty values."""
        for channel_index in suffixes:
            validate_channel_index(channel_index)
        cleaned = {index: suffix for index, suffix in suffixes.items() if suffix}
        self._sync.update(UserSettings(channel_suffixes=cleaned))

    def search_channels(self, search: str = "", mode: FilterMode = "all") -> list[int]:
        return filter_channel_indexes(self._sync.value.channel_suffixes, search, mode)
