"""
Season index arithmetic

Maps day numbers to seasons, channel indexes to display names and entry ids
to the season document that stores them. All functions are pure.
"""
from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from season_calendar.schemas import ScheduleEntry


TOTAL_SEASONS = 12
DAYS_PER_SEASON = 40
CHANNELS_PER_SEASON = 84

TOTAL_DAYS = TOTAL_SEASONS * DAYS_PER_SEASON
TOTAL_CHANNELS = TOTAL_SEASONS * CHANNELS_PER_SEASON
TOTAL_ENTRIES = TOTAL_DAYS * CHANNELS_PER_SEASON

_ENTRY_ID_PATTERN = re.compile(r"^C(\d+)-")


class ChannelIndexError(ValueError):
    """Raised when a channel index falls outside the global channel space"""
    pass


@dataclass(frozen=True, slots=True)
class Season:
    """Day and channel ranges covered by one season (all bounds inclusive)."""
    season_number: int
    start_day: int
    end_day: int
    start_channel_index: int
    end_channel_index: int

    def contains_day(self, day: int) -> bool:
        return self.start_day <= day <= self.end_day

    def channel_indexes(self) -> range:
        return range(self.start_channel_index, self.end_channel_index + 1)


def season_by_number(season_number: int) -> Season:
    """Build the Season for a 1-based season number."""
    return Season(
        season_number=season_number,
        start_day=(season_number - 1) * DAYS_PER_SEASON + 1,
        end_day=season_number * DAYS_PER_SEASON,
        start_channel_index=(season_number - 1) * CHANNELS_PER_SEASON,
        end_channel_index=season_number * CHANNELS_PER_SEASON - 1,
    )


def get_season(day: int) -> Season:
    """
    Resolve the season a day belongs to

    Callers validate that day is within [1, TOTAL_DAYS]; values outside that
    range produce a season outside [1, TOTAL_SEASONS].

    Args:
        day: 1-based day number

    Returns:
        Season covering the day
    """
    return season_by_number(math.ceil(day / DAYS_PER_SEASON))


def is_valid_day(day: int) -> bool:
    return 1 <= day <= TOTAL_DAYS


def channel_name(channel_index: int, suffixes: Mapping[int, str] | None = None) -> str:
    """
    Display name for a 0-based channel index

    Args:
        channel_index: 0-based index in the global channel space
        suffixes: Optional channel index -> suffix mapping

    Returns:
        "C{n}" or "C{n} - {suffix}" when a non-empty suffix is registered
    """
    base_name = f"C{channel_index + 1}"
    suffix = (suffixes or {}).get(channel_index) or ""
    return f"{base_name} - {suffix}" if suffix else base_name


def validate_channel_index(channel_index: int) -> int:
    if not 0 <= channel_index < TOTAL_CHANNELS:
        raise ChannelIndexError(
            f"Channel index {channel_index} outside [0, {TOTAL_CHANNELS - 1}]"
        )
    return channel_index


def season_of_channel_number(channel_number: int) -> int:
    """Season that stores a 1-based channel number (C1..C84 -> 1, C85.. -> 2)."""
    return (channel_number - 1) // CHANNELS_PER_SEASON + 1


def channel_number_from_entry_id(entry_id: str) -> int | None:
    match = _ENTRY_ID_PATTERN.match(entry_id)
    if not match:
        return None
    return int(match.group(1))


def season_of_entry_id(entry_id: str) -> int:
    """
    Storage season for an entry id of the form "C{n}-day{d}"

    The day part is ignored; ids that do not start with "C{n}-" fall back to
    season 1.
    """
    channel_number = channel_number_from_entry_id(entry_id)
    if channel_number is None:
        return 1
    return season_of_channel_number(channel_number)


def entry_id(channel_index: int, day: int) -> str:
    return f"{channel_name(channel_index)}-day{day}"


def entries_for_day(entries: Iterable[ScheduleEntry], day: int) -> list[ScheduleEntry]:
    """Get schedule entries for a specific day"""
    date = str(day)
    return [entry for entry in entries if entry.date == date]


def entries_for_channel(entries: Iterable[ScheduleEntry], channel_id: str) -> list[ScheduleEntry]:
    """Get all entries for a specific channel"""
    return [entry for entry in entries if entry.channel_id == channel_id]


def group_by_season(entries: Iterable[ScheduleEntry]) -> dict[int, list[ScheduleEntry]]:
    """Partition entries by the season document that stores them."""
    season_map: dict[int, list[ScheduleEntry]] = {}
    for entry in entries:
        season_map.setdefault(season_of_entry_id(entry.id), []).append(entry)
    return season_map
