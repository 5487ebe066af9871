from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from season_calendar.utils.season_index import (
    TOTAL_DAYS,
    channel_number_from_entry_id,
    season_of_entry_id,
)


class DocumentModel(BaseModel):
    """Base for models stored in, or served from, the document store (camelCase on the wire)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleEntry(DocumentModel):
    """Completion record for one (day, channel) pair"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., description="Entry ID, '{channelName}-day{day}'")
    channel_id: str = Field(..., description="Base channel name, e.g. 'C1'")
    date: str = Field(..., description="Day number as a string")
    completed: bool = False

    @property
    def day(self) -> int:
        return int(self.date)

    @property
    def channel_number(self) -> int | None:
        return channel_number_from_entry_id(self.id)

    @property
    def season_number(self) -> int:
        return season_of_entry_id(self.id)


class SeasonDocument(DocumentModel):
    """One season shard of the schedule"""
    season_number: int = Field(..., ge=1)
    entries: list[ScheduleEntry] = Field(default_factory=list)
    updated_at: datetime | None = None


class NavigationPrefs(DocumentModel):
    """Persisted calendar position"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    current_day: int = Field(1, ge=1, le=TOTAL_DAYS)
    current_page: int = Field(1, ge=1)
    updated_at: datetime | None = None


class UserSettings(DocumentModel):
    """Per-channel display customisation"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    channel_suffixes: dict[int, str] = Field(
        default_factory=dict,
        description="Channel index -> suffix mapping (e.g. {0: 'Boom Bap', 1: 'Lo-fi'})"
    )
    updated_at: datetime | None = None


class NavigationUpdate(DocumentModel):
    """Partial navigation change"""
    current_day: int | None = Field(None, description="Jump to this day (resets page to 1)")
    current_page: int | None = Field(None, description="Show this page of channels")


class ChannelSuffixUpdate(BaseModel):
    """New suffix for one channel, empty string removes it"""
    suffix: str = Field("", max_length=200)

    @field_validator("suffix")
    @classmethod
    def strip_suffix(cls, v: str) -> str:
        return v.strip()


class BulkChannelSuffixUpdate(DocumentModel):
    """Replacement suffix mapping for every channel"""
    channel_suffixes: dict[int, str] = Field(default_factory=dict)

    @field_validator("channel_suffixes")
    @classmethod
    def strip_suffixes(cls, v: dict[int, str]) -> dict[int, str]:
        return {index: suffix.strip() for index, suffix in v.items()}


class ToggleResponse(DocumentModel):
    """Outcome of toggling one entry"""
    entry_id: str
    completed: bool
    changed_entry_ids: list[str]
    seasons: list[int]
    persisted: bool
    error: str | None = None


class ScheduleStats(DocumentModel):
    total_days: int
    total_channels: int
    completed_entries: int
    total_entries: int
    progress_percent: int


class SeasonInfo(DocumentModel):
    season_number: int
    start_day: int
    end_day: int
    first_channel: str
    last_channel: str


class ChannelCell(DocumentModel):
    """One channel tile of the day view"""
    channel_index: int
    channel_name: str
    display_name: str
    entry_id: str | None
    completed: bool


class DayView(DocumentModel):
    """Channel grid for one day and page"""
    day: int
    total_days: int
    date_label: str
    season: SeasonInfo
    page: int
    total_pages: int
    page_numbers: list[int | None] = Field(..., description="Pages to offer, null marks a gap")
    channels: list[ChannelCell]


class ChannelSuffixItem(DocumentModel):
    channel_index: int
    channel_name: str
    suffix: str


class ChannelSuffixListing(DocumentModel):
    configured_count: int
    total_channels: int
    channels: list[ChannelSuffixItem]


class CountdownResponse(DocumentModel):
    """Time left in a repeating countdown cycle"""
    key: str
    title: str
    days_cycle: int
    days: int
    hours: int
    minutes: int
    seconds: int
    next_reset: datetime


class ChangeMessage(BaseModel):
    """Real-time change pushed to WebSocket clients"""
    type: Literal["season", "navigation", "settings"]
    document: dict


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'STORE_UNAVAILABLE', 'NOT_FOUND')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class StandardErrorResponse(BaseModel):
    """Standardized error response for all endpoints"""
    status: str = Field("error", description="Status indicator")
    timestamp: str = Field(..., description="ISO8601 timestamp of error")
    error: ErrorDetail = Field(..., description="Error details")


class NavigationState(DocumentModel):
    """Navigation position with its bounds"""
    current_day: int
    current_page: int
    total_days: int
    total_pages: int
