"""
Calendar View Service

Read-only projections of the session state: the channel grid for one day
and page, and overall completion statistics.
"""
from collections.abc import Mapping
from datetime import date

from season_calendar.schemas import ChannelCell, DayView, ScheduleStats, SeasonInfo
from season_calendar.services.schedule_service import ScheduleSession
from season_calendar.utils.day_dates import format_day_date
from season_calendar.utils.pagination import page_slice, page_window, total_pages
from season_calendar.utils.season_index import (
    CHANNELS_PER_SEASON,
    TOTAL_CHANNELS,
    TOTAL_DAYS,
    channel_name,
    entry_id,
    get_season,
)


def build_day_view(
    schedule: ScheduleSession,
    suffixes: Mapping[int, str],
    *,
    day: int,
    page: int,
    channels_per_page: int,
    start_date: date,
) -> DayView:
    """
    Channel grid for one day and page

    Args:
        schedule: Session holding the entries
        suffixes: Channel index -> suffix mapping for display names
        day: 1-based day, already validated
        page: 1-based page, already validated
        channels_per_page: Page size
        start_date: Calendar date of day 1

    Returns:
        The day view with season header, pagination and channel cells
    """
    season = get_season(day)
    page_count = total_pages(CHANNELS_PER_SEASON, channels_per_page)
    channel_indexes = list(season.channel_indexes())[page_slice(page, channels_per_page)]

    channels = []
    for channel_index in channel_indexes:
        entry = schedule.get_entry(entry_id(channel_index, day))
        channels.append(
            ChannelCell(
                channel_index=channel_index,
                channel_name=channel_name(channel_index),
                display_name=channel_name(channel_index, suffixes),
                entry_id=entry.id if entry else None,
                completed=entry.completed if entry else False,
            )
        )

    return DayView(
        day=day,
        total_days=TOTAL_DAYS,
        date_label=format_day_date(day, start_date),
        season=SeasonInfo(
            season_number=season.season_number,
            start_day=season.start_day,
            end_day=season.end_day,
            first_channel=channel_name(season.start_channel_index),
            last_channel=channel_name(season.end_channel_index),
        ),
        page=page,
        total_pages=page_count,
        page_numbers=page_window(page, page_count),
        channels=channels,
    )


def build_stats(schedule: ScheduleSession) -> ScheduleStats:
    completed = schedule.completed_count
    total = schedule.entry_count
    return ScheduleStats(
        total_days=TOTAL_DAYS,
        total_channels=TOTAL_CHANNELS,
        completed_entries=completed,
        total_entries=total,
        progress_percent=round(completed / total * 100) if total else 0,
    )
