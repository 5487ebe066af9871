"""
Schedule Generator

Builds the full season x day x channel grid used to seed an empty store.
"""
from season_calendar.schemas import ScheduleEntry
from season_calendar.utils.season_index import TOTAL_SEASONS, channel_name, season_by_number


def generate_season_schedule() -> list[ScheduleEntry]:
    """
    Generate schedule entries for the season-based system

    Every day of a season carries one entry for each channel of that season,
    all pending. The result depends only on the grid constants, so calling
    this twice yields equal lists. Callers must only seed an empty store
    with it; it knows nothing about persisted completion state.

    Returns:
        Entries ordered by season, day, then channel
    """
    entries: list[ScheduleEntry] = []

    for season_number in range(1, TOTAL_SEASONS + 1):
        season = season_by_number(season_number)
        channel_names = [channel_name(index) for index in season.channel_indexes()]

        for day in range(season.start_day, season.end_day + 1):
            date = str(day)
            for name in channel_names:
                entries.append(
                    ScheduleEntry(
                        id=f"{name}-day{day}",
                        channel_id=name,
                        date=date,
                        completed=False,
                    )
                )

    return entries
