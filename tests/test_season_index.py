"""
Tests for season/day/channel index arithmetic
"""
import pytest

from season_calendar.utils.season_index import (
    CHANNELS_PER_SEASON,
    DAYS_PER_SEASON,
    TOTAL_CHANNELS,
    TOTAL_DAYS,
    TOTAL_ENTRIES,
    TOTAL_SEASONS,
    ChannelIndexError,
    channel_name,
    entry_id,
    get_season,
    season_of_channel_number,
    season_of_entry_id,
    validate_channel_index,
)


class TestConstants:
    """Grid size constants"""

    def test_derived_totals(self):
        assert TOTAL_DAYS == 480
        assert TOTAL_CHANNELS == 1008
        assert TOTAL_ENTRIES == 40320


class TestGetSeason:
    """Day -> season mapping"""

    @pytest.mark.parametrize("day", range(1, TOTAL_DAYS + 1))
    def test_every_day_falls_inside_its_season(self, day):
        season = get_season(day)
        assert season.start_day <= day <= season.end_day
        assert 1 <= season.season_number <= TOTAL_SEASONS

    @pytest.mark.parametrize("season_number", range(1, TOTAL_SEASONS + 1))
    def test_boundary_days(self, season_number):
        """First and last day of a season resolve to that season"""
        assert get_season(season_number * DAYS_PER_SEASON).season_number == season_number
        assert get_season(season_number * DAYS_PER_SEASON - 39).season_number == season_number

    def test_first_season_ranges(self):
        season = get_season(1)
        assert season.season_number == 1
        assert (season.start_day, season.end_day) == (1, 40)
        assert (season.start_channel_index, season.end_channel_index) == (0, 83)

    def test_second_season_channels_follow_first(self):
        season = get_season(41)
        assert season.season_number == 2
        assert season.start_channel_index == 84
        assert season.end_channel_index == 167

    def test_channel_ranges_never_overlap(self):
        seen: set[int] = set()
        for season_number in range(1, TOTAL_SEASONS + 1):
            indexes = set(get_season(season_number * DAYS_PER_SEASON).channel_indexes())
            assert len(indexes) == CHANNELS_PER_SEASON
            assert not seen & indexes
            seen |= indexes
        assert seen == set(range(TOTAL_CHANNELS))


class TestChannelName:
    """Channel display names"""

    def test_base_names(self):
        assert channel_name(0) == "C1"
        assert channel_name(83) == "C84"
        assert channel_name(84) == "C85"

    def test_suffix_appended(self):
        assert channel_name(0, {0: "Boom Bap"}) == "C1 - Boom Bap"

    def test_empty_suffix_suppressed(self):
        assert channel_name(0, {0: ""}) == "C1"

    def test_suffix_for_other_channel_ignored(self):
        assert channel_name(1, {0: "Boom Bap"}) == "C2"

    def test_entry_id_uses_base_name(self):
        assert entry_id(4, 12) == "C5-day12"


class TestSharding:
    """Entry id -> storage season"""

    def test_channel_number_boundaries(self):
        assert season_of_channel_number(1) == 1
        assert season_of_channel_number(84) == 1
        assert season_of_channel_number(85) == 2
        assert season_of_channel_number(1008) == 12

    @pytest.mark.parametrize("channel_number", [1, 84, 85, 500, 1008])
    @pytest.mark.parametrize("day", [1, 40, 41, 480])
    def test_entry_season_ignores_day(self, channel_number, day):
        assert season_of_entry_id(f"C{channel_number}-day{day}") == (channel_number - 1) // 84 + 1

    @pytest.mark.parametrize("day", range(1, TOTAL_DAYS + 1, 7))
    def test_sharding_agrees_with_day_season(self, day):
        season = get_season(day)
        for channel_index in (season.start_channel_index, season.end_channel_index):
            assert season_of_entry_id(entry_id(channel_index, day)) == season.season_number

    def test_malformed_id_falls_back_to_first_season(self):
        assert season_of_entry_id("bogus") == 1


class TestValidateChannelIndex:
    def test_accepts_range(self):
        assert validate_channel_index(0) == 0
        assert validate_channel_index(TOTAL_CHANNELS - 1) == TOTAL_CHANNELS - 1

    @pytest.mark.parametrize("index", [-1, TOTAL_CHANNELS])
    def test_rejects_out_of_range(self, index):
        with pytest.raises(ChannelIndexError):
            validate_channel_index(index)
