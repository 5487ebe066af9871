"""
Tests for the HTTP and WebSocket surface

Each test runs the full application lifespan against its own SQLite file,
so the schedule is seeded from scratch every time.
"""
import pytest
from fastapi.testclient import TestClient

from season_calendar.config import settings
from season_calendar.main import app
from season_calendar.routers import ChangeStreamBuffer
from season_calendar.schemas import NavigationPrefs


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_path", str(tmp_path / "api.db"))
    monkeypatch.setattr(settings, "save_debounce_ms", 0)
    with TestClient(app) as test_client:
        yield test_client


class TestServiceEndpoints:
    """Root and health endpoints"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Season Calendar"

    def test_health_after_seeding(self, client):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["schedule_loaded"] is True
        assert data["entries"] == 40320
        assert data["scheduler_running"] is True
        assert data["next_countdown_rollover"] is not None

    def test_initialize_twice_conflicts(self, client):
        assert client.post("/schedule/initialize").status_code == 409


class TestScheduleEndpoints:
    """Day views, stats and toggling"""

    def test_stats_start_at_zero(self, client):
        data = client.get("/schedule/stats").json()
        assert data == {
            "totalDays": 480,
            "totalChannels": 1008,
            "completedEntries": 0,
            "totalEntries": 40320,
            "progressPercent": 0,
        }

    def test_day_view_first_page(self, client):
        data = client.get("/schedule/days/41").json()

        assert data["dateLabel"] == "Ngày 18/12/2025"
        assert data["season"]["seasonNumber"] == 2
        assert (data["season"]["firstChannel"], data["season"]["lastChannel"]) == ("C85", "C168")
        assert data["totalPages"] == 7
        assert data["pageNumbers"] == [1, 2, 3, 4, 5, 6, 7]
        assert [cell["channelName"] for cell in data["channels"]] == [f"C{n}" for n in range(85, 97)]
        assert data["channels"][0]["entryId"] == "C85-day41"
        assert data["channels"][0]["completed"] is False

    def test_day_view_last_page(self, client):
        data = client.get("/schedule/days/480", params={"page": 7}).json()

        assert data["season"]["seasonNumber"] == 12
        assert data["channels"][-1]["channelName"] == "C1008"

    @pytest.mark.parametrize("day", [0, 481])
    def test_day_out_of_range(self, client, day):
        assert client.get(f"/schedule/days/{day}").status_code == 422

    def test_page_out_of_range(self, client):
        response = client.get("/schedule/days/1", params={"page": 8})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "OUT_OF_RANGE"

    def test_toggle_cascades_within_channel(self, client):
        response = client.post("/schedule/entries/C2-day3/toggle")

        assert response.status_code == 200
        data = response.json()
        assert data["completed"] is True
        assert data["persisted"] is True
        assert set(data["changedEntryIds"]) == {"C2-day1", "C2-day2", "C2-day3"}
        assert data["seasons"] == [1]

        cells = client.get("/schedule/days/2").json()["channels"]
        assert cells[1]["completed"] is True
        assert cells[0]["completed"] is False
        assert client.get("/schedule/stats").json()["completedEntries"] == 3

    def test_toggle_back_only_changes_target(self, client):
        client.post("/schedule/entries/C2-day3/toggle")
        data = client.post("/schedule/entries/C2-day3/toggle").json()

        assert data["completed"] is False
        assert data["changedEntryIds"] == ["C2-day3"]
        assert client.get("/schedule/stats").json()["completedEntries"] == 2

    def test_toggle_unknown_entry(self, client):
        assert client.post("/schedule/entries/C1-day99/toggle").status_code == 404

    def test_calendar_follows_navigation(self, client):
        client.put("/navigation", json={"currentDay": 45, "currentPage": 2})
        data = client.get("/calendar").json()

        assert (data["day"], data["page"]) == (45, 2)
        assert data["channels"][0]["channelName"] == "C97"


class TestNavigationEndpoints:
    """Saved calendar position"""

    def test_default_position(self, client):
        assert client.get("/navigation").json() == {
            "currentDay": 1,
            "currentPage": 1,
            "totalDays": 480,
            "totalPages": 7,
        }

    def test_jump_to_day_resets_page(self, client):
        client.put("/navigation", json={"currentPage": 5})
        data = client.put("/navigation", json={"currentDay": 10}).json()
        assert (data["currentDay"], data["currentPage"]) == (10, 1)

    def test_step_actions(self, client):
        client.post("/navigation/next-day")
        client.post("/navigation/next-page")
        data = client.get("/navigation").json()
        assert (data["currentDay"], data["currentPage"]) == (2, 2)

        data = client.post("/navigation/previous-day").json()
        data = client.post("/navigation/previous-day").json()
        assert data["currentDay"] == 1

    def test_unknown_action(self, client):
        response = client.post("/navigation/sideways")
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_out_of_range_day(self, client):
        response = client.put("/navigation", json={"currentDay": 481})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "OUT_OF_RANGE"

    def test_out_of_range_page_leaves_day_unchanged(self, client):
        client.put("/navigation", json={"currentDay": 10, "currentPage": 2})

        response = client.put("/navigation", json={"currentDay": 50, "currentPage": 99})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "OUT_OF_RANGE"

        data = client.get("/navigation").json()
        assert (data["currentDay"], data["currentPage"]) == (10, 2)

    def test_reset(self, client):
        client.put("/navigation", json={"currentDay": 300, "currentPage": 3})
        data = client.post("/navigation/reset").json()
        assert (data["currentDay"], data["currentPage"]) == (1, 1)


class TestSettingsEndpoints:
    """Channel suffixes"""

    def test_set_and_list_suffix(self, client):
        response = client.put("/settings/channels/0", json={"suffix": "  News  "})
        assert response.status_code == 200
        assert response.json()["channelSuffixes"] == {"0": "News"}

        listing = client.get("/settings/channels", params={"mode": "configured"}).json()
        assert listing["configuredCount"] == 1
        assert listing["totalChannels"] == 1008
        assert listing["channels"] == [{"channelIndex": 0, "channelName": "C1", "suffix": "News"}]

    def test_suffix_shows_in_day_view(self, client):
        client.put("/settings/channels/0", json={"suffix": "News"})
        cell = client.get("/schedule/days/1").json()["channels"][0]
        assert cell["displayName"] == "C1 - News"

    def test_empty_suffix_removes(self, client):
        client.put("/settings/channels/3", json={"suffix": "Movies"})
        data = client.put("/settings/channels/3", json={"suffix": ""}).json()
        assert data["channelSuffixes"] == {}

    def test_bulk_replace(self, client):
        client.put("/settings/channels/3", json={"suffix": "Movies"})
        data = client.put(
            "/settings/channels",
            json={"channelSuffixes": {"1": "One", "2": "", "5": "Five"}},
        ).json()
        assert data["channelSuffixes"] == {"1": "One", "5": "Five"}

    def test_bulk_replace_strips_suffixes(self, client):
        data = client.put(
            "/settings/channels",
            json={"channelSuffixes": {"0": "  Jazz ", "1": "   "}},
        ).json()
        assert data["channelSuffixes"] == {"0": "Jazz"}

        cell = client.get("/schedule/days/1").json()["channels"][1]
        assert cell["displayName"] == "C2"

    def test_search(self, client):
        client.put("/settings/channels/41", json={"suffix": "Jazz"})
        listing = client.get("/settings/channels", params={"search": "jazz"}).json()
        assert [item["channelIndex"] for item in listing["channels"]] == [41]

    def test_channel_out_of_range(self, client):
        response = client.put("/settings/channels/1008", json={"suffix": "x"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "OUT_OF_RANGE"


class TestCountdownEndpoint:
    def test_countdowns(self, client):
        data = client.get("/countdowns").json()
        assert [item["key"] for item in data] == ["haircut-countdown-start", "therapy-countdown-start"]
        assert data[0]["daysCycle"] == 14
        assert data[1]["days"] in (4, 5)


class TestChangeStream:
    """WebSocket change stream"""

    def test_toggle_pushes_season_document(self, client):
        with client.websocket_connect("/ws") as websocket:
            client.post("/schedule/entries/C1-day2/toggle")
            message = websocket.receive_json()

        assert message["type"] == "season"
        assert message["document"]["seasonNumber"] == 1
        completed = {entry["id"] for entry in message["document"]["entries"] if entry["completed"]}
        assert completed == {"C1-day1", "C1-day2"}

    def test_settings_change_pushed(self, client):
        with client.websocket_connect("/ws") as websocket:
            client.put("/settings/channels/0", json={"suffix": "News"})
            message = websocket.receive_json()

        assert message["type"] == "settings"
        assert message["document"]["channelSuffixes"] == {"0": "News"}


class TestChangeStreamBuffer:
    """Bounded per-client message queue"""

    @pytest.mark.asyncio
    async def test_messages_queued_in_order(self):
        buffer = ChangeStreamBuffer(maxsize=4)
        forward = buffer.forward("navigation")

        forward(NavigationPrefs(current_day=2))
        forward(NavigationPrefs(current_day=3))

        first = buffer.queue.get_nowait()
        assert first.type == "navigation"
        assert first.document["currentDay"] == 2
        assert buffer.queue.get_nowait().document["currentDay"] == 3
        assert not buffer.overflowed.is_set()

    @pytest.mark.asyncio
    async def test_full_queue_marks_client_overflowed(self):
        buffer = ChangeStreamBuffer(maxsize=2)
        forward = buffer.forward("navigation")

        for day in range(1, 6):
            forward(NavigationPrefs(current_day=day))

        assert buffer.overflowed.is_set()
        assert buffer.queue.qsize() == 2
