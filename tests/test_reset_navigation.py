"""
Tests for the reset-navigation command
"""
import asyncio

import httpx

from season_calendar.database import close_db, init_db
from season_calendar.reset_navigation import main
from season_calendar.schemas import NavigationPrefs
from season_calendar.services.document_store import DocumentStore


async def _save_position(path: str, prefs: NavigationPrefs) -> None:
    await init_db(path)
    try:
        await DocumentStore(user_id="cli-user").save_navigation_prefs(prefs)
    finally:
        await close_db()


def _mock_transport(monkeypatch, handler) -> None:
    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)


async def _load_position(path: str) -> NavigationPrefs:
    await init_db(path)
    try:
        return await DocumentStore(user_id="cli-user").load_navigation_prefs()
    finally:
        await close_db()


class TestResetNavigation:
    """season-calendar-reset-navigation"""

    def test_resets_stored_position(self, tmp_path, capsys):
        path = str(tmp_path / "cli.db")
        asyncio.run(_save_position(path, NavigationPrefs(current_day=321, current_page=4)))

        assert main(["--database", path, "--user", "cli-user"]) == 0

        prefs = asyncio.run(_load_position(path))
        assert (prefs.current_day, prefs.current_page) == (1, 1)
        assert "Navigation reset to day 1!" in capsys.readouterr().out

    def test_creates_document_when_missing(self, tmp_path):
        path = str(tmp_path / "fresh.db")

        assert main(["--database", path, "--user", "cli-user"]) == 0

        prefs = asyncio.run(_load_position(path))
        assert prefs.updated_at is not None

    def test_unwritable_database_fails(self, tmp_path):
        path = str(tmp_path / "missing" / "dir" / "cli.db")
        assert main(["--database", path]) == 1

    def test_api_mode_posts_reset(self, monkeypatch):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, str(request.url)))
            return httpx.Response(200, json={"currentDay": 1, "currentPage": 1})

        _mock_transport(monkeypatch, handler)

        assert main(["--api-url", "http://calendar.local:8000/"]) == 0
        assert calls == [("POST", "http://calendar.local:8000/navigation/reset")]

    def test_api_unreachable_fails(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        _mock_transport(monkeypatch, handler)

        assert main(["--api-url", "http://calendar.local:8000"]) == 1

    def test_api_error_status_fails(self, monkeypatch):
        _mock_transport(monkeypatch, lambda request: httpx.Response(503))

        assert main(["--api-url", "http://calendar.local:8000"]) == 1
