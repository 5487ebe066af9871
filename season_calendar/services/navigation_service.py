"""
Navigation Service

Current day and channel page of the calendar, persisted with a debounced
write and followed across sessions.
"""
import logging

from season_calendar.config import settings
from season_calendar.schemas import NavigationPrefs
from season_calendar.services.change_feed import Subscription
from season_calendar.services.debounced_sync import DebouncedDocumentSync
from season_calendar.services.document_store import DocumentStore
from season_calendar.utils.pagination import total_pages
from season_calendar.utils.season_index import CHANNELS_PER_SEASON, TOTAL_DAYS


logger = logging.getLogger(__name__)


class NavigationBoundsError(ValueError):
    """Raised when a day or page is outside its valid range"""
    pass


class NavigationSession:
    """Day/page position with bounds checking on top of a debounced document sync."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        channels_per_page: int | None = None,
        debounce_seconds: float | None = None,
    ):
        self.channels_per_page = channels_per_page or settings.channels_per_page
        self.total_pages = total_pages(CHANNELS_PER_SEASON, self.channels_per_page)
        self._sync: DebouncedDocumentSync[NavigationPrefs] = DebouncedDocumentSync(
            name="navigation preferences",
            default=NavigationPrefs(),
            load=store.load_navigation_prefs,
            save=store.save_navigation_prefs,
            subscribe=store.subscribe_to_navigation_prefs,
            debounce_seconds=(
                settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
            ),
        )

    @property
    def prefs(self) -> NavigationPrefs:
        return self._sync.value

    @property
    def current_day(self) -> int:
        return self._sync.value.current_day

    @property
    def current_page(self) -> int:
        # a stored page may exceed the range after channels_per_page changed
        return min(self._sync.value.current_page, self.total_pages)

    @property
    def is_loaded(self) -> bool:
        return self._sync.is_loaded

    @property
    def error(self) -> str | None:
        return self._sync.error

    async def load(self) -> None:
        await self._sync.load()

    def start_sync(self) -> Subscription[NavigationPrefs]:
        return self._sync.start_sync()

    async def flush(self) -> None:
        await self._sync.flush()

    async def close(self) -> None:
        await self._sync.close()

    def _check_day(self, day: int) -> None:
        if not 1 <= day <= TOTAL_DAYS:
            raise NavigationBoundsError(f"Day {day} outside [1, {TOTAL_DAYS}]")

    def _check_page(self, page: int) -> None:
        if not 1 <= page <= self.total_pages:
            raise NavigationBoundsError(f"Page {page} outside [1, {self.total_pages}]")

    def _update(self, day: int, page: int) -> None:
        self._sync.update(NavigationPrefs(current_day=day, current_page=page))

    def set_current_day(self, day: int) -> None:
        self._check_day(day)
        self._update(day, self.current_page)

    def set_current_page(self, page: int) -> None:
        self._check_page(page)
        self._update(self.current_day, page)

    def go_to_day(self, day: int) -> None:
        """Jump to a day and show its first page of channels."""
        self._check_day(day)
        self._update(day, 1)

    def go_to_page(self, page: int) -> None:
        self.set_current_page(page)

    def move_to(self, day: int | None = None, page: int | None = None) -> None:
        """
        Jump to a day and/or page in one update

        A new day without a page shows its first page. Both values are
        checked before anything changes.

        Raises:
            NavigationBoundsError: If either value is out of range
        """
        if day is not None:
            self._check_day(day)
        if page is not None:
            self._check_page(page)
        if day is None and page is None:
            return
        if day is None:
            day = self.current_day
        elif page is None:
            page = 1
        self._update(day, page)

    def previous_day(self) -> bool:
        if self.current_day <= 1:
            return False
        self.set_current_day(self.current_day - 1)
        return True

    def next_day(self) -> bool:
        if self.current_day >= TOTAL_DAYS:
            return False
        self.set_current_day(self.current_day + 1)
        return True

    def previous_page(self) -> bool:
        if self.current_page <= 1:
            return False
        self.set_current_page(self.current_page - 1)
        return True

    def next_page(self) -> bool:
        if self.current_page >= self.total_pages:
            return False
        self.set_current_page(self.current_page + 1)
        return True
