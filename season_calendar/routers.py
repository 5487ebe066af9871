import asyncio
import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query, WebSocket, status

from season_calendar import __version__
from season_calendar.config import settings
from season_calendar.dependencies import (
    get_countdown_service,
    get_navigation_session,
    get_schedule_session,
    get_settings_session,
    get_store,
)
from season_calendar.schemas import (
    BulkChannelSuffixUpdate,
    ChangeMessage,
    ChannelSuffixItem,
    ChannelSuffixListing,
    ChannelSuffixUpdate,
    CountdownResponse,
    DayView,
    NavigationState,
    NavigationUpdate,
    ScheduleStats,
    ToggleResponse,
    UserSettings,
)
from season_calendar.services.calendar_view_service import build_day_view, build_stats
from season_calendar.services.countdown_service import CountdownService
from season_calendar.services.document_store import DocumentStore
from season_calendar.services.navigation_service import NavigationBoundsError, NavigationSession
from season_calendar.services.scheduler_service import countdown_scheduler
from season_calendar.services.schedule_service import ScheduleSession
from season_calendar.services.settings_service import FilterMode, SettingsSession
from season_calendar.utils.season_index import TOTAL_CHANNELS, TOTAL_DAYS, channel_name


logger = logging.getLogger(__name__)

main_router = APIRouter()

Schedule = Annotated[ScheduleSession, Depends(get_schedule_session)]
Navigation = Annotated[NavigationSession, Depends(get_navigation_session)]
Settings = Annotated[SettingsSession, Depends(get_settings_session)]
Countdowns = Annotated[CountdownService, Depends(get_countdown_service)]


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "Season Calendar",
        "version": __version__,
        "endpoints": {
            "calendar": "/calendar - Channel grid for the saved position",
            "schedule": "/schedule/days/{day} - Channel grid for any day",
            "toggle": "/schedule/entries/{entry_id}/toggle - Toggle completion (POST)",
            "navigation": "/navigation - Saved day/page",
            "settings": "/settings - Channel suffixes",
            "countdowns": "/countdowns - Countdown timers",
            "ws": "/ws - Real-time change stream",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(schedule: Schedule) -> dict:
    """Health check endpoint"""
    next_run = countdown_scheduler.get_next_run_time()
    last_run = countdown_scheduler.last_run
    return {
        "status": "ok" if schedule.load_error is None else "degraded",
        "schedule_loaded": not schedule.is_loading and schedule.load_error is None,
        "last_error": str(schedule.error) if schedule.error else None,
        "entries": schedule.entry_count,
        "scheduler_running": countdown_scheduler.running,
        "next_countdown_rollover": next_run.isoformat() if next_run else None,
        "last_countdown_rollover": last_run.isoformat() if last_run else None,
    }


def _require_loaded(schedule: ScheduleSession) -> None:
    if schedule.load_error is not None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Error loading schedule: {schedule.load_error}",
        )


def _navigation_state(navigation: NavigationSession) -> NavigationState:
    return NavigationState(
        current_day=navigation.current_day,
        current_page=navigation.current_page,
        total_days=TOTAL_DAYS,
        total_pages=navigation.total_pages,
    )


@main_router.get("/schedule/stats", response_model=ScheduleStats)
async def schedule_stats(schedule: Schedule) -> ScheduleStats:
    _require_loaded(schedule)
    return build_stats(schedule)


@main_router.get("/schedule/days/{day}", response_model=DayView)
async def day_view(
    day: Annotated[int, Path(ge=1, le=TOTAL_DAYS)],
    schedule: Schedule,
    navigation: Navigation,
    user_settings: Settings,
    page: Annotated[int, Query(ge=1)] = 1,
) -> DayView:
    """Channel grid for an explicit day and page"""
    _require_loaded(schedule)
    if page > navigation.total_pages:
        raise NavigationBoundsError(f"Page {page} outside [1, {navigation.total_pages}]")

    return build_day_view(
        schedule,
        user_settings.channel_suffixes,
        day=day,
        page=page,
        channels_per_page=navigation.channels_per_page,
        start_date=settings.schedule_start_date,
    )


@main_router.get("/calendar", response_model=DayView)
async def calendar(schedule: Schedule, navigation: Navigation, user_settings: Settings) -> DayView:
    """Channel grid for the saved navigation position"""
    _require_loaded(schedule)
    return build_day_view(
        schedule,
        user_settings.channel_suffixes,
        day=navigation.current_day,
        page=navigation.current_page,
        channels_per_page=navigation.channels_per_page,
        start_date=settings.schedule_start_date,
    )


@main_router.post("/schedule/entries/{entry_id}/toggle", response_model=ToggleResponse)
async def toggle_entry(entry_id: str, schedule: Schedule) -> ToggleResponse:
    """
    Toggle one entry's completion state

    Completing a day also completes every earlier day of the same channel.
    A failed save is rolled back and reported with persisted=false.
    """
    _require_loaded(schedule)
    result = await schedule.toggle_entry(entry_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Unknown entry: {entry_id}")

    return ToggleResponse(
        entry_id=result.entry_id,
        completed=result.completed,
        changed_entry_ids=list(result.changed_entry_ids),
        seasons=list(result.seasons),
        persisted=result.persisted,
        error=result.error,
    )


@main_router.post("/schedule/initialize", status_code=status.HTTP_201_CREATED)
async def initialize_schedule(schedule: Schedule) -> dict:
    """Seed an empty store with the full season grid"""
    _require_loaded(schedule)
    if not await schedule.initialize_if_empty():
        raise HTTPException(status_code=409, detail="Schedule already initialized")
    return {"generated": schedule.entry_count}


@main_router.get("/navigation", response_model=NavigationState)
async def get_navigation(navigation: Navigation) -> NavigationState:
    return _navigation_state(navigation)


@main_router.put("/navigation", response_model=NavigationState)
async def update_navigation(update: NavigationUpdate, navigation: Navigation) -> NavigationState:
    """Jump to a day (first page) and/or a page"""
    navigation.move_to(update.current_day, update.current_page)
    return _navigation_state(navigation)


@main_router.post("/navigation/reset", response_model=NavigationState)
async def reset_navigation(navigation: Navigation) -> NavigationState:
    """Go back to day 1, page 1 and save immediately"""
    navigation.go_to_day(1)
    await navigation.flush()
    return _navigation_state(navigation)


@main_router.post("/navigation/{action}", response_model=NavigationState)
async def step_navigation(
    action: Literal["previous-day", "next-day", "previous-page", "next-page"],
    navigation: Navigation,
) -> NavigationState:
    """Step one day or page; a no-op at the bounds"""
    steps = {
        "previous-day": navigation.previous_day,
        "next-day": navigation.next_day,
        "previous-page": navigation.previous_page,
        "next-page": navigation.next_page,
    }
    steps[action]()
    return _navigation_state(navigation)


@main_router.get("/settings", response_model=UserSettings)
async def get_settings(user_settings: Settings) -> UserSettings:
    return user_settings.settings


@main_router.get("/settings/channels", response_model=ChannelSuffixListing)
async def list_channels(
    user_settings: Settings,
    search: str = "",
    mode: FilterMode = "all",
) -> ChannelSuffixListing:
    """Channels filtered by suffix state and search text"""
    suffixes = user_settings.channel_suffixes
    return ChannelSuffixListing(
        configured_count=user_settings.configured_count,
        total_channels=TOTAL_CHANNELS,
        channels=[
            ChannelSuffixItem(
                channel_index=index,
                channel_name=channel_name(index),
                suffix=suffixes.get(index, ""),
            )
            for index in user_settings.search_channels(search, mode)
        ],
    )


@main_router.put("/settings/channels", response_model=UserSettings)
async def replace_channel_suffixes(update: BulkChannelSuffixUpdate, user_settings: Settings) -> UserSettings:
    user_settings.bulk_update_channel_suffixes(update.channel_suffixes)
    return user_settings.settings


@main_router.put("/settings/channels/{channel_index}", response_model=UserSettings)
async def update_channel_suffix(
    channel_index: int,
    update: ChannelSuffixUpdate,
    user_settings: Settings,
) -> UserSettings:
    """Set or clear (empty suffix) one channel's suffix"""
    user_settings.update_channel_suffix(channel_index, update.suffix)
    return user_settings.settings


@main_router.get("/countdowns", response_model=list[CountdownResponse])
async def get_countdowns(countdowns: Countdowns) -> list[CountdownResponse]:
    return await countdowns.get_countdowns()


class ChangeStreamBuffer:
    """
    Messages waiting to be sent to one WebSocket client

    The queue is bounded. A client that falls behind by more than maxsize
    messages is marked overflowed and stops receiving new ones.
    """

    def __init__(self, maxsize: int):
        self.queue: asyncio.Queue[ChangeMessage] = asyncio.Queue(maxsize=maxsize)
        self.overflowed = asyncio.Event()

    def forward(self, kind: str):
        def handler(document) -> None:
            if self.overflowed.is_set():
                return
            message = ChangeMessage(type=kind, document=document.model_dump(mode="json", by_alias=True))
            try:
                self.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("WebSocket client is %s messages behind, disconnecting", self.queue.maxsize)
                self.overflowed.set()
        return handler


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@main_router.websocket("/ws")
async def change_stream(websocket: WebSocket, store: Annotated[DocumentStore, Depends(get_store)]) -> None:
    """
    Push every stored season, navigation and settings document to the client

    Subscriptions live exactly as long as the connection. A client that
    falls too far behind is disconnected with code 1013.
    """
    await websocket.accept()
    buffer = ChangeStreamBuffer(settings.change_stream_queue_size)

    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    overflowed = asyncio.create_task(buffer.overflowed.wait())
    with (
        store.subscribe_to_schedule(buffer.forward("season")),
        store.subscribe_to_navigation_prefs(buffer.forward("navigation")),
        store.subscribe_to_user_settings(buffer.forward("settings")),
    ):
        try:
            while True:
                next_message = asyncio.create_task(buffer.queue.get())
                done, _ = await asyncio.wait(
                    {next_message, disconnected, overflowed},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if disconnected in done:
                    next_message.cancel()
                    break
                if overflowed in done:
                    next_message.cancel()
                    await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
                    break
                await websocket.send_json(next_message.result().model_dump())
        finally:
            disconnected.cancel()
            overflowed.cancel()

    logger.debug("WebSocket client disconnected")
