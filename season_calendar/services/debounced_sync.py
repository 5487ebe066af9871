"""
Debounced Document Sync

Keeps a single-document value (navigation position, user settings) in
memory, applies local changes immediately and writes only the last change
of a burst once no change has arrived for the debounce window. Remote
updates are ignored while a local write is pending or in flight so a
session never overwrites its own change with an older echo. Last writer
wins; there is no merge.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from season_calendar.services.change_feed import Handler, Subscription
from season_calendar.services.document_store import StoreReadError, StoreWriteError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebounceTimer:
    """
    One-shot timer that is cancelled and re-armed on every arm() call.

    Once the quiescence window has elapsed the callback is detached from the
    timer, so re-arming never cancels a write that is already running.
    """

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds
        self._waiting: asyncio.Task | None = None
        self._callback: Callable[[], Awaitable[None]] | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._waiting is not None and not self._waiting.done()

    @property
    def running(self) -> bool:
        return bool(self._running)

    def arm(self, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._callback = callback
        task = asyncio.get_running_loop().create_task(self._fire(callback))
        self._waiting = task
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _fire(self, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._waiting = None
        self._callback = None
        await callback()

    def cancel(self) -> None:
        if self.pending:
            self._waiting.cancel()
            self._running.discard(self._waiting)
        self._waiting = None
        self._callback = None

    async def flush(self) -> None:
        """Run a pending callback now and wait for in-flight callbacks."""
        callback = self._callback if self.pending else None
        self.cancel()
        if callback is not None:
            await callback()
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)


class DebouncedDocumentSync(Generic[T]):
    """Local copy of one document with debounced persistence and a sync guard."""

    def __init__(
        self,
        *,
        name: str,
        default: T,
        load: Callable[[], Awaitable[T]],
        save: Callable[[T], Awaitable[T]],
        subscribe: Callable[[Handler[T]], Subscription[T]],
        debounce_seconds: float,
    ):
        self.name = name
        self._value = default
        self._load = load
        self._save = save
        self._subscribe = subscribe
        self._timer = DebounceTimer(debounce_seconds)
        self._subscription: Subscription[T] | None = None
        self._is_syncing = False
        self.is_loaded = False
        self.error: str | None = None

    @property
    def value(self) -> T:
        return self._value

    @property
    def save_pending(self) -> bool:
        return self._timer.pending or self._is_syncing

    async def load(self) -> None:
        """Load the stored document; a failure keeps the default and records the error."""
        try:
            self._value = await self._load()
            self.error = None
        except StoreReadError as exc:
            self.error = str(exc)
            logger.error("Failed to load %s: %s", self.name, exc)
        finally:
            self.is_loaded = True

    def start_sync(self) -> Subscription[T]:
        if self._subscription is None or not self._subscription.active:
            self._subscription = self._subscribe(self._on_remote_update)
        return self._subscription

    def _on_remote_update(self, value: T) -> None:
        if self.save_pending:
            logger.debug("Ignoring remote %s update while a local save is pending", self.name)
            return
        self._value = value

    def update(self, value: T) -> None:
        """Replace the local value now and (re)arm the debounced save."""
        self._value = value
        self._timer.arm(self._persist)

    async def _persist(self) -> None:
        value = self._value
        self._is_syncing = True
        try:
            await self._save(value)
            self.error = None
        except StoreWriteError as exc:
            self.error = str(exc)
            logger.error("Failed to save %s: %s", self.name, exc)
        finally:
            self._is_syncing = False

    async def flush(self) -> None:
        await self._timer.flush()

    async def close(self) -> None:
        """Write any pending change and stop following remote updates."""
        await self.flush()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
