"""
Countdown Service

Repeating countdown timers. Each countdown remembers when its current cycle
started; the first read starts the clock.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from season_calendar.schemas import CountdownResponse
from season_calendar.services.document_store import DocumentStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CountdownDefinition:
    key: str
    title: str
    days_cycle: int

    @property
    def cycle(self) -> timedelta:
        return timedelta(days=self.days_cycle)


COUNTDOWNS: tuple[CountdownDefinition, ...] = (
    CountdownDefinition("haircut-countdown-start", "Haircut countdown", 14),
    CountdownDefinition("therapy-countdown-start", "Therapy countdown", 5),
)


@dataclass(frozen=True, slots=True)
class TimeLeft:
    days: int
    hours: int
    minutes: int
    seconds: int
    next_reset: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def completed_cycles(started_at: datetime, cycle: timedelta, now: datetime) -> int:
    return (now - started_at) // cycle


def time_left(started_at: datetime, cycle: timedelta, now: datetime) -> TimeLeft | None:
    """
    Time until the next reset of a repeating cycle

    Args:
        started_at: Start of the first cycle
        cycle: Cycle length
        now: Current time

    Returns:
        Remaining time split into days/hours/minutes/seconds, or None when
        the next reset is not in the future and the cycle must restart
    """
    next_reset = started_at + (completed_cycles(started_at, cycle, now) + 1) * cycle
    difference = next_reset - now
    if difference <= timedelta(0):
        return None

    total_seconds = int(difference.total_seconds())
    return TimeLeft(
        days=total_seconds // 86400,
        hours=total_seconds // 3600 % 24,
        minutes=total_seconds // 60 % 60,
        seconds=total_seconds % 60,
        next_reset=next_reset,
    )


class CountdownService:
    """Reads and rolls over countdown cycle starts kept in the store."""

    def __init__(
        self,
        store: DocumentStore,
        definitions: Sequence[CountdownDefinition] = COUNTDOWNS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self.definitions = tuple(definitions)
        self._clock = clock

    async def get_countdowns(self) -> list[CountdownResponse]:
        """Time left for every countdown, starting any that never ran."""
        now = self._clock()
        starts = await self._store.load_countdown_starts()
        countdowns = []

        for definition in self.definitions:
            started_at = starts.get(definition.key)
            if started_at is None:
                started_at = now
                await self._store.save_countdown_start(definition.key, started_at)
                logger.info("Started countdown %s", definition.key)

            remaining = time_left(started_at, definition.cycle, now)
            if remaining is None:
                await self._store.save_countdown_start(definition.key, now)
                logger.info("Restarted countdown %s", definition.key)
                remaining = TimeLeft(
                    days=definition.days_cycle,
                    hours=0,
                    minutes=0,
                    seconds=0,
                    next_reset=now + definition.cycle,
                )

            countdowns.append(
                CountdownResponse(
                    key=definition.key,
                    title=definition.title,
                    days_cycle=definition.days_cycle,
                    days=remaining.days,
                    hours=remaining.hours,
                    minutes=remaining.minutes,
                    seconds=remaining.seconds,
                    next_reset=remaining.next_reset,
                )
            )

        return countdowns

    async def roll_over(self) -> int:
        """
        Move stored starts forward to the beginning of their current cycle

        Returns:
            Number of countdowns whose start moved
        """
        now = self._clock()
        starts = await self._store.load_countdown_starts()
        moved = 0

        for definition in self.definitions:
            started_at = starts.get(definition.key)
            if started_at is None:
                continue
            cycles = completed_cycles(started_at, definition.cycle, now)
            if cycles < 1:
                continue
            new_start = started_at + cycles * definition.cycle
            await self._store.save_countdown_start(definition.key, new_start)
            logger.info(
                "Rolled countdown %s forward %s cycle(s) to %s",
                definition.key,
                cycles,
                new_start.isoformat(),
            )
            moved += 1

        return moved
