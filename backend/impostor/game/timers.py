from __future__ import annotations

import logging
from typing import Callable, Protocol

from .models import Room

logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class SocketIOScheduler:
    """Runs each delayed callback in a Socket.IO background task."""

    def __init__(self, socketio) -> None:
        self.socketio = socketio

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def _runner() -> None:
            self.socketio.sleep(delay)
            if handle.cancelled:
                return
            callback()

        self.socketio.start_background_task(_runner)
        return handle


class RoomTimers:
    """One cancellable timer slot per room.

    Scheduling always replaces whatever the room had pending. A step only runs
    if, at fire time, the room is still registered and still in the phase and
    round it was scheduled from.
    """

    def __init__(self, scheduler: Scheduler, lookup: Callable[[str], Room | None], lock) -> None:
        self.scheduler = scheduler
        self._lookup = lookup
        self._lock = lock

    def cancel(self, room: Room) -> None:
        if room.timer_handle is not None:
            room.timer_handle.cancel()
            room.timer_handle = None

    def after(self, room: Room, delay: float, step: Callable[[Room], None]) -> None:
        self.cancel(room)
        expected = (room.phase, room.round)
        handle = None

        def _fire() -> None:
            with self._lock:
                # The scheduler's own cancelled check runs outside the lock.
                if handle is None or handle.cancelled or room.timer_handle is not handle:
                    logger.debug("[timer-abort] room=%s handle superseded", room.id)
                    return
                if self._lookup(room.id) is not room:
                    logger.debug("[timer-abort] room=%s no longer registered", room.id)
                    return
                if (room.phase, room.round) != expected:
                    logger.debug(
                        "[timer-abort] room=%s expected=%s actual=%s",
                        room.id, expected, (room.phase, room.round),
                    )
                    return
                room.timer_handle = None
                try:
                    step(room)
                except Exception:
                    logger.exception("Timer step failed in room %s (phase %s)", room.id, room.phase)

        handle = self.scheduler.call_later(delay, _fire)
        room.timer_handle = handle

    def countdown(
        self,
        room: Room,
        seconds: int,
        on_tick: Callable[[Room], None],
        on_expire: Callable[[Room], None],
        expire_at: int = 0,
    ) -> None:
        """Tick ``room.timer`` down once per second.

        ``on_tick`` runs for the initial value and after every decrement until
        the timer reaches ``expire_at``, then ``on_expire`` runs instead.
        ``room.timer`` may be lowered by the caller while the countdown runs.
        """
        room.timer = seconds
        on_tick(room)

        def _tick(r: Room) -> None:
            r.timer -= 1
            if r.timer <= expire_at:
                on_expire(r)
                return
            on_tick(r)
            self.after(r, 1, _tick)

        self.after(room, 1, _tick)
