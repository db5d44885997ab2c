"""Timer sources for sprint sessions.

``SocketIOScheduler`` runs callbacks on Socket.IO background tasks so it
works under threading, eventlet and gevent alike. Tests plug in a virtual
clock through ``create_app(scheduler=...)``.
"""

import logging
import time
from typing import Any, Callable, Optional

# Longest single sleep; a cancelled timer's task exits within this bound
MAX_SLEEP_STEP_SEC = 1.0


class TimerHandle:
    __slots__ = ('cancelled', 'label')

    def __init__(self, label: str = ''):
        self.cancelled = False
        self.label = label

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Interface: one-shot and periodic callbacks plus fire-and-forget work.

    A periodic callback stops when it returns ``False`` or its handle is
    cancelled. Exceptions raised by callbacks are logged and swallowed at
    this boundary so one session's fault never kills another's timers.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, fn: Callable, *args: Any, label: str = '') -> TimerHandle:
        raise NotImplementedError

    def call_every(self, interval: float, fn: Callable, *args: Any, label: str = '') -> TimerHandle:
        raise NotImplementedError

    def spawn(self, fn: Callable, *args: Any, label: str = '') -> None:
        raise NotImplementedError

    def _run(self, label: str, fn: Callable, args) -> Any:
        try:
            return fn(*args)
        except Exception:
            self.logger.exception(f"[timer-error] {label or getattr(fn, '__name__', fn)} failed")
            return False


class SocketIOScheduler(Scheduler):
    def __init__(self, socketio, logger=None, max_step: float = MAX_SLEEP_STEP_SEC):
        super().__init__(logger)
        self.socketio = socketio
        self.max_step = max_step

    def now(self) -> float:
        return time.time()

    def _sleep_until(self, deadline: float, handle: TimerHandle) -> None:
        while not handle.cancelled:
            remaining = deadline - self.now()
            if remaining <= 0:
                return
            self.socketio.sleep(min(remaining, self.max_step))

    def call_later(self, delay, fn, *args, label=''):
        handle = TimerHandle(label)
        deadline = self.now() + max(0.0, delay)

        def _worker():
            self._sleep_until(deadline, handle)
            if not handle.cancelled:
                self._run(label, fn, args)

        self.socketio.start_background_task(_worker)
        return handle

    def call_every(self, interval, fn, *args, label=''):
        handle = TimerHandle(label)
        first = self.now() + interval

        def _worker():
            # Deadlines advance by a fixed step so ticks do not drift
            next_at = first
            while not handle.cancelled:
                self._sleep_until(next_at, handle)
                if handle.cancelled:
                    return
                if self._run(label, fn, args) is False:
                    return
                next_at += interval

        self.socketio.start_background_task(_worker)
        return handle

    def spawn(self, fn, *args, label=''):
        self.socketio.start_background_task(self._run, label, fn, args)
