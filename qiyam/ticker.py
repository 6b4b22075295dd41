"""Cooperative periodic tasks on top of an event loop's after/after_cancel."""

import logging

logger = logging.getLogger(__name__)

COUNTDOWN_INTERVAL_MS = 1000
PROGRESS_INTERVAL_MS = 60 * 1000
SEARCH_DEBOUNCE_MS = 500


class PeriodicTask:
    """
    Call `callback` now and then every `interval_ms` until stopped.

    `after(ms, fn)` must return a job id accepted by `after_cancel(job)`, as
    tkinter's Misc.after does. A failing callback is logged and the task keeps
    running.
    """

    def __init__(self, after, after_cancel, interval_ms: int, callback, name: str = ""):
        self._after = after
        self._after_cancel = after_cancel
        self.interval_ms = interval_ms
        self._callback = callback
        self.name = name or getattr(callback, "__name__", "task")
        self._job = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self.stop()
        self._running = True
        self._run()

    def stop(self) -> None:
        self._running = False
        if self._job is not None:
            self._after_cancel(self._job)
            self._job = None

    def _run(self) -> None:
        self._job = None
        if not self._running:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Periodic task %s failed", self.name)
        if self._running:
            self._job = self._after(self.interval_ms, self._run)


class WindowTicker:
    """The widget's two refresh loops: state/countdown every second, progress every minute."""

    def __init__(self, after, after_cancel, on_countdown, on_progress):
        self.countdown = PeriodicTask(
            after, after_cancel, COUNTDOWN_INTERVAL_MS, on_countdown, "countdown"
        )
        self.progress = PeriodicTask(
            after, after_cancel, PROGRESS_INTERVAL_MS, on_progress, "progress"
        )

    @property
    def running(self) -> bool:
        return self.countdown.running or self.progress.running

    def start(self) -> None:
        self.countdown.start()
        self.progress.start()

    def stop(self) -> None:
        self.countdown.stop()
        self.progress.stop()


class Debouncer:
    """Delay a call until `delay_ms` have passed without another trigger."""

    def __init__(self, after, after_cancel, delay_ms: int, callback):
        self._after = after
        self._after_cancel = after_cancel
        self.delay_ms = delay_ms
        self._callback = callback
        self._job = None

    @property
    def pending(self) -> bool:
        return self._job is not None

    def trigger(self, *args) -> None:
        self.cancel()
        self._job = self._after(self.delay_ms, lambda: self._fire(*args))

    def cancel(self) -> None:
        if self._job is not None:
            self._after_cancel(self._job)
            self._job = None

    def _fire(self, *args) -> None:
        self._job = None
        self._callback(*args)
