"""Per-widget refresh scheduling.

Each widget gets its own ticker thread. A tick starts a refresh cycle on a
separate worker thread unless the previous cycle for that widget is still
running, in which case the tick is skipped rather than queued. The cycle
clears its own in-flight flag when it finishes, however long that takes.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Iterable

from griddash.models import FetchError
from griddash.widgets import WidgetInstance

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0
MAX_STAGGER = 2.0
STOP_JOIN_SECONDS = 1.0


class RefreshScheduler:
    def __init__(
        self,
        instances: Iterable[WidgetInstance],
        on_update: Callable[[str], None] | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        rng: random.Random | None = None,
        max_stagger: float = MAX_STAGGER,
    ) -> None:
        self._instances = {instance.id: instance for instance in instances}
        self._on_update = on_update or (lambda _widget_id: None)
        self._fetch_timeout = fetch_timeout
        self._rng = rng or random.Random()
        self._max_stagger = max_stagger
        self._stop = threading.Event()
        self._tickers: list[threading.Thread] = []
        self._cycles: dict[str, threading.Thread] = {}
        self._cycles_lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def initial_delay(self, instance: WidgetInstance) -> float:
        return self._rng.uniform(0.0, min(instance.interval, self._max_stagger))

    def start(self) -> None:
        for instance in self._instances.values():
            ticker = threading.Thread(
                target=self._tick_loop,
                args=(instance, self.initial_delay(instance)),
                name=f"griddash-tick-{instance.id}",
                daemon=True,
            )
            self._tickers.append(ticker)
            ticker.start()
        logger.info("scheduler started for %d widgets", len(self._tickers))

    def _tick_loop(self, instance: WidgetInstance, delay: float) -> None:
        if self._stop.wait(delay):
            return
        while True:
            self.trigger(instance.id)
            if self._stop.wait(instance.interval):
                return

    def trigger(self, widget_id: str) -> bool:
        """Start a refresh cycle for one widget unless one is already running."""
        if self._stop.is_set():
            return False
        instance = self._instances[widget_id]
        if not instance.try_begin():
            logger.debug("'%s' still refreshing, tick skipped", widget_id)
            return False

        worker = threading.Thread(
            target=self.run_cycle,
            args=(instance,),
            name=f"griddash-fetch-{widget_id}",
            daemon=True,
        )
        with self._cycles_lock:
            self._cycles[widget_id] = worker
        worker.start()
        return True

    def run_cycle(self, instance: WidgetInstance) -> None:
        """Fetch, filter and record one result. Expects the in-flight slot claimed."""
        widget = instance.widget
        status = None
        error = None
        try:
            try:
                raw = widget.fetch(self._fetch_timeout)
                status = widget.filter(raw)
            except FetchError as exc:
                error = str(exc) or exc.__class__.__name__
                logger.warning("'%s' fetch failed: %s", instance.id, error)
            except Exception as exc:
                error = f"{exc.__class__.__name__}: {exc}"
                logger.exception("'%s' refresh cycle crashed", instance.id)

            if self._stop.is_set():
                logger.info("'%s' finished after shutdown, result discarded", instance.id)
                return
            if status is not None:
                instance.record_success(status)
            else:
                instance.record_failure(error or "unknown error")
        finally:
            instance.finish()

        self._on_update(instance.id)

    def wait_idle(self, widget_id: str, timeout: float | None = None) -> bool:
        with self._cycles_lock:
            worker = self._cycles.get(widget_id)
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def run_once(self, timeout: float | None = None) -> list[str]:
        """Refresh every widget once; returns ids still running at the deadline."""
        for widget_id in self._instances:
            self.trigger(widget_id)

        deadline = None if timeout is None else time.monotonic() + timeout
        pending = []
        for widget_id in self._instances:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not self.wait_idle(widget_id, remaining):
                pending.append(widget_id)
        return pending

    def stop(self) -> None:
        self._stop.set()
        for ticker in self._tickers:
            ticker.join(STOP_JOIN_SECONDS)

        with self._cycles_lock:
            running = [wid for wid, worker in self._cycles.items() if worker.is_alive()]
        for widget_id in running:
            logger.info("abandoning in-flight refresh for '%s'", widget_id)
        logger.info("scheduler stopped")
