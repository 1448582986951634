# ysba_ticker/browser.py
"""
Browser session management and the single-worker operation queue.

Playwright's sync API is bound to the thread that started it, and the YSBA
site keeps per-session form state, so every browser interaction runs on one
worker thread, one queued operation at a time, in submission order.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
import logging
import queue
import threading
from typing import Any, Callable, Optional

from playwright.sync_api import sync_playwright

from .config import AppConfig
from .errors import ScrapeError, SessionFailure

logger = logging.getLogger(__name__)

Operation = Callable[[Any], Any]


class SessionState(Enum):
    CLOSED = "closed"
    LAUNCHING = "launching"
    READY = "ready"
    BUSY = "busy"
    CLOSING = "closing"


class BrowserSession:
    """
    One shared Chromium instance, launched lazily and relaunched when it drops.

    Only the coordinator's worker thread may call ensure()/close().
    """

    def __init__(self, cfg: AppConfig, launcher: Optional[Callable[[], Any]] = None) -> None:
        self.cfg = cfg
        self._launcher = launcher or self._launch_chromium
        self._playwright = None
        self._browser = None
        self.state = SessionState.CLOSED

    def _launch_chromium(self):
        """Start Playwright and launch headless Chromium with container-friendly flags."""
        self._playwright = sync_playwright().start()
        return self._playwright.chromium.launch(
            headless=self.cfg.headless,
            args=list(self.cfg.browser_args),
            timeout=self.cfg.navigation_timeout_ms,
        )

    @property
    def connected(self) -> bool:
        if self._browser is None:
            return False
        try:
            return bool(self._browser.is_connected())
        except Exception:
            return False

    def ensure(self):
        """Return a connected browser, launching (or relaunching) it if needed."""
        if self.connected:
            return self._browser

        if self._browser is not None:
            logger.warning("Browser disconnected, relaunching...")
            self.close()

        logger.info("Creating new browser instance...")
        self.state = SessionState.LAUNCHING
        try:
            self._browser = self._launcher()
        except Exception as exc:
            self.state = SessionState.CLOSED
            self._stop_playwright()
            raise SessionFailure(f"Failed to launch browser: {exc}") from exc

        self.state = SessionState.READY
        return self._browser

    def _stop_playwright(self) -> None:
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:
                logger.warning(f"Error stopping Playwright: {exc}")
            self._playwright = None

    def close(self) -> None:
        """Close the browser and Playwright driver; the next ensure() relaunches."""
        self.state = SessionState.CLOSING
        if self._browser is not None:
            try:
                if self._browser.is_connected():
                    self._browser.close()
                logger.info("Browser closed successfully")
            except Exception as exc:
                logger.error(f"Error closing browser: {exc}")
            finally:
                self._browser = None
        self._stop_playwright()
        self.state = SessionState.CLOSED


@dataclass
class _Job:
    op: Operation
    label: str
    future: Future


_STOP = object()


class SessionCoordinator:
    """
    FIFO queue of browser operations drained by a single worker thread.

    submit() returns a Future resolved with the operation's return value, or
    with its exception. A failing operation never affects the operations queued
    behind it.
    """

    def __init__(self, session: BrowserSession, maxsize: int = 64) -> None:
        self.session = session
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("Coordinator is closed")
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._run, name="browser-session", daemon=True)
                self._worker.start()

    def submit(self, op: Operation, label: str = "browser operation") -> Future:
        """
        Queue op(browser) for execution on the worker thread.

        Blocks while the queue is full.
        """
        self._ensure_worker()
        fut: Future = Future()
        self._queue.put(_Job(op=op, label=label, future=fut))
        logger.info(f"Queued browser operation: {label} (pending: {self.pending})")
        return fut

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    break
                self._execute(job)
            finally:
                self._queue.task_done()

        self.session.close()

    def _execute(self, job: _Job) -> None:
        if not job.future.set_running_or_notify_cancel():
            logger.info(f"Skipping cancelled browser operation: {job.label}")
            return

        try:
            browser = self.session.ensure()
        except SessionFailure as exc:
            exc.label = exc.label or job.label
            logger.error(f"Browser operation failed: {job.label}: {exc}")
            job.future.set_exception(exc)
            return

        logger.info(f"Executing browser operation: {job.label}")
        self.session.state = SessionState.BUSY
        try:
            result = job.op(browser)
        except Exception as exc:
            error = exc
            if not self.session.connected:
                error = SessionFailure(f"Browser disconnected during operation: {exc}", label=job.label)
                error.__cause__ = exc
                self.session.close()
            elif isinstance(exc, ScrapeError) and exc.label is None:
                exc.label = job.label
            self._release()
            logger.error(f"Browser operation failed: {job.label}: {exc}")
            job.future.set_exception(error)
            return

        self._release()
        logger.info(f"Browser operation completed: {job.label}")
        job.future.set_result(result)

    def _release(self) -> None:
        # Session state must settle before the caller's Future resolves.
        if self.session.state == SessionState.BUSY:
            self.session.state = SessionState.READY

    def close(self, timeout: Optional[float] = None) -> None:
        """Finish queued operations, then close the browser and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker

        if worker is not None and worker.is_alive():
            self._queue.put(_STOP)
            worker.join(timeout)
        else:
            self.session.close()
