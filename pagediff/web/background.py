"""Runs comparisons for the synchronous Flask app on one long-lived event loop.

Playwright objects are bound to the loop that created them, so the shared
browser lives on a dedicated thread and request handlers submit
coroutines to it.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, TypeVar

from pagediff.browser.manager import BrowserManager
from pagediff.models.comparison import CaptureRequest, ComparisonSummary
from pagediff.models.config import CompareConfig
from pagediff.orchestrator import ComparisonOrchestrator
from pagediff.storage.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackgroundLoop:
    """An asyncio loop running forever on a daemon thread."""

    def __init__(self, name: str = "pagediff-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._lock = threading.Lock()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if not self._thread.is_alive() and not self._loop.is_closed():
                self._thread.start()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run ``coro`` on the loop and block for its result.

        On timeout the coroutine is cancelled so it can release its
        browser context, then ``TimeoutError`` is raised.
        """
        self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise TimeoutError(f"Operation did not finish within {timeout}s") from e

    def stop(self) -> None:
        with self._lock:
            if self._thread.is_alive():
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._thread.join(timeout=10)
            if not self._loop.is_running() and not self._loop.is_closed():
                self._loop.close()


class ComparisonService:
    """Blocking facade over the orchestrator, sharing one browser across requests."""

    def __init__(self, config: CompareConfig, loop: BackgroundLoop | None = None):
        self.config = config
        self._loop = loop or BackgroundLoop()
        self.browser_manager = BrowserManager(config.browser)
        self.orchestrator = ComparisonOrchestrator.from_config(config, self.browser_manager)

    @property
    def artifact_store(self) -> ArtifactStore:
        return self.orchestrator.artifact_store

    def compare(self, request: CaptureRequest) -> ComparisonSummary:
        return self._loop.run(
            self.orchestrator.compare(request),
            timeout=self.config.server.request_timeout_seconds,
        )

    def shutdown(self) -> None:
        if self._loop.is_running:
            try:
                self._loop.run(self.browser_manager.stop(), timeout=30)
            except Exception as e:
                logger.warning("Browser shutdown failed: %s", e)
        self._loop.stop()
