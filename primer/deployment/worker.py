"""
deployment/worker.py - Controller runner

Feeds export keys to the reconciliation engine:
- ReconcileQueue: dedupes keys and never hands out a key that is already
  being processed; failed keys come back after an exponential backoff.
- ExportController: asyncio worker tasks running passes in threads, plus a
  periodic resync that enqueues every export.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING
from datetime import datetime, timezone
import asyncio
import logging

from ..core.enums import ReconcileOutcome
from ..bootstrap.config import ControllerConfig
from ..kernel.result import ReconcileResult

if TYPE_CHECKING:
    from ..kernel.engine import ReconciliationEngine
    from ..store.base import StateStore

logger = logging.getLogger("deployment.worker")


class ReconcileQueue:
    """
    Work queue of export keys.

    A key added while queued is not duplicated. A key added while being
    processed is marked dirty and handed out again once ``done`` is called,
    so two workers never hold the same key.
    """

    def __init__(self, backoff_base: float = 0.5, backoff_max: float = 300.0):
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: Set[str] = set()
        self._processing: Set[str] = set()
        self._failures: Dict[str, int] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def add(self, key: str) -> None:
        """Queue a key for processing."""
        if key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.put_nowait(key)

    def add_after(self, key: str, delay: float) -> None:
        """Queue a key once ``delay`` seconds have passed."""
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        existing = self._timers.get(key)
        if existing is not None:
            if existing.when() <= loop.time() + delay:
                return
            existing.cancel()
        self._timers[key] = loop.call_later(delay, self._fire, key)

    def _fire(self, key: str) -> None:
        self._timers.pop(key, None)
        self.add(key)

    def backoff(self, key: str) -> float:
        """Requeue a failed key with exponential backoff; returns the delay."""
        failures = self._failures.get(key, 0) + 1
        self._failures[key] = failures
        delay = min(self.backoff_base * (2 ** (failures - 1)), self.backoff_max)
        self.add_after(key, delay)
        return delay

    def forget(self, key: str) -> None:
        """Reset the failure count of a key."""
        self._failures.pop(key, None)

    def failures(self, key: str) -> int:
        return self._failures.get(key, 0)

    async def get(self, timeout: float = None) -> Optional[str]:
        """Take the next key, or None if nothing arrives within ``timeout``."""
        try:
            if timeout is not None:
                key = await asyncio.wait_for(self._queue.get(), timeout=timeout)
            else:
                key = await self._queue.get()
        except asyncio.TimeoutError:
            return None
        self._dirty.discard(key)
        self._processing.add(key)
        return key

    def done(self, key: str) -> None:
        """Release a key taken with ``get``."""
        self._processing.discard(key)
        if key in self._dirty:
            self._queue.put_nowait(key)

    def shutdown(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def processing(self) -> int:
        return len(self._processing)

    def __len__(self) -> int:
        return self.pending


class ExportController:
    """
    Runs reconciliation passes for every export.

    REQUEUE results are queued again at once, ERROR results back off
    exponentially and NOOP results reset the key's failure count.
    """

    def __init__(
        self,
        engine: "ReconciliationEngine",
        store: "StateStore" = None,
        config: ControllerConfig = None,
        poll_interval: float = 1.0,
    ):
        self.engine = engine
        self.store = store or engine.store
        self.config = config or ControllerConfig.from_env()
        self.poll_interval = poll_interval
        self.queue = ReconcileQueue(
            backoff_base=self.config.backoff_base_seconds,
            backoff_max=self.config.backoff_max_seconds,
        )
        self._running = False
        self._tasks: List[asyncio.Task] = []
        self._results: Dict[str, ReconcileResult] = {}
        self._stats = {
            "passes": 0,
            "requeues": 0,
            "errors": 0,
            "completed": 0,
            "resyncs": 0,
            "started_at": None,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        """Get controller statistics."""
        return {
            **self._stats,
            "is_running": self._running,
            "pending_keys": self.queue.pending,
            "processing_keys": self.queue.processing,
            "active_workers": len([t for t in self._tasks if not t.done()]),
            "tracked_exports": len(self._results),
        }

    def last_result(self, key: str) -> Optional[ReconcileResult]:
        """Result of the most recent pass for a key."""
        return self._results.get(key)

    def enqueue(self, key: str) -> None:
        self.queue.add(key)

    async def run(self) -> None:
        """Run workers and the resync loop until stopped."""
        self._running = True
        self._stats["started_at"] = datetime.now(timezone.utc).isoformat()
        logger.info(
            f"Controller started (workers={self.config.workers}, "
            f"namespace={self.config.watch_namespace or '*'})"
        )

        for i in range(self.config.workers):
            self._tasks.append(asyncio.create_task(self._worker_loop(i)))
        self._tasks.append(asyncio.create_task(self._resync_loop()))

        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            logger.info("Controller tasks cancelled")

    async def stop(self) -> None:
        """Stop the controller gracefully."""
        self._running = False
        logger.info("Stopping controller...")

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self.queue.shutdown()

        logger.info("Controller stopped")

    async def resync(self) -> int:
        """Enqueue every export; returns how many were queued."""
        exports = await asyncio.to_thread(self.store.list_exports, self.config.watch_namespace)
        for obj in exports:
            metadata = obj.get("metadata") or {}
            self.enqueue(f"{metadata.get('namespace')}/{metadata.get('name')}")
        self._stats["resyncs"] += 1
        logger.debug(f"Resync queued {len(exports)} exports")
        return len(exports)

    async def process_next(self, timeout: float = None) -> Optional[ReconcileResult]:
        """Take one key off the queue and reconcile it."""
        key = await self.queue.get(timeout=timeout)
        if key is None:
            return None
        try:
            return await self._process(key)
        finally:
            self.queue.done(key)

    async def _process(self, key: str) -> ReconcileResult:
        self._stats["passes"] += 1
        try:
            result = await asyncio.to_thread(self.engine.reconcile, key)
        except Exception as e:
            logger.exception(f"Unexpected failure reconciling {key}: {e}")
            self._stats["errors"] += 1
            self.queue.backoff(key)
            raise

        if result.missing:
            self._results.pop(key, None)
        else:
            self._results[key] = result

        if result.outcome == ReconcileOutcome.REQUEUE:
            self._stats["requeues"] += 1
            self.queue.forget(key)
            self.queue.add(key)
        elif result.outcome == ReconcileOutcome.ERROR:
            self._stats["errors"] += 1
            delay = self.queue.backoff(key)
            logger.info(f"Retrying {key} in {delay:.1f}s")
        else:
            self.queue.forget(key)
            if result.completed:
                self._stats["completed"] += 1

        return result

    async def _worker_loop(self, worker_id: int) -> None:
        logger.info(f"Worker {worker_id} started")

        while self._running:
            try:
                await self.process_next(timeout=self.poll_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Worker {worker_id} error: {e}")

        logger.info(f"Worker {worker_id} stopped")

    async def _resync_loop(self) -> None:
        while self._running:
            try:
                await self.resync()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Resync error: {e}")
            try:
                await asyncio.sleep(self.config.resync_seconds)
            except asyncio.CancelledError:
                break
