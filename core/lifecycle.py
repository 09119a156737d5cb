"""Shared async-loop runner and per-run ownership of timers and subscriptions."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import Future, TimeoutError
from typing import Any, Protocol, TypeVar

L = logging.getLogger("stillcheck.lifecycle")


T = TypeVar("T")


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class LoopRunner:
    """Owns a shared background asyncio loop and provides sync bridge helpers."""

    def __init__(self, *, logger: logging.Logger | None = None):
        self._logger = logger or L
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._stopped = False
        self._lock = threading.Lock()
        self._loop_thread_ident: int | None = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._ensure_loop()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._stopped:
                raise RuntimeError("Async loop already stopped")
            if self._loop and self._thread and self._thread.is_alive():
                return self._loop
            loop = asyncio.new_event_loop()
            ready = threading.Event()
            self._loop = loop
            self._loop_thread_ident = None

            def _runner():
                asyncio.set_event_loop(loop)
                self._loop_thread_ident = threading.get_ident()
                ready.set()
                loop.run_forever()

            self._thread = threading.Thread(
                target=_runner, name="stillcheck-loop", daemon=True
            )
            self._thread.start()
            ready.wait(timeout=0.5)
            return loop

    def _on_loop_thread(self) -> bool:
        return (
            self._loop_thread_ident is not None
            and threading.get_ident() == self._loop_thread_ident
        )

    def run_async(self, coro: Coroutine[Any, Any, T], timeout: float | None = 0.5) -> T:
        """Submit coroutine to the shared loop from a non-loop thread and wait."""
        loop = self._ensure_loop()
        if self._on_loop_thread():
            coro.close()
            raise RuntimeError(
                "run_async must not be called from the loop thread; await directly"
            )
        fut = asyncio.run_coroutine_threadsafe(coro, loop)
        try:
            return fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            self._logger.warning("run_async timeout after %.2fs", timeout or 0)
            raise

    def submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        """Schedule coroutine on the shared loop; returns a thread-safe future."""
        loop = self._ensure_loop()
        if self._on_loop_thread():
            coro.close()
            raise RuntimeError("submit must not be called from the loop thread")
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def shutdown_loop(self, timeout: float = 1.0):
        """Cancel pending tasks and stop the shared loop."""
        if self._on_loop_thread():
            raise RuntimeError("shutdown_loop must not be called from the loop thread")
        with self._lock:
            loop = self._loop
            thread = self._thread
            self._stopped = True
            if not loop or not thread or loop.is_closed():
                return

        async def _shutdown():
            current = asyncio.current_task()
            tasks = [
                t for t in asyncio.all_tasks() if t is not current and not t.done()
            ]
            if tasks:
                names = [t.get_name() or repr(t) for t in tasks[:10]]
                suffix = f" (+{len(tasks) - 10} more)" if len(tasks) > 10 else ""
                self._logger.info(
                    "shutdown_loop pending_tasks=%d names=%s%s",
                    len(tasks),
                    ", ".join(names),
                    suffix,
                )
            else:
                self._logger.debug("shutdown_loop pending_tasks=0")
            for t in tasks:
                t.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            await loop.shutdown_asyncgens()

        fut = asyncio.run_coroutine_threadsafe(_shutdown(), loop)
        try:
            fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            raise
        finally:
            loop.call_soon_threadsafe(loop.stop)
            if thread.is_alive():
                thread.join(timeout=timeout)
            if not loop.is_closed() and not thread.is_alive():
                loop.close()
            self._loop = None
            self._thread = None
            self._loop_thread_ident = None


class RunScope:
    """Owns every timer task and sensor subscription created during one run.

    Used as `async with RunScope(run_id) as scope:`. Leaving the block, for
    any reason, cancels and awaits all owned tasks and cancels all owned
    subscriptions before the next run can start, so no tick from a dead run
    reaches the next run's counters.
    """

    def __init__(self, run_id: int = 0, *, logger: logging.Logger | None = None):
        self.run_id = run_id
        self._logger = logger or L
        self._tasks: list[asyncio.Task[Any]] = []
        self._subscriptions: list[Cancellable] = []
        self._closed = False

    async def __aenter__(self) -> "RunScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: str = "") -> asyncio.Task[T]:
        if self._closed:
            coro.close()
            raise RuntimeError(f"run {self.run_id} scope is closed")
        task = asyncio.get_running_loop().create_task(
            coro, name=f"run{self.run_id}:{name}" if name else None
        )
        self._tasks.append(task)
        return task

    def adopt(self, subscription: Cancellable) -> Cancellable:
        if self._closed:
            subscription.cancel()
            raise RuntimeError(f"run {self.run_id} scope is closed")
        self._subscriptions.append(subscription)
        return subscription

    async def cancel_task(self, task: asyncio.Task[Any] | None) -> None:
        """Cancel one owned task now (phase exit) and wait for it to finish."""
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if task in self._tasks:
            self._tasks.remove(task)

    def release(self, subscription: Cancellable | None) -> None:
        if subscription is None:
            return
        subscription.cancel()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done()) + len(self._subscriptions)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            try:
                sub.cancel()
            except Exception:
                self._logger.exception("run %s: subscription cancel failed", self.run_id)
        tasks, self._tasks = self._tasks, []
        live = [t for t in tasks if not t.done()]
        for t in live:
            t.cancel()
        if live:
            await asyncio.gather(*live, return_exceptions=True)
        if subs or live:
            self._logger.debug(
                "run %s scope closed: subscriptions=%d tasks=%d",
                self.run_id,
                len(subs),
                len(live),
            )


__all__ = [
    "Cancellable",
    "LoopRunner",
    "RunScope",
]
