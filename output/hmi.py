# -- coding: utf-8 --
from __future__ import annotations

import logging
from typing import Protocol

from aiohttp import web

from core.lifecycle import LoopRunner

from .manager import Event, StatusSnapshot


class AppContextLike(Protocol):
    def snapshot(self) -> StatusSnapshot: ...

    def request_run(self) -> bool: ...


L = logging.getLogger("stillcheck.output.hmi")


class _ApiServer:
    def __init__(
        self,
        host: str,
        port: int,
        context: AppContextLike,
        *,
        loop_runner: LoopRunner,
    ):
        self.host = host
        self.port = port
        self.context = context
        self.app = web.Application()
        self._setup_routes()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._started = False
        self._loop_runner = loop_runner

    def _setup_routes(self):
        app = self.app
        ctx = self.context

        async def status(_request):
            return web.json_response(ctx.snapshot().as_dict())

        async def start(request):
            accepted = ctx.request_run()
            L.info("start requested from %s accepted=%s", request.remote, accepted)
            return web.json_response({"accepted": accepted}, status=202 if accepted else 409)

        async def health(_request):
            return web.json_response({"ok": True})

        app.router.add_get("/status", status)
        app.router.add_get("/health", health)
        app.router.add_post("/start", start)

    @property
    def started(self) -> bool:
        return self._started

    def start(self):
        if self._started:
            return
        try:
            self._loop_runner.run_async(self._serve(), timeout=1.0)
        except Exception:
            self.stop()
            raise
        self._started = True

    async def _serve(self):
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        L.info("HMI web service running @ http://%s:%d", self.host, self.port)

    def stop(self):
        async def _cleanup():
            if self._runner:
                await self._runner.cleanup()
            self._runner = None
            self._site = None

        self._loop_runner.run_async(_cleanup(), timeout=0.5)
        if self._started:
            L.info("HMI web service stopped")
        self._started = False

    def raise_if_failed(self):
        if not self._started:
            return
        runner = self._runner
        site = self._site
        if runner is None or site is None:
            raise RuntimeError("HMI web service stopped unexpectedly")
        server = getattr(site, "_server", None)
        if server is None:
            raise RuntimeError("HMI web service server missing")
        is_serving = getattr(server, "is_serving", None)
        if callable(is_serving) and not bool(is_serving()):
            raise RuntimeError("HMI web service is not serving")


class HmiOutput:
    """JSON status API; clients poll `/status`, so publish() pushes nothing."""

    def __init__(
        self,
        host: str,
        port: int,
        context: AppContextLike,
        *,
        loop_runner: LoopRunner,
    ):
        self.server = _ApiServer(host, port, context, loop_runner=loop_runner)

    def start(self):
        self.server.start()

    def stop(self):
        self.server.stop()

    def publish(self, event: Event, snapshot: StatusSnapshot):
        _ = event, snapshot
        return None

    def raise_if_failed(self):
        self.server.raise_if_failed()


__all__ = ["HmiOutput"]
