"""
Status server exposing Prometheus metrics and loop health over HTTP.
"""
import logging
import time
from typing import Optional

import psutil
from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .metrics import FINSPACE_REGISTRY

logger = logging.getLogger(__name__)


class StatusServer:
    """Serves ``/metrics`` and ``/health`` for a running orchestrator."""

    def __init__(self, orchestrator, host: str = '0.0.0.0', port: int = 9105):
        self.orchestrator = orchestrator
        self.host = host
        self.port = port
        self._runner: Optional[web.AppRunner] = None
        self._process = psutil.Process()
        self._started_at = time.time()

    def create_app(self) -> web.Application:
        app = web.Application()
        app.add_routes([
            web.get('/metrics', self.metrics),
            web.get('/health', self.health_check),
        ])
        return app

    async def start(self):
        """Start listening"""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Status server listening on {self.host}:{self.port}")

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Status server stopped")

    async def metrics(self, request):
        """Prometheus exposition of the fin-space registry"""
        return web.Response(
            body=generate_latest(FINSPACE_REGISTRY),
            headers={'Content-Type': CONTENT_TYPE_LATEST}
        )

    async def health_check(self, request):
        """Report loop progress and process resource usage"""
        orchestrator = self.orchestrator
        started = orchestrator.last_round_started
        finished = orchestrator.last_round_finished

        status = 'healthy'
        if orchestrator.last_error and (finished is None or (started and started > finished)):
            status = 'degraded'

        return web.json_response({
            'status': status,
            'debug': orchestrator.config.debug,
            'rounds_completed': orchestrator.rounds_completed,
            'last_round_started': started.isoformat() if started else None,
            'last_round_finished': finished.isoformat() if finished else None,
            'last_error': orchestrator.last_error,
            'uptime_seconds': round(time.time() - self._started_at, 1),
            'memory_rss_bytes': self._process.memory_info().rss,
        })
