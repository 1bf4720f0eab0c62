import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


logger = structlog.get_logger()

ProgressProvider = Callable[[], dict[str, Any]]


def create_metrics_app(progress: ProgressProvider | None = None) -> FastAPI:
    """Create FastAPI application exposing benchmark metrics and live progress."""
    app = FastAPI(
        title="Transfer Benchmark Metrics",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics() -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/progress")
    async def progress_snapshot() -> dict[str, Any]:
        """Counts of the benchmark run in progress."""
        if progress is None:
            return {}
        return progress()

    return app


class MetricsServer:
    """Serves the metrics app with uvicorn on a background task."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 9090,
        progress: ProgressProvider | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._progress = progress
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        app = create_metrics_app(self._progress)
        config = uvicorn.Config(
            app,
            host=self._host,
            port=self._port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        self._task = asyncio.create_task(self._server.serve())
        logger.info("metrics_server_started", host=self._host, port=self._port)

    async def stop(self) -> None:
        if self._server:
            self._server.should_exit = True

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except TimeoutError:
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task

        logger.info("metrics_server_stopped")
