from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import RedirectResponse

from .config import Settings, configure_logging, settings as default_settings
from .metrics.registry import ExporterRegistry, build_registry
from .services.source import DocumentSource

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[DocumentSource] = None,
) -> FastAPI:
    settings = settings or default_settings
    source = source or DocumentSource(
        settings.es_url,
        username=settings.username,
        password=settings.password_value,
        timeout_seconds=settings.request_timeout_seconds,
    )
    registry = build_registry(settings, source)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Scraping %s every %d seconds", settings.es_url, settings.scrape_interval_seconds
        )
        registry.start()
        try:
            yield
        finally:
            await registry.stop()
            source.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.registry = registry

    def get_registry(request: Request) -> ExporterRegistry:
        return request.app.state.registry

    @app.get("/", include_in_schema=False)
    async def root_redirect() -> RedirectResponse:
        return RedirectResponse("/metrics")

    # Sync handler: runs in the threadpool, so overlapping scrapes fetch in parallel.
    @app.get("/metrics")
    def metrics(registry: ExporterRegistry = Depends(get_registry)) -> Response:
        payload, content_type = registry.render()
        return Response(content=payload, media_type=content_type)

    return app


def run() -> None:
    import uvicorn

    configure_logging(default_settings.log_level)
    logger.info("Listen on address %s:%d", default_settings.bind_host, default_settings.bind_port)
    uvicorn.run(create_app(), host=default_settings.bind_host, port=default_settings.bind_port)


if __name__ == "__main__":
    run()
