"""
FastAPI application factory

Startup loads the optional seed collections and, when the configured
embedder has a model to load, warms it up in the background. Until warmup
completes, text queries fall back to the character encoding.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carefinder.api.error_handlers import register_exception_handlers
from carefinder.api.response_middleware import SuccessEnvelopeMiddleware
from carefinder.core.config import settings
from carefinder.core.logging import configure_logging, get_logger
from carefinder.embedding.factory import get_embedder_instance
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.routers import entities, events, search
from carefinder.services.catalog import Catalog, get_catalog

logger = get_logger(__name__)

ROUTERS = (search.router, events.router, entities.router)


async def _warm_up(embedder: EmbedderProtocol) -> None:
    started = time.perf_counter()
    try:
        await embedder.warmup()  # type: ignore[attr-defined]
    except Exception as e:
        logger.error(
            "embedder_warmup_failed",
            model=embedder.model_name,
            error=str(e),
            elapsed_seconds=round(time.perf_counter() - started, 2),
        )
        return
    logger.info(
        "embedder_warmup_complete",
        model=embedder.model_name,
        elapsed_seconds=round(time.perf_counter() - started, 2),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info("application_startup", environment=settings.environment)

    if settings.seed_data_path:
        await get_catalog().load_seed_file(settings.seed_data_path)
    else:
        logger.warning("collection_seed_skipped", reason="seed_data_path_not_set")

    embedder = get_embedder_instance()
    warmup_task: asyncio.Task | None = None
    if hasattr(embedder, "warmup"):
        warmup_task = asyncio.create_task(_warm_up(embedder))
    app.state.warmup_task = warmup_task

    yield

    if warmup_task is not None and not warmup_task.done():
        warmup_task.cancel()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """
    Build the CareFinder API.

    Usage:
        app = create_app()
        uvicorn.run(app, host="0.0.0.0", port=8000)
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Healthcare resource matching and ranking engine",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(SuccessEnvelopeMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        app.include_router(router, prefix=settings.api_v1_prefix)

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health_check(catalog: Catalog = Depends(get_catalog)) -> dict:
        return {
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "collections": {
                name.value: len(catalog.get(name)) for name in catalog.names()
            },
        }

    return app


app = create_app()
