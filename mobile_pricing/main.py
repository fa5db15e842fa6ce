from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from mobile_pricing import __version__
from mobile_pricing.api.errors import (
    internal_error_handler,
    pricing_error_handler,
    validation_error_handler,
)
from mobile_pricing.api.middleware import BodySizeLimitMiddleware, RequestIdMiddleware
from mobile_pricing.api.routes import router
from mobile_pricing.catalog import ProductCatalog
from mobile_pricing.constants import MAX_REQUEST_BODY_BYTES
from mobile_pricing.engine import PricingEngine, PricingError
from mobile_pricing.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and graceful shutdown."""
    logger.info(
        "startup",
        extra={
            "event": "startup",
            "engine_version": app.state.engine.engine_version,
            "synced_at": app.state.catalog.synced_at,
        },
    )
    yield
    logger.info("shutdown", extra={"event": "shutdown"})


def create_app(root_dir: Path | None = None) -> FastAPI:
    """Create the pricing API bound to the products document under ``root_dir``."""
    configure_logging()

    app = FastAPI(
        title="Device Plan Pricing API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.catalog = ProductCatalog(root_dir=root_dir)
    app.state.engine = PricingEngine(engine_version=__version__)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        BodySizeLimitMiddleware,
        max_body_bytes=MAX_REQUEST_BODY_BYTES,
    )
    app.include_router(router)

    app.add_exception_handler(PricingError, cast(Any, pricing_error_handler))
    app.add_exception_handler(
        RequestValidationError,
        cast(Any, validation_error_handler),
    )
    app.add_exception_handler(Exception, cast(Any, internal_error_handler))

    return app


app = create_app()
