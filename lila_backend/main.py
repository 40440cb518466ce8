"""FastAPI application entry point.

This module initialises the FastAPI app, configures logging, CORS and
error handlers, and registers the API routes.  The ``uvicorn`` ASGI
server can point to ``lila_backend.main:app``, or the ``lila-backend``
console script can be used, which reads host and port from the
application config.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config.app_config import AppConfig, get_app_config
from .controllers.chat_controller import router as chat_router
from .controllers.generate_controller import router as generate_router
from .models.generate_response import HealthResponse
from .utils.error_handler import (
    LilaError,
    http_exception_handler,
    lila_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .utils.logger import setup_logging


def create_app(app_config: AppConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application."""
    app_config = app_config or get_app_config()
    setup_logging(app_config)

    app = FastAPI(title="Lila Chat API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LilaError, lila_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(chat_router)
    app.include_router(generate_router)

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        """Simple health check endpoint."""
        logger.debug("Health check invoked")
        return HealthResponse()

    return app


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    app_config = get_app_config()
    logger.info("Server running on port {}", app_config.app_port)
    uvicorn.run(
        "lila_backend.main:app",
        host=app_config.app_host,
        port=app_config.app_port,
        log_config=None,
    )


# Create an application instance for ASGI servers
app = create_app()
