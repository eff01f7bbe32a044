"""FastAPI app: thread discovery/review routes and matching config routes."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from thread_matcher.api.config_routes import router as config_router
from thread_matcher.api.thread_routes import router as thread_router
from thread_matcher.discovery.container import Services, build_services
from thread_matcher.errors import (
    InvalidConversationIdError,
    InvalidTransitionError,
    ThreadLinkNotFoundError,
)
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.api")

_ERROR_STATUS = {
    InvalidConversationIdError: 400,
    ThreadLinkNotFoundError: 404,
    InvalidTransitionError: 409,
}


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
        logger.info("api.lifespan.services_built")
    yield
    await app.state.services.aclose()
    logger.info("api.lifespan.shutdown")


def _register_error_handlers(app: FastAPI) -> None:
    for exc_type, status_code in _ERROR_STATUS.items():

        async def _handler(request: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            logger.info(
                "api.request.rejected",
                path=request.url.path,
                status_code=status_code,
                error_type=type(exc).__name__,
            )
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(exc_type, _handler)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create the FastAPI app. Pass services to inject them (tests); otherwise the
    lifespan builds them from environment config.
    """
    app = FastAPI(title="Thread Matcher", version="0.1.0", lifespan=_lifespan)
    app.state.services = services

    _register_error_handlers(app)
    app.include_router(thread_router)
    app.include_router(config_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
