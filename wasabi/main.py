import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wasabi.api.router import api_router
from wasabi.config import Settings, get_settings
from wasabi.database import build_engine, build_session_factory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    settings.validate_config()
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    logger.info(f"Using upload directory: {settings.upload_dir}")
    logger.info(f"Allowed origins: {', '.join(settings.cors_origins)}")
    yield
    if app.state.engine is not None:
        await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Discord-authenticated uploads for the Wasabi soundboard",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Settings are read-only after this point; components receive them
    # through dependencies instead of importing a global.
    app.state.settings = settings
    # No engine without DATABASE_URL; validate_config reports it at startup.
    app.state.engine = None
    app.state.session_factory = None
    if settings.database_url:
        app.state.engine = build_engine(settings.database_url, echo=settings.database_echo)
        app.state.session_factory = build_session_factory(app.state.engine)

    # Configure CORS - only listed origins are echoed back
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.include_router(api_router, prefix="/api/v1")

    # Global exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"]})

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Validation error",
                "errors": errors,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

        # Don't expose internal paths or secrets to the caller
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred. Please try again later.",
            },
        )

    return app


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings.validate_config()
    except RuntimeError as e:
        logger.error("Invalid configuration: %s", e)
        raise SystemExit(1) from None

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()
