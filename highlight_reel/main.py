import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from highlight_reel.api import highlight_reels
from highlight_reel.config import get_settings
from highlight_reel.constants.error_codes import get_error_spec
from highlight_reel.exceptions import HighlightReelError
from highlight_reel.models.database import get_engine, init_db
from highlight_reel.schemas.envelope import ErrorInfo, ErrorResponse
from highlight_reel.service import HighlightReelService

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    service: HighlightReelService | None = getattr(app.state, "reel_service", None)
    owns_engine = service is None
    if service is None:
        if settings.database_auto_create:
            await init_db()
        service = HighlightReelService.from_settings(settings)
        app.state.reel_service = service
    await service.start()
    logger.info(f"[REEL] {settings.app_name} {settings.app_version} started ({settings.environment})")
    yield
    # Shutdown
    await service.stop()
    if owns_engine:
        await get_engine().dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error_code(status_code: int) -> str:
    mapping = {
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "INTERNAL_ERROR")


def _error_response(status_code: int, error: ErrorInfo, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ErrorResponse(detail=error.message, error=error)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
        headers=headers,
    )


@app.exception_handler(HighlightReelError)
async def highlight_reel_exception_handler(request: Request, exc: HighlightReelError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[REEL] {request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return _error_response(exc.status_code, exc.to_error_info())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Keep FastAPI's ``detail`` list and add the structured error next to it."""
    spec = get_error_spec("VALIDATION_ERROR")

    # Build a human-readable message from validation errors
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"

    error = ErrorInfo(
        code="VALIDATION_ERROR",
        message=message,
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            {"detail": errors, "error": error.model_dump(exclude_none=True)}
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error_code = _http_error_code(exc.status_code)
    spec = get_error_spec(error_code)
    error = ErrorInfo(
        code=error_code,
        message=str(exc.detail),
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(exc.status_code, error, headers=getattr(exc, "headers", None))


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    spec = get_error_spec("INTERNAL_ERROR")
    error = ErrorInfo(
        code="INTERNAL_ERROR",
        message="Internal server error",
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(500, error)


# Routers
app.include_router(highlight_reels.router, prefix="/api", tags=["highlight-reels"])

# Finished reels are plain files; serve them directly
app.mount(
    settings.reel_public_prefix,
    StaticFiles(directory=settings.reel_output_dir, check_dir=False),
    name="reels",
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version, "git_hash": settings.git_hash}
