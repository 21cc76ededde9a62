from contextlib import asynccontextmanager
from collections import defaultdict
import asyncio
import time
import uuid as _uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storyslides import __version__
from storyslides.core.config import settings
from storyslides.core.logger_config import setup_logger
from storyslides.api.router import router as api_router
from storyslides.dependencies.supabase import close_async_db_pool
from storyslides.exceptions import (
    AuthorizationError,
    ConfigurationError,
    InvalidRequestError,
    PersistenceError,
    StorySlidesError,
)

logger = setup_logger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
UNMETERED_PATHS = {"/healthz", "/readyz", "/health"}


def _error(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _validation_message(errors: list) -> str:
    """Name the missing request fields by their wire names."""
    missing = []
    invalid = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        (missing if err.get("type") == "missing" else invalid).append(name)
    if missing:
        return f"Missing required fields: {', '.join(dict.fromkeys(missing))}"
    return f"Invalid fields: {', '.join(dict.fromkeys(invalid))}"


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as {"error": <message>}."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"Rejected {request.method} {request.url.path}: {_validation_message(errors)}")
        return _error(
            _validation_message(errors),
            status.HTTP_400_BAD_REQUEST,
            details=jsonable_encoder(errors),
        )

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(request: Request, exc: InvalidRequestError):
        return _error(exc.message, status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning(f"Forbidden {request.method} {request.url.path}: {exc.message}")
        return _error(exc.message, status.HTTP_403_FORBIDDEN)

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error(f"Persistence failure at {exc.stage or 'unknown'} for {request.url.path}: {exc.message}")
        return _error(exc.message, status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.exception_handler(StorySlidesError)
    async def handle_service_error(request: Request, exc: StorySlidesError):
        logger.error(f"Unhandled service error for {request.url.path}: {exc.message}")
        return _error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_async_db_pool()


def create_app() -> FastAPI:
    app = FastAPI(title="StorySlides API", version=__version__, lifespan=lifespan)

    # Fail fast on missing critical env in production
    try:
        settings.validate_required_settings()
    except ConfigurationError as e:
        if not settings.DEBUG:
            raise
        # In DEBUG, continue to ease local development
        logger.warning(e.message)

    register_exception_handlers(app)

    # Rate limiting middleware
    rate_limit_store = defaultdict(list)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """Per-client sliding one-minute window, a per-request timeout, and a JSON 500 for unhandled errors."""
        if settings.RATE_LIMIT_PER_MINUTE > 0 and request.url.path not in UNMETERED_PATHS:
            client_ip = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
            if not client_ip and request.client:
                client_ip = request.client.host
            client_id = client_ip or "unknown"

            now = time.time()
            minute_ago = now - 60
            rate_limit_store[client_id] = [t for t in rate_limit_store[client_id] if t > minute_ago]

            if len(rate_limit_store[client_id]) >= settings.RATE_LIMIT_PER_MINUTE:
                logger.warning(f"Rate limit exceeded for {client_id}")
                return _error(
                    f"Rate limit exceeded. Max {settings.RATE_LIMIT_PER_MINUTE} requests per minute.",
                    status.HTTP_429_TOO_MANY_REQUESTS,
                )

            rate_limit_store[client_id].append(now)

        try:
            return await asyncio.wait_for(
                call_next(request),
                timeout=settings.REQUEST_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.error(f"Request timeout for {request.url.path}")
            return _error(
                f"Request timeout after {settings.REQUEST_TIMEOUT_SECONDS} seconds",
                status.HTTP_504_GATEWAY_TIMEOUT,
            )
        except Exception as e:
            # Answered here, inside CORSMiddleware, so the reply keeps CORS headers
            logger.exception(f"Unhandled error for {request.method} {request.url.path}: {e}")
            return _error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(_uuid.uuid4())
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("X-Request-ID", req_id)
        # HSTS (only if not DEBUG)
        if not settings.DEBUG:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
        return response

    # Added last so it wraps everything, including rate-limit and timeout replies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not settings.cors_allow_all,
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storyslides.main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)
