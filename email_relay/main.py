import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import redis
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import SupabaseAuthClient
from .config import CORS_HEADERS, Settings
from .database import create_db_engine, create_session_factory, init_db
from .domain.activities.repository import (
    ActivityStore,
    DisabledActivityStore,
    SqlActivityStore,
    SupabaseActivityStore,
)
from .domain.activities.router import router as activities_router
from .domain.activities.service import ActivityRecorder
from .domain.email.provider import ResendClient
from .domain.email.router import router as email_router
from .errors import EmailRelayError
from .rate_limiter import SendRateLimiter, connect_redis
from .security_headers import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Reduce verbosity of third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_activity_store(settings: Settings, auth_client: SupabaseAuthClient, app: FastAPI):
    if settings.activity_store == "disabled":
        logger.info("Activity logging disabled")
        return DisabledActivityStore()

    if settings.activity_store == "database":
        if not settings.database_url:
            raise ValueError("DATABASE_URL is required when ACTIVITY_STORE=database")
        engine = create_db_engine(settings.database_url)
        app.state.db_engine = engine
        return SqlActivityStore(create_session_factory(engine))

    return SupabaseActivityStore(auth_client)


def create_app(
    settings: Optional[Settings] = None,
    auth_transport: Optional[httpx.AsyncBaseTransport] = None,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None,
    activity_store: Optional[ActivityStore] = None,
    redis_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """
    Build the relay application.

    Collaborators are created here from `settings`; transports and stores can
    be passed in to substitute fakes (tests use httpx.MockTransport).
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Email relay starting up...")
        engine = getattr(app.state, "db_engine", None)
        if engine is not None:
            try:
                init_db(engine)
                logger.info("Database tables created successfully")
            except Exception as e:
                logger.error(f"Failed to create database tables: {e}")
        if not settings.resend_api_key:
            logger.warning("⚠️ RESEND_API_KEY not set - send requests will fail with 500")
        yield
        logger.info("Email relay shutting down...")

    app = FastAPI(title="Email Relay API", version="1.0.0", lifespan=lifespan)

    auth_client = SupabaseAuthClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.http_timeout_seconds,
        transport=auth_transport,
    )

    if activity_store is None:
        activity_store = build_activity_store(settings, auth_client, app)

    if redis_client is None and settings.email_rate_limit > 0 and settings.redis_url:
        redis_client = connect_redis(settings.redis_url)

    app.state.settings = settings
    app.state.auth_client = auth_client
    app.state.email_provider = (
        ResendClient(
            settings.resend_api_key,
            api_url=settings.resend_api_url,
            timeout=settings.http_timeout_seconds,
            transport=provider_transport,
        )
        if settings.resend_api_key
        else None
    )
    app.state.activity_recorder = ActivityRecorder(activity_store)
    app.state.rate_limiter = SendRateLimiter(
        settings.email_rate_limit, settings.email_rate_limit_window, redis_client
    )

    @app.exception_handler(EmailRelayError)
    async def relay_error_handler(request: Request, exc: EmailRelayError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {exc.status_code}: {exc.error}")
        else:
            logger.warning(f"{request.method} {request.url.path} - {exc.status_code}: {exc.error}")
        headers = {**CORS_HEADERS, **(exc.headers or {})}
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
        """Render router-level 405s in the relay's result shape"""
        if exc.status_code != 405:
            return await http_exception_handler(request, exc)
        logger.warning(f"Unsupported method {request.method} on {request.url.path}")
        headers = {**CORS_HEADERS, **(exc.headers or {})}
        return JSONResponse(
            status_code=405,
            content={"success": False, "error": "Method not allowed"},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed input as 400 in the relay's result shape"""
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        errors = [{"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "details": errors},
            headers=CORS_HEADERS,
        )

    if settings.security_headers_enabled:
        app.add_middleware(
            SecurityHeadersMiddleware,
            exclude_paths=["/health", "/docs", "/openapi.json"],
            is_production=settings.is_production,
        )
        logger.info("Security headers enabled")
    else:
        logger.warning("Security headers DISABLED - only use in development!")

    # No CORSMiddleware: pre-flights are answered by the routers with their fixed header sets
    app.include_router(email_router)
    app.include_router(activities_router)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app
