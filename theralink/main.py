import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so every table is registered with Base before create_all
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.appointments.router import router as appointments_router
from .domain.dashboard.router import router as dashboard_router
from .domain.earnings.router import router as earnings_router
from .domain.messages.router import router as messages_router
from .domain.notifications.router import router as notifications_router
from .domain.onboarding.router import details_router as therapist_details_router
from .domain.onboarding.router import router as onboarding_router
from .domain.profiles.router import auth_router
from .domain.profiles.router import router as profiles_router
from .domain.reviews.router import router as reviews_router
from .domain.session_notes.router import router as session_notes_router
from .domain.therapists.router import admin_router as admin_therapists_router
from .domain.therapists.router import router as therapists_router
from .routes.contact import router as contact_router
from .routes.realtime import router as realtime_router
from .routes.upload import router as upload_router
from .security_headers import SecurityHeadersMiddleware
from .services.aggregator import AggregationError
from .services.change_feed import get_change_feed, get_subscription_registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("botocore").setLevel(logging.WARNING)

# Session commit hooks must be installed before the first request
get_change_feed()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("TheraLink API starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limited endpoints will return 503: {e}")

    yield
    closed = get_subscription_registry().close_all()
    logger.info(f"TheraLink API shutting down, closed {closed} realtime subscription(s)")


app = FastAPI(title="TheraLink API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(AggregationError)
async def aggregation_exception_handler(request: Request, exc: AggregationError):
    """A view's primary query failed: one user-visible error for the whole view"""
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors about the Authorization header to 401
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422, content={"detail": jsonable_errors(exc)}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry the raised ValueError, which is not JSON serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(therapists_router)
app.include_router(admin_therapists_router)
app.include_router(appointments_router)
app.include_router(session_notes_router)
app.include_router(messages_router)
app.include_router(notifications_router)
app.include_router(earnings_router)
app.include_router(reviews_router)
app.include_router(dashboard_router)
app.include_router(onboarding_router)
app.include_router(therapist_details_router)
app.include_router(upload_router)
app.include_router(contact_router)
app.include_router(realtime_router)


@app.get("/")
def root():
    return {"message": "TheraLink API is running"}


@app.get("/health")
def health():
    feed = get_change_feed()
    return {
        "status": "healthy",
        "realtime": {
            "subscriptions": feed.subscription_count(),
            "live_views": len(get_subscription_registry()),
        },
    }


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
