import asyncio
import time
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager, suppress

from routers import orders, payments, notifications

# Import all models so every table is registered on Base.metadata
import models
from core.database import Base, engine, SessionLocal

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from middleware import RequestIDMiddleware, get_request_id, limiter

from core.logging_config import setup_logging
from core.config import settings
from core.exceptions import FreshCartError
from services.fulfillment_service import FulfillmentService
from utils.logger import get_logger, log_request

setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


def sweep_overdue_orders():
    db = SessionLocal()
    try:
        FulfillmentService.expire_overdue_orders(db)
    except Exception:
        logger.error("Auto-reject sweep failed", exc_info=True)
        db.rollback()
    finally:
        db.close()


async def auto_reject_sweep(interval_seconds: int):
    """
    Cancels pending orders whose seller approval deadline has passed.
    Lazy checks on every request cover correctness; this keeps seller
    dashboards and customer lists tidy between requests.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        await asyncio.to_thread(sweep_overdue_orders)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    sweeper = None
    if settings.AUTO_REJECT_SWEEP_SECONDS > 0:
        sweeper = asyncio.create_task(auto_reject_sweep(settings.AUTO_REJECT_SWEEP_SECONDS))

    logger.info("Application startup complete", extra={"event": "startup"})
    yield

    if sweeper:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="FreshCart Orders API",
    description="Order lifecycle backend for the FreshCart grocery marketplace",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    One log line per request with status code and duration.
    Runs inside RequestIDMiddleware, so the line carries the request id.
    """
    start_time = time.time()
    response = await call_next(request)
    duration = (time.time() - start_time) * 1000

    log_request(
        logger,
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration,
        client_ip=request.client.host if request.client else "unknown"
    )
    return response


app.add_middleware(RequestIDMiddleware)


@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


@app.exception_handler(FreshCartError)
async def freshcart_exception_handler(request: Request, exc: FreshCartError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail, "error": type(exc).__name__}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Logs anything unhandled with the request context and stack trace,
    and answers with a generic 500.
    """
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc

    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_id": get_request_id(request)
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "detail": "Internal server error"}
    )


app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(notifications.router)


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
