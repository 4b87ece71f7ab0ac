from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from fastapi.responses import JSONResponse
from app.core.database import session_manager, aget_db
from app.core.exceptions import ProgressError, progress_error_handler
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.bookings import router as bookings_router
from app.api.v1.endpoints.milestones import router as milestones_router
from app.api.v1.endpoints.tasks import router as tasks_router
from app.api.v1.endpoints.progress import router as progress_router
from app.api.v1.endpoints.payments import router as payments_router
from app.api.v1.endpoints.webhooks import router as webhooks_router

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
import logging
from contextlib import asynccontextmanager
from app.core.config import settings
from app.utils.rate_limit import limiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async context manager for app lifespan events"""

    try:
        logger.info("🚀 Starting bookings API...")

        logger.info("🔌 Initializing database connection pool...")
        await session_manager.init()
        logger.info("✅ Database connection pool ready")

    except Exception as e:
        logger.critical(f"🔥 Application startup failed: {str(e)}")
        raise

    try:
        logger.info("🏁 Bookings API startup complete")
        yield
    finally:
        try:
            logger.info("🔌 Closing database connections...")
            await session_manager.close()
            logger.info("✅ Database connections closed cleanly")
        except Exception as e:
            logger.error(f"⚠️ Error during shutdown: {str(e)}")
            raise
        finally:
            logger.info("👋 Application shutdown complete")


app = FastAPI(
    title="Business Services Bookings API",
    description="Bookings, milestones, tasks and payments for the services marketplace",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ProgressError, progress_error_handler)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    max_age=3600,
    same_site="none" if settings.ENVIRONMENT == "production" else "lax",
    https_only=True if settings.ENVIRONMENT == "production" else False
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logging.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
    )

@app.get("/", tags=["Health Check"])
async def health_check(db: AsyncSession = Depends(aget_db)):
    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "Bookings API",
            "database": "connected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "service": "Bookings API",
            "database": "disconnected",
            "error": str(e)
        }


app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(milestones_router, prefix="/api/v1", tags=["Milestones"])
app.include_router(tasks_router, prefix="/api/v1", tags=["Tasks"])
app.include_router(progress_router, prefix="/api/v1", tags=["Progress"])
app.include_router(payments_router, prefix="/api/v1", tags=["Payments"])
app.include_router(webhooks_router, prefix="/api/v1", tags=["Webhooks"])

logger.info(f"✅ Loaded {len(app.routes)} routes")
