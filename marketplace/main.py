import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .domain.auth.router import router as auth_router
from .domain.customers.router import router as customers_router
from .domain.jobs.router import router as jobs_router
from .domain.messaging.notifier import ConnectionRegistry
from .domain.messaging.router import router as messaging_router
from .domain.messaging.router import ws_router
from .domain.payments.router import router as payments_router
from .domain.payments.stripe_service import StripeService
from .errors import AppError
from .storage import Storage, create_storage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if app.state.storage is None:
        app.state.storage = create_storage()
    if not app.state.gateway.is_available():
        logger.warning("⚠️ STRIPE_SECRET_KEY not set - payment endpoints will fail until configured")
    yield
    logger.info("Application shutting down...")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} - {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request data",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"❌ {request.method} {request.url.path} - Unhandled error: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    storage: Optional[Storage] = None,
    gateway: Optional[StripeService] = None,
    notifier: Optional[ConnectionRegistry] = None,
) -> FastAPI:
    """
    Build the application. Storage is chosen at startup from DATABASE_URL
    unless one is passed in.
    """
    app = FastAPI(title="Mechanic Marketplace API", version="1.0.0", lifespan=lifespan)
    app.state.storage = storage
    app.state.gateway = gateway or StripeService()
    app.state.notifier = notifier or ConnectionRegistry()

    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration_ms = (time.time() - start) * 1000
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} in {duration_ms:.0f}ms"
            )
        return response

    # CORS Configuration
    # Cookies are used for sessions, so origins must be explicit
    logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(auth_router)
    app.include_router(customers_router)
    app.include_router(jobs_router)
    app.include_router(payments_router)
    app.include_router(messaging_router)
    app.include_router(ws_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
