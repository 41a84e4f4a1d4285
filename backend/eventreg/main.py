"""
Event Registration API - Main Application Entry Point

Registration and ticket checkout for a single event:
- Pending registrations created from the signup form
- Stripe PaymentIntents for the embedded payment element
- Signed Stripe webhooks as the authoritative payment signal
- Token-protected admin list and check-in
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eventreg.api.middleware import RequestLoggingMiddleware
from eventreg.api.router import api_router
from eventreg.core.config import get_settings
from eventreg.core.errors import AppError, ConfigurationError, StorageError, ValidationError, field_errors
from eventreg.core.logging import get_logger, setup_logging
from eventreg.core.metrics import metrics_endpoint
from eventreg.services.payment_gateway import reset_payment_gateway
from eventreg.storage import reset_storage

settings = get_settings()
logger = get_logger(__name__)

HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        storage_mode=settings.STORAGE_MODE,
        webhooks_enabled=settings.webhooks_enabled,
    )
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("stripe_secret_key_missing", message="PaymentIntent creation will fail")
    if not settings.webhooks_enabled:
        logger.warning("webhooks_disabled", message="/checkout/confirm will mark registrations paid")

    yield

    # Cleanup
    await reset_storage()
    reset_payment_gateway()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event registration and Stripe checkout API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS (also answers preflight OPTIONS for every route)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Stripe-Signature"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, (ConfigurationError, StorageError)):
        # Operator-facing: the client only sees the generic message
        logger.error("server_error", code=exc.code, error=exc.message, cause=repr(exc.__cause__))
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(details=field_errors(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": str(exc.detail),
            "code": HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        },
        headers=getattr(exc, "headers", None),
    )


# Routes
app.include_router(api_router)
app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
