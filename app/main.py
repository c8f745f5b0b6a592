# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Magic AI API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import MagicAIException, magic_ai_exception_handler
from app.routers import health, generate, tasks, credits, webhooks, api_keys, media
from app.auth import routes as auth_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Logs the effective configuration on startup; nothing to tear down since
    every handler is stateless.
    """
    logger.info(f"Starting Magic AI API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.FAL_KEY:
        logger.warning("FAL_KEY not set: only users with their own fal.ai key can generate")
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET not set: Stripe webhooks will be rejected")

    yield

    logger.info("Shutting down Magic AI API")


# Create FastAPI application
app = FastAPI(
    title="Magic AI API",
    description="""
## AI Image & Video Generation API

Generate images (Nano Banana Pro) and videos (Veo 3.1) through fal.ai,
paid with prepaid credits or with your own fal.ai key.

### How It Works

1. **Log in** - WhatsApp OTP: `POST /auth/otp/send`, then `POST /auth/otp/verify`
2. **Buy credits** - `POST /credits/checkout` opens a Stripe Checkout
3. **Generate** - `POST /generate/image` or `POST /generate/video`
4. **Browse** - `GET /media` lists everything you generated

Credits are only charged after a generation succeeds. Users with their own
valid fal.ai key (`PUT /api-keys/fal`) are never charged.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "WhatsApp OTP login and token checks"},
        {"name": "Generate", "description": "Image and video generation"},
        {"name": "Tasks", "description": "Track queued generations"},
        {"name": "Credits", "description": "Balance, packages and Stripe Checkout"},
        {"name": "Webhooks", "description": "Stripe payment notifications"},
        {"name": "API Keys", "description": "Bring your own provider keys"},
        {"name": "Media", "description": "Your generated media gallery"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(MagicAIException)
async def handle_magic_ai_exception(request: Request, exc: MagicAIException):
    """Handle custom Magic AI exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return await magic_ai_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(auth_routes.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(generate.router, prefix="/api/v1/generate", tags=["Generate"])
app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["Tasks"])
app.include_router(credits.router, prefix="/api/v1/credits", tags=["Credits"])
app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["Webhooks"])
app.include_router(api_keys.router, prefix="/api/v1/api-keys", tags=["API Keys"])
app.include_router(media.router, prefix="/api/v1/media", tags=["Media"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Magic AI API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
