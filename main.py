"""
FastAPI Application Entry Point

Integrates:
  - WAHA inbound webhook
  - Outbound send / broadcast / admin / automation webhooks
  - REST API (/api/*)
  - Health checks
  - Middleware for logging & error handling

Run: uvicorn main:app --reload --host 0.0.0.0 --port 3001
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from agent.health import get_health_checker
from api.errors import validation_exception_handler
from api.routes import router as api_router
from config import Config
from infra import InfraBootstrap, bootstrap_infrastructure
from transport.waha import WAHAClient
from webhook import admin_router, automation_router, outbound_router, waha_router

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan: startup and shutdown handlers.
    """
    # Startup
    infra = bootstrap_infrastructure()
    logger.info("=" * 60)
    logger.info("Masjid WhatsApp Gateway starting up...")
    logger.info(f"Environment: {Config.ENVIRONMENT}")
    logger.info(f"Infrastructure: {infra!r}")
    for name in Config.missing_integrations():
        logger.warning(f"Not configured: {name}")
    logger.info("=" * 60)

    channel = infra.get_channel()
    if isinstance(channel, WAHAClient):
        # Gateway may come up after us; a failure here is not fatal
        result = await channel.initialize()
        if not result.success:
            logger.warning(f"WAHA session not initialized: {result.error}")

    yield

    # Shutdown
    logger.info("Masjid WhatsApp Gateway shutting down...")
    await infra.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Masjid WhatsApp Gateway",
    description="WAHA-backed WhatsApp automation for masjid announcements, FAQ and prayer times",
    version="2.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict this in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)


# Middleware for logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    logger.debug(f"{request.method} {request.url.path}")
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"Request error: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


# Include routers
app.include_router(waha_router)
app.include_router(outbound_router)
app.include_router(admin_router)
app.include_router(automation_router)
app.include_router(api_router)


# Health check endpoints
@app.get("/health")
async def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "Masjid WhatsApp Gateway",
    }


@app.get("/health/live")
async def health_live():
    """Live health check (Kubernetes liveness probe)."""
    checker = get_health_checker()
    return checker.to_dict(checker.check_live())


@app.get("/health/ready")
async def health_ready():
    """Readiness health check (Kubernetes readiness probe)."""
    checker = get_health_checker()
    status = checker.check_ready(InfraBootstrap.current())
    return JSONResponse(
        content=checker.to_dict(status),
        status_code=200 if status.ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Masjid WhatsApp Gateway",
        "version": "2.0.0",
        "status": "running",
        "endpoints": {
            "waha_webhook": "POST /webhook/waha",
            "send_message": "POST /webhook/send-message",
            "send_image": "POST /webhook/send-image",
            "broadcast": "POST /webhook/broadcast",
            "admin": "POST /webhook/admin",
            "n8n": "POST /webhook/n8n",
            "prayer_notification": "POST /webhook/prayer-notification",
            "status_webhook": "POST /webhook/status",
            "api_status": "GET /api/status",
            "session_status": "GET /api/session/status/{sessionName}",
            "screenshot": "GET /api/screenshot/{sessionName}",
            "prayer": "GET /api/prayer/{city}",
            "ai_chat": "POST /api/ai-chat",
            "faq": "GET /api/faq",
            "sheets_test": "GET /api/sheets/test",
            "message": "POST /api/message",
            "health": "GET /health",
            "health_live": "GET /health/live",
            "health_ready": "GET /health/ready",
        },
        "configuration": {
            "session": Config.WA_SESSION_NAME,
            "openrouter_model": Config.OPENROUTER_MODEL,
            "prayer_api": Config.PRAYER_API_BASE,
            "google_sheets_configured": bool(Config.GOOGLE_SHEETS_API_KEY and Config.GOOGLE_SHEETS_ID),
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=Config.PORT,
        reload=Config.ENVIRONMENT == "development",
    )
