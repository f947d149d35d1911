"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (pairing, webhook, static page)
- Manages application lifecycle: sessions, LID table, OTP monitor
- No business logic should be written here
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from contextlib import asynccontextmanager
from pathlib import Path
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.services.identity_service import identity_resolver
from app.services.otp_monitor import otp_monitor
from app.services.session_manager import session_manager
from app.api import pairing, webhook

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting Kami OTP Bot (Multi-Session)...")

    try:
        validate_settings()
        logger.info("✅ Configuration validated")

        await connect_to_mongo()
        await create_indexes()

        await identity_resolver.load()
        await session_manager.start_all_sessions()

        if settings.OTP_MONITOR_ENABLED:
            otp_monitor.start()
        else:
            logger.info("OTP monitor disabled by configuration")

        logger.info(f"🌐 Server ready on :{settings.PORT} ({settings.ENVIRONMENT})")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info("🛑 Shutting down...")

    try:
        await otp_monitor.stop()
        await session_manager.disconnect_all()
        await close_mongo_connection()
        logger.info("👋 Shut down cleanly")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="Kami OTP Bot",
    description="Relays panel OTPs to WhatsApp channels through linked sessions",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url=None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(pairing.router, tags=["Pairing"])
app.include_router(webhook.router, tags=["Webhook"])


def _static_file(name: str) -> FileResponse:
    path = Path(settings.STATIC_DIR) / name
    if not path.is_file():
        raise ResourceNotFoundError(f"{name} not found")
    return FileResponse(path)


@app.get("/", include_in_schema=False)
async def serve_html():
    return _static_file("index.html")


@app.get("/pic.png", include_in_schema=False)
async def serve_picture():
    return _static_file("pic.png")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Reports database connectivity and session/monitor state.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0",
        "checks": {}
    }

    db_healthy = await check_database_health()
    health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
    if not db_healthy:
        health_status["status"] = "unhealthy"

    health_status["checks"]["active_sessions"] = len(await session_manager.active_sessions())
    health_status["checks"]["linked_identities"] = len(identity_resolver)

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    if await check_database_health():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"}
    )


@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
