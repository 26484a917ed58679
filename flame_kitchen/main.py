"""
FastAPI Application Entry Point

Flame Kitchen restaurant ordering backend.
Serves the customer, POS, kitchen and admin frontends over one REST API
and one WebSocket endpoint.

Endpoints:
    - /api/auth, /api/menu, /api/orders, /api/payments, /api/webhooks
    - /api/day-session, /api/admin, /api/staff, /api/kitchen
    - /api/settings, /api/upload, /api/chat
    - /uploads/<file>: uploaded images
    - /ws: real-time events
    - GET /health: system health check
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from flame_kitchen.api import routers
from flame_kitchen.api.deps import get_user_for_token
from flame_kitchen.core.config import get_settings, setup_logging
from flame_kitchen.database import async_session_maker, engine, get_db, init_db
from flame_kitchen.models import utcnow
from flame_kitchen.schemas import HealthResponse
from flame_kitchen.services.payment import get_payment_service
from flame_kitchen.services.realtime import JOINABLE_ROOMS, manager
from flame_kitchen.services.system_settings import get_paystack_keys

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

upload_path = Path(settings.upload_directory)
upload_path.mkdir(parents=True, exist_ok=True)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""

    # Startup
    logger.info("=" * 60)
    logger.info(f"🔥 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    async with async_session_maker() as db:
        keys = await get_paystack_keys(db)
        await db.commit()
    payment_service = get_payment_service(keys.secret_key, keys.webhook_secret)
    logger.info(f"✅ Payment Service: {payment_service.provider_name}")

    if not settings.is_development:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend for the customer, POS, kitchen and admin apps. "
        "Runs with a mock payment gateway until Paystack keys are configured."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=str(upload_path)), name="uploads")

for router in routers:
    app.include_router(router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🔥 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Report liveness. A failing database reports ``degraded``."""
    status = "ok"
    try:
        await db.execute(select(1))
    except Exception as e:
        status = "degraded"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(status=status, timestamp=utcnow())


# =============================================================================
# WEBSOCKET
# =============================================================================

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Real-time event stream.

    A valid ``token`` joins the user's role and user rooms; without one
    the client is connected anonymously. Clients join the kitchen or POS
    room by sending ``{"event": "join:kitchen"}`` or ``{"event": "join:pos"}``.
    """
    async with async_session_maker() as db:
        user = await get_user_for_token(db, token)

    if user is not None:
        await manager.connect(websocket, user_id=user.id, role=user.role.value)
        logger.info(f"WebSocket connected: user {user.id} ({user.role.value})")
    else:
        await manager.connect(websocket)
        logger.debug("WebSocket connected anonymously")

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring malformed WebSocket frame")
                continue
            event = frame.get("event") if isinstance(frame, dict) else None
            room = JOINABLE_ROOMS.get(event)
            if room is None:
                logger.debug(f"Ignoring WebSocket event: {event}")
                continue
            manager.join(websocket, room)
            await websocket.send_json({"event": "room:joined", "data": {"room": room}})
    except WebSocketDisconnect:
        logger.debug("WebSocket disconnected")
    finally:
        manager.disconnect(websocket)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Errors are always ``{"error": ...}``; structured details pass through as-is."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.debug(f"Validation error on {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content={"error": "Validation error", "errors": errors})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=400, content={"error": "Duplicate entry"})


@app.exception_handler(NoResultFound)
async def not_found_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Record not found"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    content = {"error": "Internal Server Error"}
    if settings.debug:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)
