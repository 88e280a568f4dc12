"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import Base, engine

# Import routers
from app.routers import auth, events, realtime

# Import all models so Base.metadata knows about them
from app.models.user import User      # noqa: F401
from app.models.event import Event    # noqa: F401
from app.models.rsvp import RSVP      # noqa: F401

from app.services.connection_registry import ConnectionRegistry
from app.services.credentials import CredentialService
from app.services.notifications import EmailNotifier

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event Management API",
    description="Real-time event management with role-based access control and admin approval",
    version="1.0.0",
)

# Process-wide collaborators, created once and handed to services per request.
app.state.credentials = CredentialService(settings)
app.state.registry = ConnectionRegistry()
app.state.notifier = EmailNotifier(settings)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(events.router, prefix="/events", tags=["Events"])
app.include_router(realtime.router, tags=["WebSocket"])


# Error responses are always {"error": "<message>"}
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "Validation error")
    return JSONResponse(
        status_code=400,
        content={"error": message, "details": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("Event Management API started")


@app.on_event("shutdown")
def on_shutdown():
    app.state.notifier.shutdown()


@app.get("/")
def index():
    return {
        "message": "Event Management API is running",
        "version": app.version,
        "endpoints": {
            "docs": "/docs",
            "websocket": "/ws",
            "auth": "/auth/*",
            "events": "/events/*",
        },
        "ws_connections": app.state.registry.count(),
    }


@app.get("/health")
def health_check():
    return {"status": "ok"}
