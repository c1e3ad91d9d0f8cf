"""FastAPI application entry point."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from farmtime.auth import require_identity
from farmtime.config import settings
from farmtime.database import Base, engine
from farmtime.log_config import setup_logging

# Import routers
from farmtime.routers import events, attendees, meals, todos, users

# Import all models so Base.metadata knows about them
import farmtime.models  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Farm Time",
    description="Event scheduling with RSVPs, potluck meal signups and shared todos",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers; everything under /api except health needs a signed-in user
protected = [Depends(require_identity)]
app.include_router(events.router, prefix="/api/events", tags=["Events"], dependencies=protected)
app.include_router(attendees.router, prefix="/api/events", tags=["Attendees"], dependencies=protected)
app.include_router(meals.router, prefix="/api/events", tags=["Meals"], dependencies=protected)
app.include_router(todos.router, prefix="/api/events", tags=["Todos"], dependencies=protected)
app.include_router(users.admin_router, prefix="/api/admin", tags=["Admin"], dependencies=protected)
app.include_router(users.auth_router, prefix="/auth", tags=["Auth"])


@app.exception_handler(OperationalError)
def storage_unavailable(request: Request, exc: OperationalError):
    logger.error("Storage unavailable during %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
