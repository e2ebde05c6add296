"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import SQLModel

from devotion_notify.api.notifications import router as notifications_router
from devotion_notify.db.session import get_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    # Import models to register them with SQLModel
    from devotion_notify.models import (  # noqa: F401
        DeliveryRecord,
        PushSubscriptionRecord,
        RecipientPreference,
        RunSummary,
        UserProfile,
    )
    SQLModel.metadata.create_all(get_engine())
    yield

app = FastAPI(
    title="Daily Spiritual Message Delivery API",
    description="Trigger and audit endpoints for scheduled daily message delivery",
    version="1.0.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(notifications_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
