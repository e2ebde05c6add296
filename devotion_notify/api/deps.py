"""API dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session

from devotion_notify.config import Settings, get_settings
from devotion_notify.db.session import get_session
from devotion_notify.errors import ConfigurationError
from devotion_notify.workers.daily_message_worker import (
    DailyMessageWorker,
    build_daily_message_worker,
)

security = HTTPBearer()

# Claim carried by tokens minted for schedulers and operators
TRIGGER_ROLE = "service_role"


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def verify_trigger_token(
    settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> dict:
    """Verify the bearer token of a scheduler or operator trigger."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not settings.TRIGGER_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="TRIGGER_SECRET is not configured",
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.TRIGGER_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise credentials_exception

    if payload.get("role") != TRIGGER_ROLE:
        raise credentials_exception

    return payload


TriggerClaims = Annotated[dict, Depends(verify_trigger_token)]


def get_daily_message_worker(settings: AppSettings) -> DailyMessageWorker:
    """Build the delivery worker, failing with 500 on missing configuration."""
    try:
        return build_daily_message_worker(settings)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "configuration_error", "message": str(e)},
        )


Worker = Annotated[DailyMessageWorker, Depends(get_daily_message_worker)]
