"""Daily message trigger and audit API endpoints."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlmodel import SQLModel, select

from devotion_notify.api.deps import DBSession, TriggerClaims, Worker
from devotion_notify.errors import DataStoreError, RecipientDataError
from devotion_notify.models.notification import DAILY_MESSAGE_TYPE, DeliveryRecord, DeliveryRecordResponse
from devotion_notify.models.run_summary import RunSummary, RunSummaryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications/daily", tags=["Daily Messages"])


class RunRequest(SQLModel):
    """Schema for triggering a delivery cycle."""

    now: datetime | None = None
    automated: bool = True


class SendTestRequest(SQLModel):
    """Schema for a manual test send."""

    user_id: UUID


class SendTestResponse(SQLModel):
    """Schema for a test send result."""

    user_id: UUID
    success: bool
    title: str
    channels: dict[str, Any]
    error: str | None = None
    record_id: UUID | None = None


@router.post("/run", response_model=RunSummaryResponse)
def run_daily_messages_endpoint(
    claims: TriggerClaims,
    worker: Worker,
    request: RunRequest | None = None,
) -> RunSummaryResponse:
    """Run one delivery cycle and return its summary."""
    request = request or RunRequest()
    try:
        summary = worker.run_cycle(now=request.now, automated=request.automated)
    except DataStoreError as e:
        logger.error(f"Daily message run aborted: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "datastore_unavailable", "message": str(e)},
        )
    return RunSummaryResponse.model_validate(summary)


@router.post("/test", response_model=SendTestResponse)
def send_test_message_endpoint(
    claims: TriggerClaims,
    worker: Worker,
    request: SendTestRequest,
) -> SendTestResponse:
    """Send a test message to a single user, ignoring the delivery window."""
    try:
        result = worker.send_test(request.user_id)
    except RecipientDataError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "recipient_not_found", "message": e.message},
        )
    return SendTestResponse(**result.to_dict())


@router.get("/runs", response_model=list[RunSummaryResponse])
def list_runs_endpoint(
    claims: TriggerClaims,
    session: DBSession,
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of runs"),
) -> list[RunSummaryResponse]:
    """List the most recent run summaries."""
    runs = session.exec(
        select(RunSummary).order_by(RunSummary.run_time.desc()).limit(limit)
    ).all()
    return [RunSummaryResponse.model_validate(r) for r in runs]


@router.get("/users/{user_id}/records", response_model=list[DeliveryRecordResponse])
def list_user_records_endpoint(
    claims: TriggerClaims,
    session: DBSession,
    user_id: UUID,
    include_tests: bool = Query(default=False, description="Include test sends"),
    limit: int = Query(default=30, ge=1, le=100, description="Maximum number of records"),
) -> list[DeliveryRecordResponse]:
    """List a user's daily message delivery records, newest first."""
    query = (
        select(DeliveryRecord)
        .where(DeliveryRecord.user_id == user_id)
        .where(DeliveryRecord.notification_type == DAILY_MESSAGE_TYPE)
    )
    if not include_tests:
        query = query.where(DeliveryRecord.is_test == False)  # noqa: E712
    records = session.exec(query.order_by(DeliveryRecord.created_at.desc()).limit(limit)).all()
    return [DeliveryRecordResponse.model_validate(r) for r in records]
