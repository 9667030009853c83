"""
API Router: Voice Platform Webhooks.

Receives end-of-call reports, acknowledges them right away and hands the
call to the processor as a detached task.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from fieldsync.logging_config import get_logger
from fieldsync.schemas.call import END_OF_CALL_REPORT, CallRecord, message_type
from fieldsync.workers.call_processor import CallProcessor

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


class WebhookAck(BaseModel):
    status: str
    record_id: Optional[str] = None
    message: str = ""


def get_processor(request: Request) -> CallProcessor:
    """The processor created in the app lifespan."""
    return request.app.state.processor


@router.post("/call-completed", status_code=status.HTTP_202_ACCEPTED, response_model=WebhookAck)
async def call_completed(
    response: Response,
    payload: dict[str, Any] = Body(...),
    processor: CallProcessor = Depends(get_processor),
) -> WebhookAck:
    """Accept an end-of-call report and reconcile it in the background."""
    kind = message_type(payload)
    if kind and kind != END_OF_CALL_REPORT:
        logger.debug("webhook_ignored", message_type=kind)
        response.status_code = status.HTTP_200_OK
        return WebhookAck(status="ignored", message=f"Ignored message type: {kind}")

    try:
        record = CallRecord.from_webhook_payload(payload)
    except ValueError as e:
        logger.warning("webhook_rejected", error=str(e))
        raise HTTPException(status_code=400, detail=str(e)) from e

    processor.schedule(record)
    logger.info("webhook_accepted", record_id=record.record_id, call_id=record.metadata.call_id)
    return WebhookAck(status="accepted", record_id=record.record_id, message="Processing started")
