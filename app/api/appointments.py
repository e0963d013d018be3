import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.errors import DiscoveryFailedError, InputValidationError
from app.services.discovery_service import (
    DiscoveryOutcome,
    discovery_service,
    load_discovery_inputs,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])


class CheckResponse(BaseModel):
    status: DiscoveryOutcome
    message: str
    checked_at: datetime


class SnapshotResponse(BaseModel):
    status: DiscoveryOutcome
    summary: str
    date_count: int = 0
    total_slots: int = 0
    date_to_slots: dict[str, list[str]] = {}
    checked_at: datetime


@router.post("/check", response_model=CheckResponse)
async def check_appointments() -> CheckResponse | JSONResponse:
    try:
        credentials, preferences = load_discovery_inputs(settings)
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        event = await discovery_service.check_appointments(credentials, preferences)
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except DiscoveryFailedError as e:
        logger.error(f"Appointment check failed: {e}")
        failed = CheckResponse(
            status=DiscoveryOutcome.FAILED, message=str(e), checked_at=datetime.now()
        )
        return JSONResponse(status_code=502, content=failed.model_dump(mode="json"))

    if event is None:
        return CheckResponse(
            status=DiscoveryOutcome.NONE,
            message="No appointments available",
            checked_at=datetime.now(),
        )
    return CheckResponse(
        status=DiscoveryOutcome.FOUND, message=event.summary_message, checked_at=event.found_at
    )


@router.get("/last", response_model=SnapshotResponse)
async def last_result() -> SnapshotResponse:
    snapshot = discovery_service.last_snapshot
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No appointment check has completed yet")

    results = snapshot.results
    return SnapshotResponse(
        status=snapshot.outcome,
        summary=snapshot.message,
        date_count=results.date_count if results else 0,
        total_slots=results.total_slots if results else 0,
        date_to_slots={k: list(v) for k, v in results.date_to_slots.items()} if results else {},
        checked_at=snapshot.checked_at,
    )
