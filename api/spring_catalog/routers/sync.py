"""Sync trigger, cancellation, status and progress stream."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from spring_catalog.models.error import ErrorDetail
from spring_catalog.models.sync import PhaseResult, SyncProgressEvent, SyncRunAccepted, SyncStatus
from spring_catalog.services.comprehensive_sync_service import (
    ComprehensiveSync,
    SyncAlreadyRunningError,
    UnknownPhaseError,
)

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def get_sync_service(request: Request) -> ComprehensiveSync:
    return request.app.state.sync_service


@router.post("/sync", status_code=202, response_model=SyncRunAccepted, responses={409: {"model": ErrorDetail}})
async def trigger_sync(service: ComprehensiveSync = Depends(get_sync_service)) -> SyncRunAccepted:
    """Start a full sync in the background. 409 while another run holds the lock."""
    try:
        run_id = service.start()
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return SyncRunAccepted(run_id=run_id)


@router.post(
    "/sync/phases/{phase}",
    response_model=PhaseResult,
    responses={404: {"model": ErrorDetail}, 409: {"model": ErrorDetail}},
)
async def trigger_phase(phase: str, service: ComprehensiveSync = Depends(get_sync_service)) -> PhaseResult:
    """Run one phase synchronously and return its result."""
    try:
        return await asyncio.to_thread(service.run_phase, phase)
    except UnknownPhaseError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post("/sync/cancel")
async def cancel_sync(service: ComprehensiveSync = Depends(get_sync_service)) -> dict:
    return {"cancelled": service.cancel()}


@router.get("/sync/status", response_model=SyncStatus)
async def sync_status(service: ComprehensiveSync = Depends(get_sync_service)) -> SyncStatus:
    return SyncStatus(
        running=service.is_running(),
        current_run_id=service.current_run_id,
        last_result=service.last_result,
    )


@router.get("/sync/phases")
async def list_phases(service: ComprehensiveSync = Depends(get_sync_service)) -> dict:
    return {"phases": service.phase_names()}


@router.get("/sync/progress/latest", response_model=SyncProgressEvent, responses={404: {"model": ErrorDetail}})
async def latest_progress(service: ComprehensiveSync = Depends(get_sync_service)) -> SyncProgressEvent:
    event = service.progress.latest()
    if event is None:
        raise HTTPException(status_code=404, detail="No sync progress recorded")
    return event


@router.get("/sync/progress")
async def stream_progress(service: ComprehensiveSync = Depends(get_sync_service)) -> StreamingResponse:
    """Server-Sent Events: one `progress` event per phase, closed after the completion event."""
    subscription = service.progress.subscribe()

    async def events():
        try:
            while True:
                event = await asyncio.to_thread(subscription.get, KEEPALIVE_SECONDS)
                if event is None:
                    if subscription.closed:
                        break
                    yield ": keepalive\n\n"
                    continue
                yield f"event: progress\ndata: {event.model_dump_json()}\n\n"
                if event.completed:
                    break
        finally:
            subscription.unsubscribe()

    return StreamingResponse(events(), media_type="text/event-stream")
