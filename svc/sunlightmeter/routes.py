from __future__ import annotations
import os
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse
from .models import (
    Conditions, ErrorResponse, HealthResponse, MessageResponse, RangeConditions,
    SensorStatusResponse, ServiceIdResponse, StartJobResponse,
)
from .service import MeterService
from .errors import AlreadyRunning, DeviceAbsent, NotRunning
from . import state


router = APIRouter()
api = APIRouter(prefix="/api/v1")


def get_service(request: Request) -> MeterService:
    return request.app.state.service


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service health status and current operation mode (sim or real)",
    tags=["Health"]
)
def health(service: MeterService = Depends(get_service)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", mode=service.mode)


@router.get("/id", response_model=ServiceIdResponse, tags=["Health"])
def service_id() -> ServiceIdResponse:
    return ServiceIdResponse(service_name="Sunlight Meter")


@api.post(
    "/start",
    response_model=StartJobResponse,
    status_code=status.HTTP_200_OK,
    summary="Start a sampling job",
    description="Power on the sensor and record a reading every interval until stopped or the job times out.",
    responses={
        200: {"description": "Job started"},
        409: {"model": ErrorResponse, "description": "A job is already running"},
        503: {"model": ErrorResponse, "description": "The sensor is not connected"}
    },
    tags=["Jobs"]
)
def start_job(service: MeterService = Depends(get_service)) -> StartJobResponse:
    """Start a sampling job."""
    try:
        job_id = service.start_job()
    except DeviceAbsent as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    return StartJobResponse(job_id=job_id)


@api.post(
    "/stop",
    response_model=MessageResponse,
    summary="Stop the sampling job",
    responses={
        409: {"model": ErrorResponse, "description": "No job is running"},
        503: {"model": ErrorResponse, "description": "The sensor is not connected"}
    },
    tags=["Jobs"]
)
def stop_job(service: MeterService = Depends(get_service)) -> MessageResponse:
    """Stop the running sampling job."""
    try:
        service.stop_job()
    except DeviceAbsent as e:
        raise HTTPException(status_code=503, detail=str(e))
    except NotRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MessageResponse(message="Sunlight Reading Stopped")


@api.get(
    "/status",
    response_model=SensorStatusResponse,
    summary="Sensor status",
    description="Whether the sensor is connected and enabled, its gain/integration settings and the active job",
    tags=["Sensor"]
)
def sensor_status(service: MeterService = Depends(get_service)) -> SensorStatusResponse:
    return service.sensor_status()


@api.get(
    "/current-conditions",
    response_model=Conditions,
    summary="Most recent stored reading",
    responses={404: {"model": ErrorResponse, "description": "No readings recorded yet"}},
    tags=["Results"]
)
def current_conditions(service: MeterService = Depends(get_service)) -> Conditions:
    row = service.current_conditions()
    if row is None:
        raise HTTPException(status_code=404, detail="no readings recorded")
    return Conditions(**row)


@api.get(
    "/samples",
    response_model=List[Conditions],
    summary="Stored readings",
    description="Stored readings newest first, optionally for a single job and/or a date range (UTC)",
    tags=["Results"]
)
def list_samples(
    job_id: Optional[str] = Query(default=None, description="Only readings from this job"),
    start: Optional[datetime] = Query(default=None, description="Only readings at or after this time (ISO 8601, UTC if no offset)"),
    end: Optional[datetime] = Query(default=None, description="Only readings at or before this time (ISO 8601, UTC if no offset)"),
    limit: int = Query(default=500, ge=1, le=1000, description="Maximum number of entries to return"),
    offset: int = Query(default=0, ge=0, description="Number of entries to skip"),
    service: MeterService = Depends(get_service),
) -> List[Conditions]:
    try:
        rows = service.list_samples(job_id=job_id, start=start, end=end, limit=limit, offset=offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [Conditions(**r) for r in rows]


@api.get(
    "/conditions",
    response_model=RangeConditions,
    summary="Light conditions over a date range",
    description="Average lux, recorded hours and hours of full sunlight between start and end (UTC, default last 8 hours)",
    tags=["Results"]
)
def range_conditions(
    start: Optional[datetime] = Query(default=None, description="Range start (ISO 8601, UTC if no offset)"),
    end: Optional[datetime] = Query(default=None, description="Range end (ISO 8601, UTC if no offset)"),
    service: MeterService = Depends(get_service),
) -> RangeConditions:
    try:
        return service.range_conditions(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@api.get(
    "/export",
    summary="Download the results database",
    responses={404: {"model": ErrorResponse, "description": "No results database yet"}},
    tags=["Results"]
)
def export_results() -> FileResponse:
    if not os.path.exists(state.DB_FILE):
        raise HTTPException(status_code=404, detail="no results database")
    return FileResponse(state.DB_FILE, filename="sunlightmeter.db", media_type="application/x-sqlite3")


router.include_router(api)
