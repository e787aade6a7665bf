from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, conint

ChannelCount = conint(ge=0, le=0xFFFF)


class Sample(BaseModel):
    """One sensor reading produced by a sampling job tick."""
    model_config = ConfigDict(frozen=True)

    job_id: str = Field(description="ID of the job that produced this sample")
    ch0: ChannelCount = Field(default=0, description="Channel 0 raw count (full spectrum)")
    ch1: ChannelCount = Field(default=0, description="Channel 1 raw count (infrared)")
    lux: float = Field(default=0.0, description="Calibrated illuminance in lux")
    visible: float = Field(default=0.0, description="Visible light, normalized 0..1")
    infrared: float = Field(default=0.0, description="Infrared light, normalized 0..1")
    full_spectrum: float = Field(default=0.0, description="Full spectrum light, normalized 0..1")
    read_failed: bool = Field(default=False, description="True for the placeholder emitted after a failed read")


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class JobInfo(BaseModel):
    id: str = Field(description="Job identifier (uuid4)")
    status: JobStatus = Field(description="Current job status")
    start_time: float = Field(description="Unix timestamp when the job started")
    deadline: float = Field(description="Unix timestamp after which the job stops on its own")


class StartJobResponse(BaseModel):
    job_id: str = Field(description="ID of the job that was started")
    message: str = Field(default="Sunlight Reading Started")


class MessageResponse(BaseModel):
    message: str


class SensorStatusResponse(BaseModel):
    """Connection and configuration state of the light sensor."""
    connected: bool = Field(description="Whether a TSL2591 answered the startup probe")
    enabled: bool = Field(default=False, description="Whether the sensor is powered on")
    gain: Optional[str] = Field(default=None, description="Current gain setting")
    integration_ms: Optional[int] = Field(default=None, description="Current integration time in ms")
    job: Optional[JobInfo] = Field(default=None, description="Active job, if any")
    last_job: Optional[JobInfo] = Field(default=None, description="Most recently finished job")


class Conditions(BaseModel):
    """A stored sample as read back from the results database."""
    id: int
    job_id: str
    lux: float
    full_spectrum: float
    visible: float
    infrared: float
    read_failed: bool = False
    created_at: str = Field(description="UTC timestamp assigned by the database")


class RangeConditions(BaseModel):
    """Summary of the light recorded between two timestamps."""
    date_range: str
    average_lux: float = 0.0
    recorded_hours: float = 0.0
    full_sunlight_hours: float = 0.0
    light_condition: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status (always 'ok' if service is running)")
    mode: str = Field(description="Current operation mode: 'sim' (simulated sensor) or 'real' (I2C)")


class ServiceIdResponse(BaseModel):
    service_name: str


class ErrorResponse(BaseModel):
    """Standard error response format."""
    detail: str = Field(description="Error message describing what went wrong")
