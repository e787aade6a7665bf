from __future__ import annotations
import logging
import queue
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import smbus2

from . import config
from .errors import DeviceAbsent
from .job import SamplingJob
from .models import RangeConditions, Sample, SensorStatusResponse
from .recorder import Recorder
from .sensors.constants import (
    GAIN_LABELS,
    INTEGRATION_TIME_MS,
    gain_from_name,
    integration_time_from_ms,
)
from .sensors.interface import I2CBus
from .sensors.simulated_bus import SimulatedTSL2591Bus, constant_scene
from .sensors.tsl2591 import TSL2591, probe_tsl2591
from .state import fetch_latest_sample, fetch_samples, summarize_range

logger = logging.getLogger(__name__)

DEFAULT_RANGE = timedelta(hours=8)


def _as_utc(value: datetime) -> datetime:
    """Naive UTC datetime, matching the timestamps sqlite stores."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def classify_light_condition(full_sunlight_hours: float, recorded_hours: float) -> str:
    """Bucket the share of recorded time spent in full sunlight."""
    ratio = full_sunlight_hours / recorded_hours if recorded_hours > 0 else 0.0
    if ratio > 0.5:
        return "Full Sun"
    if ratio > 0.25:
        return "Partial Sun"
    if ratio > 0.1:
        return "Partial Shade"
    return "Shade"


class MeterService:
    def __init__(
        self,
        device: Optional[TSL2591],
        mode: str = "sim",
        interval_s: float = config.RECORD_INTERVAL_SECONDS,
        max_duration_s: float = config.MAX_JOB_DURATION_SECONDS,
        queue_size: int = config.SAMPLE_QUEUE_SIZE,
        recorder: Optional[Recorder] = None,
    ) -> None:
        self.mode = mode
        self.device = device
        self.samples: "queue.Queue[Sample]" = queue.Queue(maxsize=queue_size)
        self.job = SamplingJob(
            device,
            self.samples,
            interval_s=interval_s,
            max_duration_s=max_duration_s,
            log=logging.getLogger("sunlightmeter.job"),
        )
        self.recorder = recorder or Recorder(self.samples, log=logging.getLogger("sunlightmeter.recorder"))

    # lifecycle
    def start(self) -> None:
        self.recorder.start()

    def shutdown(self, timeout: float = 5.0) -> None:
        if self.device is not None:
            self.job.close(timeout)
        self.recorder.stop(timeout)

    # write
    def start_job(self) -> str:
        return self.job.start()

    def stop_job(self) -> None:
        self.job.stop()

    # read
    def sensor_status(self) -> SensorStatusResponse:
        if self.device is None:
            return SensorStatusResponse(connected=False)
        enabled, gain, timing = self.device.snapshot()
        last = self.job.last_job
        return SensorStatusResponse(
            connected=True,
            enabled=enabled,
            gain=GAIN_LABELS[gain],
            integration_ms=int(INTEGRATION_TIME_MS[timing]),
            job=self.job.current_job,
            last_job=last.info() if last else None,
        )

    def current_conditions(self) -> Optional[Dict[str, Any]]:
        return fetch_latest_sample()

    def list_samples(
        self,
        job_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        start = _as_utc(start) if start else None
        end = _as_utc(end) if end else None
        if start and end and start > end:
            raise ValueError("start must be before end")
        return fetch_samples(job_id=job_id, start=start, end=end, limit=limit, offset=offset)

    def range_conditions(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> RangeConditions:
        end = _as_utc(end) if end else datetime.now(timezone.utc).replace(tzinfo=None)
        start = _as_utc(start) if start else end - DEFAULT_RANGE
        if start > end:
            raise ValueError("start must be before end")
        summary = summarize_range(start, end)

        date_range = f"{start:%Y-%m-%d %H:%M:%S} - {end:%Y-%m-%d %H:%M:%S} UTC"
        if summary["average_lux"] == 0:
            return RangeConditions(date_range=date_range, light_condition="No Data in Range")

        recorded_hours = 0.0
        if summary["oldest"] and summary["newest"]:
            recorded_hours = (summary["newest"] - summary["oldest"]).total_seconds() / 3600
        full_sunlight_hours = summary["full_sun_minutes"] / 60
        return RangeConditions(
            date_range=date_range,
            average_lux=summary["average_lux"],
            recorded_hours=recorded_hours,
            full_sunlight_hours=full_sunlight_hours,
            light_condition=classify_light_condition(full_sunlight_hours, recorded_hours),
        )


def _open_bus(mode: str) -> I2CBus:
    if mode == "real":
        return smbus2.SMBus(config.I2C_BUS)
    return SimulatedTSL2591Bus(
        scene=constant_scene(config.SIM_FULL_RATE, config.SIM_IR_RATE),
        jitter=0.02,
    )


def build_service(mode: str = config.MODE) -> MeterService:
    """
    Connect to the lux sensor and assemble the service.

    A missing sensor is logged and leaves the service running with sensing
    disabled; start/stop then report the device as absent.
    """
    device: Optional[TSL2591] = None
    try:
        bus = _open_bus(mode)
        device = probe_tsl2591(
            bus,
            gain=gain_from_name(config.INITIAL_GAIN),
            integration_time=integration_time_from_ms(config.INITIAL_INTEGRATION_MS),
            settle_step_s=config.SETTLE_STEP_SECONDS,
            log=logging.getLogger("sunlightmeter.sensors.tsl2591"),
        )
    except DeviceAbsent as e:
        logger.error(f"Failed to connect to the TSL2591 sensor: {e}")
    except OSError as e:
        logger.error(f"Failed to open I2C bus {config.I2C_BUS}: {e}")

    return MeterService(device, mode=mode)
