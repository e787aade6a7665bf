from __future__ import annotations
import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from .calibrator import AutoGainCalibrator
from .errors import (
    AlreadyRunning,
    DeviceAbsent,
    NotRunning,
    Overflow,
    SaturatedAllGains,
    SunlightMeterError,
)
from .lux import calculate_lux, full_spectrum, infrared, visible
from .models import JobInfo, JobStatus, Sample
from .sensors.tsl2591 import TSL2591

logger = logging.getLogger(__name__)

MAX_JOB_DURATION_S = 8 * 60 * 60
RECORD_INTERVAL_S = 30.0


@dataclass
class Job:
    id: str
    start_time: float
    deadline: float
    status: JobStatus = JobStatus.RUNNING

    def info(self) -> JobInfo:
        return JobInfo(id=self.id, status=self.status, start_time=self.start_time, deadline=self.deadline)


class SamplingJob:
    """
    Lifecycle of the timed sampling job: Idle -> Running -> Cancelled/Expired -> Idle.

    ``start`` spawns one worker thread that reads the sensor on a fixed-rate
    ticker and puts a Sample on ``samples`` for every tick. Only one job runs at
    a time. ``stop`` only signals the worker; it does not wait for it.
    """

    def __init__(
        self,
        device: Optional[TSL2591],
        samples: "queue.Queue[Sample]",
        interval_s: float = RECORD_INTERVAL_S,
        max_duration_s: float = MAX_JOB_DURATION_S,
        calibrator: Optional[AutoGainCalibrator] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.device = device
        self.samples = samples
        self.interval_s = interval_s
        self.max_duration_s = max_duration_s
        self._log = log or logger
        if calibrator is None and device is not None:
            calibrator = AutoGainCalibrator(device, log=self._log)
        self.calibrator = calibrator

        self._status_lock = threading.Lock()
        self._status = JobStatus.IDLE
        self._job: Optional[Job] = None
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self.last_job: Optional[Job] = None

    # --- state -------------------------------------------------------------

    @property
    def status(self) -> JobStatus:
        with self._status_lock:
            return self._status

    @property
    def current_job(self) -> Optional[JobInfo]:
        with self._status_lock:
            return self._job.info() if self._job else None

    # --- lifecycle ---------------------------------------------------------

    def start(self) -> str:
        """Start a new job and return its id without waiting for the first reading."""
        if self.device is None:
            raise DeviceAbsent("The sensor is not connected")

        with self._status_lock:
            if self._status is not JobStatus.IDLE:
                raise AlreadyRunning("The sensor is already started")
            now = time.time()
            job = Job(id=str(uuid.uuid4()), start_time=now, deadline=now + self.max_duration_s)
            cancel = threading.Event()
            self._status = JobStatus.RUNNING
            self._job = job
            self._cancel = cancel

        try:
            self.device.enable()
        except SunlightMeterError as e:
            # the loop keeps going and records failed reads until the bus recovers
            self._log.error(f"Failed to enable the sensor for job {job.id}: {e}")

        deadline_at = time.monotonic() + self.max_duration_s
        thread = threading.Thread(
            target=self._run,
            args=(job, cancel, deadline_at),
            name=f"sampling-{job.id[:8]}",
            daemon=True,
        )
        self._thread = thread
        thread.start()
        self._log.info(f"It's going to be a bright day! Job {job.id} started")
        return job.id

    def stop(self) -> None:
        """Signal the running job to stop and power the sensor down."""
        if self.device is None:
            raise DeviceAbsent("The sensor is not connected")

        with self._status_lock:
            if self._status is not JobStatus.RUNNING:
                raise NotRunning("The sensor is already stopped")
            self._status = JobStatus.CANCELLED
            job = self._job
            cancel = self._cancel
            if job is not None:
                job.status = JobStatus.CANCELLED

        if cancel is not None:
            cancel.set()
        try:
            self.device.disable()
        except SunlightMeterError as e:
            self._log.warning(f"Failed to disable the sensor: {e}")
        self._log.info(f"Job {job.id if job else '?'} cancelled")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread to exit. Returns False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def close(self, timeout: Optional[float] = None) -> None:
        if self.status is JobStatus.RUNNING:
            try:
                self.stop()
            except NotRunning:
                # expired between the status check and stop()
                pass
        self.join(timeout)

    # --- worker ------------------------------------------------------------

    def _run(self, job: Job, cancel: threading.Event, deadline_at: float) -> None:
        exit_status = JobStatus.CANCELLED
        next_tick = time.monotonic()
        try:
            while True:
                if cancel.is_set():
                    exit_status = JobStatus.CANCELLED
                    break
                if time.monotonic() >= deadline_at:
                    exit_status = JobStatus.EXPIRED
                    break

                self._tick(job.id, cancel)

                now = time.monotonic()
                next_tick = max(next_tick + self.interval_s, now)
                timeout = min(next_tick, deadline_at) - now
                if timeout > 0:
                    cancel.wait(timeout)
        finally:
            self._finish(job, exit_status)

    def _tick(self, job_id: str, cancel: threading.Event) -> None:
        device = self.device
        try:
            with device.lock:
                ch0, ch1 = device.read_channels()
                _, gain, timing = device.snapshot()
        except SunlightMeterError as e:
            if cancel.is_set():
                return
            self._log.warning(f"The sensor failed to get luminosity: {e}")
            self._emit(Sample(job_id=job_id, read_failed=True))
            return

        try:
            lux = calculate_lux(ch0, ch1, gain, timing)
        except Overflow as e:
            self._log.warning(f"The sensor failed to calculate lux: {e}")
            self._recalibrate()
            return

        self._emit(
            Sample(
                job_id=job_id,
                ch0=ch0,
                ch1=ch1,
                lux=lux,
                visible=visible(ch0, ch1),
                infrared=infrared(ch0, ch1),
                full_spectrum=full_spectrum(ch0, ch1),
            )
        )

    def _recalibrate(self) -> None:
        self._log.info("Attempting to set new optimal sensor gain")
        try:
            self.calibrator.calibrate()
        except SaturatedAllGains as e:
            self._log.warning(f"The sensor failed to determine new optimal gain: {e}")
        else:
            self._log.info("The sensor has been reconfigured with a new optimal gain")

    def _emit(self, sample: Sample) -> None:
        # blocks while the recorder is behind and the queue is full
        self.samples.put(sample)

    def _finish(self, job: Job, exit_status: JobStatus) -> None:
        with self._status_lock:
            if self._job is job and self._status is JobStatus.RUNNING:
                self._status = exit_status
            job.status = exit_status

        try:
            self.device.disable()
        except SunlightMeterError as e:
            self._log.warning(f"Failed to disable the sensor: {e}")

        with self._status_lock:
            self.last_job = job
            if self._job is job:
                self._job = None
                self._cancel = None
                self._status = JobStatus.IDLE

        if exit_status is JobStatus.EXPIRED:
            self._log.info(f"Job {job.id} reached its maximum duration, stopping sensor")
        else:
            self._log.info(f"Job {job.id} cancelled, stopping sensor")
