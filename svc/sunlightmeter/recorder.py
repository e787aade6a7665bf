from __future__ import annotations
import logging
import math
import queue
import threading
from typing import Callable, Optional

from .errors import NonFiniteSample
from .models import Sample
from .state import insert_sample

logger = logging.getLogger(__name__)

# put on the queue by stop() to end the consumer loop
_SHUTDOWN = object()

Store = Callable[..., None]


def format_row(sample: Sample) -> dict:
    """Render a sample in the storage format: fixed-point lux, scientific channels."""
    if not math.isfinite(sample.lux):
        raise NonFiniteSample(f"Lux is invalid ({sample.lux}), skipping record")
    return {
        "job_id": sample.job_id,
        "lux": f"{sample.lux:.5f}",
        "full_spectrum": f"{sample.full_spectrum:.5e}",
        "visible": f"{sample.visible:.5e}",
        "infrared": f"{sample.infrared:.5e}",
        "read_failed": sample.read_failed,
    }


class Recorder:
    """
    Single consumer that drains the sample queue into the results database.

    Samples are stored in the order they were queued. A sample that cannot be
    stored is logged and dropped; the loop keeps consuming.
    """

    def __init__(
        self,
        samples: "queue.Queue",
        store: Store = insert_sample,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.samples = samples
        self.store = store
        self._log = log or logger
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._loop, name="recorder", daemon=True)
        self._thread.start()
        self._log.info("Monitoring for new Sunlight Messages...")

    def stop(self, timeout: Optional[float] = None) -> None:
        if not self.running:
            return
        self.samples.put(_SHUTDOWN)
        self._thread.join(timeout)

    def _loop(self) -> None:
        while True:
            item = self.samples.get()
            try:
                if item is _SHUTDOWN:
                    return
                self.record(item)
            finally:
                self.samples.task_done()

    def record(self, sample: Sample) -> bool:
        """Store one sample. Returns False if it was dropped."""
        self._log.info(f"- JobID: {sample.job_id}, Lux: {sample.lux:.5f}")
        try:
            row = format_row(sample)
        except NonFiniteSample as e:
            self._log.warning(str(e))
            return False
        try:
            self.store(**row)
        except Exception as e:
            self._log.error(f"Failed to record sample for job {sample.job_id}: {e}")
            return False
        return True
