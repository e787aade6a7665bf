from __future__ import annotations
import logging
import math
from typing import Optional, Sequence, Tuple

from .errors import Overflow, SaturatedAllGains, SunlightMeterError
from .lux import calculate_lux
from .sensors.constants import GAIN_LABELS, INTEGRATION_TIME_MS, Gain, IntegrationTime
from .sensors.tsl2591 import TSL2591

logger = logging.getLogger(__name__)

GAIN_ORDER: Sequence[Gain] = (Gain.LOW, Gain.MED, Gain.HIGH, Gain.MAX)
INTEGRATION_ORDER: Sequence[IntegrationTime] = (
    IntegrationTime.MS_600,
    IntegrationTime.MS_500,
    IntegrationTime.MS_400,
    IntegrationTime.MS_300,
    IntegrationTime.MS_200,
    IntegrationTime.MS_100,
)

DEFAULT_GAIN = Gain.LOW
DEFAULT_INTEGRATION_TIME = IntegrationTime.MS_600


class AutoGainCalibrator:
    """
    Finds a gain/integration combination that gets the sensor out of saturation.

    Gains are tried lowest first, and for each gain the integration times are
    tried longest first. The first combination that produces a finite,
    non-zero lux stays programmed on the device.
    """

    def __init__(self, device: TSL2591, log: Optional[logging.Logger] = None) -> None:
        self.device = device
        self._log = log or logger

    def calibrate(self) -> Tuple[Gain, IntegrationTime]:
        for gain in GAIN_ORDER:
            for timing in INTEGRATION_ORDER:
                self._log.debug(
                    "Attempting - Gain: %s, Integration Time: %dms",
                    GAIN_LABELS[gain],
                    int(INTEGRATION_TIME_MS[timing]),
                )
                if self._try(gain, timing):
                    self._log.info(
                        "Set - Gain: %s, Integration Time: %dms",
                        GAIN_LABELS[gain],
                        int(INTEGRATION_TIME_MS[timing]),
                    )
                    return gain, timing

        self._restore_defaults()
        raise SaturatedAllGains("All gain options are saturated")

    def _try(self, gain: Gain, timing: IntegrationTime) -> bool:
        try:
            self.device.set_gain(gain)
            self.device.set_timing(timing)
            ch0, ch1 = self.device.read_channels()
            lux = calculate_lux(ch0, ch1, gain, timing)
        except Overflow:
            return False
        except SunlightMeterError as e:
            self._log.debug("Calibration step failed: %s", e)
            return False
        return math.isfinite(lux) and lux != 0

    def _restore_defaults(self) -> None:
        try:
            self.device.set_gain(DEFAULT_GAIN)
            self.device.set_timing(DEFAULT_INTEGRATION_TIME)
        except SunlightMeterError as e:
            self._log.warning(f"Failed to restore default gain/timing: {e}")
