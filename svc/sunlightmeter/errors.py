from __future__ import annotations


class SunlightMeterError(Exception):
    """Base class for every error raised by the sunlight meter core."""


class DeviceAbsent(SunlightMeterError):
    """No TSL2591 answered the startup probe."""


class NotEnabled(SunlightMeterError):
    """An operation that needs a powered sensor was attempted while disabled."""


class AlreadyRunning(SunlightMeterError):
    """A sampling job is already active."""


class NotRunning(SunlightMeterError):
    """Stop was requested with no sampling job running."""


class ReadFailure(SunlightMeterError):
    """I/O error on the I2C bus."""


class Overflow(SunlightMeterError):
    """One of the channels is saturated at 0xFFFF."""

    def __init__(self, ch0: int, ch1: int) -> None:
        super().__init__(f"Overflow: Channel 0: {ch0}, Channel 1: {ch1}")
        self.ch0 = ch0
        self.ch1 = ch1


class SaturatedAllGains(SunlightMeterError):
    """Calibration tried every gain/integration combination without a usable reading."""


class NonFiniteSample(SunlightMeterError):
    """A sample carries a NaN or infinite lux value and cannot be stored."""
