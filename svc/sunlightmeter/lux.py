from __future__ import annotations
from .errors import Overflow
from .sensors.constants import (
    GAIN_MULTIPLIER,
    INTEGRATION_TIME_MS,
    LUX_DF,
    MAX_COUNT,
    Gain,
    IntegrationTime,
)


def counts_per_lux(gain: Gain, integration_time: IntegrationTime) -> float:
    return (INTEGRATION_TIME_MS[integration_time] * GAIN_MULTIPLIER[gain]) / LUX_DF


def calculate_lux(ch0: int, ch1: int, gain: Gain, integration_time: IntegrationTime) -> float:
    """
    Convert raw channel counts to illuminance using the TSL2591 datasheet formula.

    Raises Overflow when either channel is saturated. A dark channel 0 yields
    0.0 lux rather than dividing by zero.
    """
    if ch0 == MAX_COUNT or ch1 == MAX_COUNT:
        raise Overflow(ch0, ch1)
    if ch0 == 0:
        return 0.0

    cpl = counts_per_lux(gain, integration_time)
    return (float(ch0) - float(ch1)) * (1.0 - (float(ch1) / float(ch0))) / cpl


def visible(ch0: int, ch1: int) -> float:
    return max(float(ch0) - float(ch1), 0.0) / MAX_COUNT


def infrared(ch0: int, ch1: int) -> float:
    return max(float(ch1), 0.0) / MAX_COUNT


def full_spectrum(ch0: int, ch1: int) -> float:
    return max(float(ch0), 0.0) / MAX_COUNT
