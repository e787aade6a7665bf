# sunlightmeter/sensors/constants.py
"""
TSL2591 register map and protocol constants.

Every register access ORs COMMAND_BIT into the register address. The control
register packs the integration time code in the low nibble and the gain code
in the high nibble.
"""
from __future__ import annotations
from enum import IntEnum
from typing import Dict

TSL2591_ADDR = 0x29          # fixed 7-bit I2C address
COMMAND_BIT = 0xA0           # 1010 0000: bits 7 and 5 for 'command normal'
WORD_BIT = 0x20
BLOCK_BIT = 0x10

DEVICE_ID_VALUE = 0x50       # what REGISTER_DEVICE_ID reads on a real TSL2591

# Enable register bits
ENABLE_POWEROFF = 0x00
ENABLE_POWERON = 0x01
ENABLE_AEN = 0x02            # ALS enable
ENABLE_AIEN = 0x10           # ALS interrupt enable
ENABLE_NPIEN = 0x80          # no-persist interrupt enable
ENABLE_ALL = ENABLE_POWERON | ENABLE_AEN | ENABLE_AIEN | ENABLE_NPIEN

# Register map
REGISTER_ENABLE = 0x00
REGISTER_CONTROL = 0x01
REGISTER_PERSIST_FILTER = 0x0C
REGISTER_PACKAGE_PID = 0x11
REGISTER_DEVICE_ID = 0x12
REGISTER_DEVICE_STATUS = 0x13
REGISTER_CHAN0_LOW = 0x14
REGISTER_CHAN0_HIGH = 0x15
REGISTER_CHAN1_LOW = 0x16
REGISTER_CHAN1_HIGH = 0x17

CHANNEL_BLOCK_LENGTH = 4
MAX_COUNT = 0xFFFF

LUX_DF = 408.0               # lux coefficient


class Gain(IntEnum):
    LOW = 0x00    # 1x
    MED = 0x10    # 25x
    HIGH = 0x20   # 428x
    MAX = 0x30    # 9876x


class IntegrationTime(IntEnum):
    MS_100 = 0x00
    MS_200 = 0x01
    MS_300 = 0x02
    MS_400 = 0x03
    MS_500 = 0x04
    MS_600 = 0x05


GAIN_MULTIPLIER: Dict[Gain, float] = {
    Gain.LOW: 1.0,
    Gain.MED: 25.0,
    Gain.HIGH: 428.0,
    Gain.MAX: 9876.0,
}

INTEGRATION_TIME_MS: Dict[IntegrationTime, float] = {
    IntegrationTime.MS_100: 100.0,
    IntegrationTime.MS_200: 200.0,
    IntegrationTime.MS_300: 300.0,
    IntegrationTime.MS_400: 400.0,
    IntegrationTime.MS_500: 500.0,
    IntegrationTime.MS_600: 600.0,
}

GAIN_LABELS: Dict[Gain, str] = {
    Gain.LOW: "Low gain (1x)",
    Gain.MED: "Medium gain (25x)",
    Gain.HIGH: "High gain (428x)",
    Gain.MAX: "Max gain (9876x)",
}


def gain_from_name(name: str) -> Gain:
    """Look up a gain by its enum name, case-insensitive ('low', 'MED', ...)."""
    try:
        return Gain[name.strip().upper()]
    except KeyError:
        raise ValueError(f"unknown gain: {name!r}") from None


def integration_time_from_ms(ms: int) -> IntegrationTime:
    for code, value in INTEGRATION_TIME_MS.items():
        if int(value) == int(ms):
            return code
    raise ValueError(f"unsupported integration time: {ms}ms")
