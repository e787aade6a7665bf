# sunlightmeter/sensors/tsl2591.py
from __future__ import annotations
import logging
import threading
import time
from typing import Optional, Tuple

from . import constants as c
from .constants import Gain, IntegrationTime
from .interface import I2CBus
from ..errors import DeviceAbsent, NotEnabled, ReadFailure

logger = logging.getLogger(__name__)


class TSL2591:
    """
    Register-level driver for one TSL2591 on an I2C bus.

    Holds the device's enabled/gain/timing state. Every operation that reads or
    changes that state runs under ``self.lock`` so no caller observes a
    half-applied configuration.
    """

    def __init__(
        self,
        bus: I2CBus,
        gain: Gain = Gain.LOW,
        integration_time: IntegrationTime = IntegrationTime.MS_300,
        settle_step_s: float = 0.2,
        address: int = c.TSL2591_ADDR,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.bus = bus
        self.address = address
        self.settle_step_s = settle_step_s
        self.enabled = False
        self.gain = gain
        self.integration_time = integration_time
        self.lock = threading.RLock()
        self._log = log or logger

    # --- low-level helpers -------------------------------------------------

    def _write(self, register: int, value: int) -> None:
        try:
            self.bus.write_byte_data(self.address, c.COMMAND_BIT | register, value)
        except OSError as e:
            raise ReadFailure(f"write to register 0x{register:02X} failed: {e}") from e

    def _read_block(self, register: int, length: int) -> bytes:
        try:
            data = self.bus.read_i2c_block_data(self.address, c.COMMAND_BIT | register, length)
        except OSError as e:
            raise ReadFailure(f"block read at register 0x{register:02X} failed: {e}") from e
        if len(data) != length:
            raise ReadFailure(f"short block read: expected {length} bytes, got {len(data)}")
        return bytes(data)

    def read_device_id(self) -> int:
        try:
            return self.bus.read_byte_data(self.address, c.COMMAND_BIT | c.REGISTER_DEVICE_ID)
        except OSError as e:
            raise ReadFailure(f"device id read failed: {e}") from e

    # --- power -------------------------------------------------------------

    def enable(self) -> None:
        with self.lock:
            if self.enabled:
                return
            self._write(c.REGISTER_ENABLE, c.ENABLE_ALL)
            self.enabled = True
            self._log.debug("TSL2591 enabled")

    def disable(self) -> None:
        with self.lock:
            if not self.enabled:
                return
            self._write(c.REGISTER_ENABLE, c.ENABLE_POWEROFF)
            self.enabled = False
            self._log.debug("TSL2591 disabled")

    # --- configuration -----------------------------------------------------

    def set_gain(self, gain: Gain) -> None:
        with self.lock:
            if not self.enabled:
                raise NotEnabled("sensor must be enabled")
            self._write(c.REGISTER_CONTROL, self.integration_time | gain)
            self.gain = Gain(gain)

    def set_timing(self, integration_time: IntegrationTime) -> None:
        with self.lock:
            if not self.enabled:
                raise NotEnabled("sensor must be enabled")
            self._write(c.REGISTER_CONTROL, integration_time | self.gain)
            self.integration_time = IntegrationTime(integration_time)

    def snapshot(self) -> Tuple[bool, Gain, IntegrationTime]:
        with self.lock:
            return self.enabled, self.gain, self.integration_time

    # --- measurement -------------------------------------------------------

    def read_channels(self) -> Tuple[int, int]:
        """
        Wait out the integration cycle and read both channels.

        Returns (channel0, channel1): full spectrum and infrared counts.
        """
        with self.lock:
            if not self.enabled:
                raise NotEnabled("sensor must be enabled")

            # one settle step per integration code above 100ms
            delay = int(self.integration_time) * self.settle_step_s
            if delay > 0:
                time.sleep(delay)

            data = self._read_block(c.REGISTER_CHAN0_LOW, c.CHANNEL_BLOCK_LENGTH)

        ch0 = int.from_bytes(data[0:2], "little")
        ch1 = int.from_bytes(data[2:4], "little")
        self._log.debug("Channel 0: %s, Channel 1: %s", ch0, ch1)
        return ch0, ch1


def probe_tsl2591(
    bus: I2CBus,
    gain: Gain = Gain.LOW,
    integration_time: IntegrationTime = IntegrationTime.MS_300,
    settle_step_s: float = 0.2,
    log: Optional[logging.Logger] = None,
) -> TSL2591:
    """
    Confirm a TSL2591 is on the bus, apply the initial gain/timing and leave it
    powered off until a job enables it.

    Raises DeviceAbsent if the device-ID register cannot be read or does not
    hold the TSL2591 id, or if configuring it fails. The device is left
    powered off either way.
    """
    tsl = TSL2591(bus, gain, integration_time, settle_step_s=settle_step_s, log=log)
    try:
        device_id = tsl.read_device_id()
    except ReadFailure as e:
        raise DeviceAbsent(f"Can't reach a TSL2591 at 0x{c.TSL2591_ADDR:02X}: {e}") from e
    if device_id != c.DEVICE_ID_VALUE:
        raise DeviceAbsent(
            f"Can't find a TSL2591 at 0x{c.TSL2591_ADDR:02X} (device id 0x{device_id:02X})"
        )

    try:
        tsl.enable()
        tsl.set_timing(integration_time)
        tsl.set_gain(gain)
    except ReadFailure as e:
        raise DeviceAbsent(f"Can't configure the TSL2591 at 0x{c.TSL2591_ADDR:02X}: {e}") from e
    finally:
        try:
            tsl.disable()
        except ReadFailure as e:
            (log or logger).warning("Failed to power off the TSL2591 after probing: %s", e)
    (log or logger).info(
        "TSL2591 found: %s, %dms integration",
        c.GAIN_LABELS[tsl.gain],
        int(c.INTEGRATION_TIME_MS[tsl.integration_time]),
    )
    return tsl
