# sunlightmeter/sensors/simulated_bus.py
"""
TSL2591 bus simulator

Emulates a TSL2591 behind an smbus2-style interface by:
1. Keeping an in-memory register file (enable, control, device id) that the
   driver writes exactly as it would on real hardware.
2. Producing channel counts from a light "scene" scaled by the currently
   programmed gain and integration time, clipped at 0xFFFF like the real ADC.

The scene is a callable returning (full_rate, ir_rate): counts per 100ms at 1x
gain for channel 0 and channel 1.
"""
from __future__ import annotations
import logging
import random
import threading
from typing import Callable, Dict, List, Optional, Tuple

from . import constants as c

logger = logging.getLogger(__name__)

Scene = Callable[[], Tuple[float, float]]


def constant_scene(full_rate: float, ir_rate: float) -> Scene:
    def _scene() -> Tuple[float, float]:
        return full_rate, ir_rate
    return _scene


class SimulatedTSL2591Bus:
    """
    In-memory TSL2591 on an I2C bus.

    ``writes`` records every (address, register, value) write so callers can
    check the bytes that went over the bus. ``fail_reads`` makes the next N
    channel reads raise OSError.
    """

    def __init__(
        self,
        scene: Optional[Scene] = None,
        device_id: int = c.DEVICE_ID_VALUE,
        address: int = c.TSL2591_ADDR,
        jitter: float = 0.0,
        fail_reads: int = 0,
        seed: Optional[int] = None,
    ) -> None:
        self.scene = scene or constant_scene(400.0, 80.0)
        self.device_id = device_id
        self.address = address
        self.jitter = jitter
        self.fail_reads = fail_reads
        self.registers: Dict[int, int] = {
            c.REGISTER_ENABLE: c.ENABLE_POWEROFF,
            c.REGISTER_CONTROL: 0x00,
            c.REGISTER_DEVICE_ID: device_id,
        }
        self.writes: List[Tuple[int, int, int]] = []
        self.block_reads = 0
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    # --- helpers -----------------------------------------------------------

    def _register(self, i2c_addr: int, command: int) -> int:
        if i2c_addr != self.address:
            raise OSError(121, f"no device at 0x{i2c_addr:02X}")
        if command & c.COMMAND_BIT != c.COMMAND_BIT:
            raise OSError(121, f"command bit missing in 0x{command:02X}")
        return command & 0x1F

    @property
    def powered(self) -> bool:
        enable = self.registers[c.REGISTER_ENABLE]
        return bool(enable & c.ENABLE_POWERON) and bool(enable & c.ENABLE_AEN)

    def _counts(self) -> Tuple[int, int]:
        if not self.powered:
            return 0, 0
        control = self.registers[c.REGISTER_CONTROL]
        gain = c.Gain(control & 0x30)
        timing = c.IntegrationTime(control & 0x07)
        scale = c.GAIN_MULTIPLIER[gain] * c.INTEGRATION_TIME_MS[timing] / 100.0

        full_rate, ir_rate = self.scene()
        if self.jitter:
            wobble = 1.0 + self._rng.uniform(-self.jitter, self.jitter)
            full_rate *= wobble
            ir_rate *= wobble
        ch0 = min(c.MAX_COUNT, max(0, int(full_rate * scale)))
        ch1 = min(c.MAX_COUNT, max(0, int(ir_rate * scale)))
        return ch0, ch1

    # --- smbus2 surface ----------------------------------------------------

    def read_byte_data(self, i2c_addr: int, register: int) -> int:
        with self._lock:
            reg = self._register(i2c_addr, register)
            return self.registers.get(reg, 0x00)

    def write_byte_data(self, i2c_addr: int, register: int, value: int) -> None:
        with self._lock:
            reg = self._register(i2c_addr, register)
            self.writes.append((i2c_addr, register, value))
            self.registers[reg] = value & 0xFF

    def read_i2c_block_data(self, i2c_addr: int, register: int, length: int) -> List[int]:
        with self._lock:
            reg = self._register(i2c_addr, register)
            if self.fail_reads > 0:
                self.fail_reads -= 1
                raise OSError(5, "Input/output error")
            self.block_reads += 1
            if reg != c.REGISTER_CHAN0_LOW:
                return [self.registers.get(reg + i, 0x00) for i in range(length)]
            ch0, ch1 = self._counts()
            data = list(ch0.to_bytes(2, "little") + ch1.to_bytes(2, "little"))
            logger.debug("sim TSL2591 ch0=%s ch1=%s", ch0, ch1)
            return data[:length]
