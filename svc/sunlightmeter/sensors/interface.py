# sunlightmeter/sensors/interface.py
from __future__ import annotations
from typing import List, Protocol


class I2CBus(Protocol):
    """
    The subset of smbus2.SMBus the TSL2591 driver needs.

    smbus2.SMBus satisfies this directly; SimulatedTSL2591Bus implements the
    same calls against an in-memory register file. Implementations raise
    OSError on bus I/O failure, as smbus2 does.
    """

    def read_byte_data(self, i2c_addr: int, register: int) -> int:
        ...

    def write_byte_data(self, i2c_addr: int, register: int, value: int) -> None:
        ...

    def read_i2c_block_data(self, i2c_addr: int, register: int, length: int) -> List[int]:
        ...
