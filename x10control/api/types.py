"""
API-level type definitions.

This module contains types and enums that belong to the API layer:
- House codes and command codes, with their protocol nibbles
- The device-select translation tables
- Queue strategies for pending instructions
- Constants used by the API layer
"""

from enum import Enum, IntEnum
from typing import Optional, Self


class HouseCode(Enum):
    """An X10 house code A - P. The value is the protocol nibble in the upper four bits."""
    A = 0x60
    B = 0xE0
    C = 0x20
    D = 0xA0
    E = 0x10
    F = 0x90
    G = 0x50
    H = 0xD0
    I = 0x70
    J = 0xF0
    K = 0x30
    L = 0xB0
    M = 0x00
    N = 0x80
    O = 0x40
    P = 0xC0

    @property
    def index(self) -> int:
        """Dense index 0-15, used to array-index per-house state"""
        return self.value >> 4

    @classmethod
    def named(cls, name: str) -> Optional[Self]:
        return cls.__members__.get(name)

    def __str__(self) -> str:
        return self.name


class CommandCode(IntEnum):
    """An X10 command code. The value is the protocol nibble in the lower four bits."""
    ALL_UNITS_OFF = 0x00
    ALL_LIGHTS_ON = 0x01
    ON = 0x02
    OFF = 0x03
    DIM = 0x04
    BRIGHT = 0x05
    ALL_LIGHTS_OFF = 0x06
    EXTENDED_CODE = 0x07
    HAIL_REQ = 0x08
    HAIL_ACK = 0x09
    PRESET_DIM_1 = 0x0A
    PRESET_DIM_2 = 0x0B
    EXTENDED_DATA = 0x0C
    STATUS_ON = 0x0D
    STATUS_OFF = 0x0E
    STATUS_REQ = 0x0F

    @property
    def is_house_command(self) -> bool:
        """True if the command normally affects every device in a house, rather than the selection"""
        return self in (CommandCode.ALL_UNITS_OFF, CommandCode.ALL_LIGHTS_ON, CommandCode.ALL_LIGHTS_OFF)

    @property
    def camel_name(self) -> str:
        """e.g. allLightsOff, presetDim1"""
        first, *rest = self.name.lower().split("_")
        return first + "".join(part.capitalize() for part in rest)

    @property
    def description(self) -> str:
        """e.g. AllLightsOff, PresetDim1"""
        camel = self.camel_name
        return camel[0].upper() + camel[1:]

    @classmethod
    def named(cls, camel_name: str) -> Optional[Self]:
        for code in cls:
            if code.camel_name == camel_name:
                return code
        return None


class QueueStrategy(Enum):
    """How to place an instruction in a pending queue after another pending instruction"""
    APPEND = "append"
    DROP = "drop"
    REPLACE = "replace"


# Device-select nibble -> device number. Nibble 0x0 is device 13, nibble 0x1 is device 5, etc.
DEVICE_CODE: tuple[int, ...] = (13, 5, 3, 11, 15, 7, 1, 9, 14, 6, 4, 12, 16, 8, 2, 10)

# Device number -> device-select nibble. Device 1 is 0x6 (binary 0110). Index 0 is unused.
DEVICE_ADDR: tuple[int, ...] = (-1, 0x6, 0xE, 0x2, 0xA, 0x1, 0x9, 0x5, 0xD, 0x7, 0xF, 0x3, 0xB, 0x0, 0x8, 0x4, 0xC)


# API-level constants
class Const:
    """API-level constants"""
    # Protocol limits
    MIN_DEVICE = 1
    MAX_DEVICE = 16
    HOUSE_DEVICE = 0  # device number of a whole-house address
    MAX_REPEAT_COUNT = 22  # dim/bright repeats beyond this have no further effect
    MIN_LEVEL = 0
    MAX_LEVEL = 100
    MIN_EXTENDED_LEVEL = 1
    MAX_EXTENDED_LEVEL = 63

    # Extended code sub-command that sets the brightness level directly
    PRESET_DIM_EXTENDED_COMMAND = 0x31
    EXTENDED_DATA_LENGTH = 3

    # Capability catalog
    DEFAULT_ENVIRONMENT_FILE = "~/.x10.json"
