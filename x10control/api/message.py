"""
X10 message codec.

A message is one unit transmitted on the powerline: either an address (select
a device) or a function (a command applied to the current selection). The
variants here form a closed set; every property that depends on the variant is
written as an exhaustive match, so adding a variant fails type checking at each
place that has to handle it.

Binary payloads are treated as untrusted. Nothing in this module raises on a
malformed payload: a payload with an unexpected shape degrades to the generic
CommandMessage for its command code.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING, assert_never

if TYPE_CHECKING:
    from .environment import Environment
    from .models import Address

from .types import HouseCode, CommandCode, DEVICE_ADDR, Const
from ..utils import round_half_away, clamp


@dataclass(frozen=True)
class _MessageBase:
    house: HouseCode

    @property
    def requires_address(self) -> bool:
        """True if an address message must be sent just before this message"""
        match self:
            case CommandMessage(code=code):
                return not code.is_house_command
            case ExtendedMessage():
                # An extended message carries its own device nibble, but omitting
                # the address makes CM11A-class transceivers unstable
                return True
            case AddressMessage() | BrightMessage() | DimMessage() | PresetDimMessage():
                return True
            case _:
                assert_never(self)

    @property
    def sets_level_directly(self) -> bool:
        """True if this message sets a brightness level, rather than stepping it with bright/dim"""
        match self:
            case ExtendedMessage() | PresetDimMessage():
                return True
            case AddressMessage() | BrightMessage() | DimMessage() | CommandMessage():
                return False
            case _:
                assert_never(self)

    @property
    def level(self) -> Optional[int]:
        """The level (or level delta, for bright and dim) this message results in, if any"""
        match self:
            case AddressMessage() | CommandMessage():
                return None
            case BrightMessage(repeat_count=count):
                return level_delta_from_repeat_count(count)
            case DimMessage(repeat_count=count):
                return -level_delta_from_repeat_count(count)
            case ExtendedMessage():
                if not self.is_set_level:
                    return None
                return level_from_extended_code(self.data[1])
            case PresetDimMessage(preset_house=preset_house, code=code):
                return preset_level_for(preset_house, code)
            case _:
                assert_never(self)

    @property
    def power(self) -> Optional[bool]:
        """The power state this message results in, if any"""
        match self:
            case AddressMessage() | BrightMessage() | DimMessage() | PresetDimMessage():
                return None
            case CommandMessage(code=code):
                if code not in (CommandCode.ON, CommandCode.OFF):
                    return None
                return code == CommandCode.ON
            case ExtendedMessage():
                if not self.is_set_level:
                    return None
                return self.data[1] > 0
            case _:
                assert_never(self)

    def __str__(self) -> str:
        match self:
            case AddressMessage(device=device):
                return f"{self.house}{device}"
            case BrightMessage(repeat_count=count):
                return f"{self.house}-Bright({count})"
            case DimMessage(repeat_count=count):
                return f"{self.house}-Dim({count})"
            case CommandMessage(code=code):
                return f"{self.house}-{code.description}"
            case ExtendedMessage(data=data):
                return f"{self.house}-Extended [{', '.join(f'0x{b:02X}' for b in data)}]"
            case PresetDimMessage(code=code):
                level = self.level
                return f"{self.house}-{level if level is not None else code.description}"
            case _:
                assert_never(self)


@dataclass(frozen=True)
class AddressMessage(_MessageBase):
    device: int


@dataclass(frozen=True)
class BrightMessage(_MessageBase):
    repeat_count: int = 1

    def __post_init__(self):
        object.__setattr__(self, "repeat_count", clamp(self.repeat_count, 0, Const.MAX_REPEAT_COUNT))


@dataclass(frozen=True)
class DimMessage(_MessageBase):
    repeat_count: int = 1

    def __post_init__(self):
        object.__setattr__(self, "repeat_count", clamp(self.repeat_count, 0, Const.MAX_REPEAT_COUNT))


@dataclass(frozen=True)
class CommandMessage(_MessageBase):
    code: CommandCode


@dataclass(frozen=True)
class ExtendedMessage(_MessageBase):
    """
    Extended code with three data bytes:
    [house | device-select nibble, data byte, sub-command]
    """
    data: bytes

    @property
    def is_set_level(self) -> bool:
        return len(self.data) == Const.EXTENDED_DATA_LENGTH and self.data[-1] == Const.PRESET_DIM_EXTENDED_COMMAND


@dataclass(frozen=True)
class PresetDimMessage(_MessageBase):
    """A preset dim level, expressed as the house code and command that stand for it in the preset dim table"""
    preset_house: HouseCode
    code: CommandCode


Message = AddressMessage | BrightMessage | DimMessage | CommandMessage | ExtendedMessage | PresetDimMessage


# ============================
# ENCODING
# ============================

def encode(house: HouseCode, command: CommandCode, data: bytes | list[int] = b"") -> Message:
    """Build the most specific message for a command and its payload bytes."""
    if isinstance(data, list):
        data = bytes([d & 0xFF for d in data])
    if len(data) == 0:
        return CommandMessage(house=house, code=command)
    match command:
        case CommandCode.BRIGHT if len(data) == 1:
            return BrightMessage(house=house, repeat_count=data[0])
        case CommandCode.DIM if len(data) == 1:
            return DimMessage(house=house, repeat_count=data[0])
        case CommandCode.EXTENDED_CODE if len(data) == Const.EXTENDED_DATA_LENGTH:
            return ExtendedMessage(house=house, data=data)
        case _:
            return CommandMessage(house=house, code=command)


def encode_extended_level(house: HouseCode, device: int, level: int) -> Message:
    """Build an extended code message setting device to level (0-100)."""
    if not (Const.MIN_DEVICE <= device <= Const.MAX_DEVICE):
        return CommandMessage(house=house, code=CommandCode.EXTENDED_CODE)
    data = [house.value | DEVICE_ADDR[device], level_for_extended_code(level), Const.PRESET_DIM_EXTENDED_COMMAND]
    return encode(house, CommandCode.EXTENDED_CODE, data)


def encode_preset_dim(house: HouseCode, level: int) -> PresetDimMessage:
    """Build the preset dim message giving the closest level at or above level (0-100)."""
    entry = PRESET_DIM_TABLE[level_to_preset_dim_table_index(level)]
    return PresetDimMessage(house=house, preset_house=entry.house, code=entry.command)


def encode_level(address: "Address", level: int, environment: Optional["Environment"]) -> Optional[Message]:
    """
    Build a message setting the level of address directly, if the environment
    says the device can do it. Extended codes are preferred over preset dim.
    Returns None if the device can't set its level directly (or is unknown).
    """
    if environment is None or environment.can_set_level(address) is not True:
        return None
    if environment.is_extended(address) is True:
        return encode_extended_level(address.house, address.device, level)
    return encode_preset_dim(address.house, level)


# ============================
# LEVEL CONVERSIONS
# ============================

def level_delta_from_repeat_count(repeat_count: int) -> int:
    """Level change (0-100) from a number of repeated bright or dim commands"""
    return round_half_away(repeat_count * 100 / 22)


def level_for_extended_code(level: int) -> int:
    """Extended code data byte (1-63) for a brightness level (0-100)"""
    return clamp(round_half_away(level * 63 / 100), Const.MIN_EXTENDED_LEVEL, Const.MAX_EXTENDED_LEVEL)


def level_from_extended_code(data: int) -> int:
    """Brightness level (0-100) from an extended code data byte"""
    return round_half_away(data * 100 / 63)


# ============================
# PRESET DIM TABLE
# ============================

@dataclass(frozen=True)
class PresetDimEntry:
    level: int
    fade_rate: float
    house: HouseCode
    command: CommandCode


_PRESET_HOUSE_ORDER = "MNOPCDABEFGHKLIJ"
_PRESET_LEVELS = (
    0, 3, 6, 10, 13, 16, 19, 23, 26, 29, 32, 35, 39, 42, 45, 48,
    52, 55, 58, 61, 65, 68, 71, 74, 77, 81, 84, 87, 90, 94, 97, 100,
)
_PRESET_FADE_RATES = (
    9.0, 8.5, 8.5, 8.5, 6.5, 6.5, 6.5, 6.5, 4.5, 4.5, 4.5, 4.5, 2.0, 2.0, 2.0, 2.0,
    0.5, 0.5, 0.5, 0.5, 0.3, 0.3, 0.3, 0.3, 0.2, 0.2, 0.2, 0.2, 0.1, 0.1, 0.1, 0.1,
)

# Brightness levels and fade rates signalled by PresetDim1/PresetDim2 on each house code, in ascending level order
PRESET_DIM_TABLE: tuple[PresetDimEntry, ...] = tuple(
    PresetDimEntry(
        level=level,
        fade_rate=fade_rate,
        house=HouseCode[_PRESET_HOUSE_ORDER[index % 16]],
        command=CommandCode.PRESET_DIM_1 if index < 16 else CommandCode.PRESET_DIM_2,
    )
    for index, (level, fade_rate) in enumerate(zip(_PRESET_LEVELS, _PRESET_FADE_RATES))
)


def level_to_preset_dim_table_index(level: int) -> int:
    """Index of the first preset dim table entry at or above level (0-100)"""
    if level <= Const.MIN_LEVEL:
        return 0
    if level < Const.MAX_LEVEL:
        for index in range(1, len(PRESET_DIM_TABLE)):
            if level <= PRESET_DIM_TABLE[index].level:
                return index
    return len(PRESET_DIM_TABLE) - 1


def preset_level_for(house: HouseCode, command: CommandCode) -> Optional[int]:
    """The level a preset dim house/command pair stands for, or None for any other command"""
    if command not in (CommandCode.PRESET_DIM_1, CommandCode.PRESET_DIM_2):
        return None
    for entry in PRESET_DIM_TABLE:
        if entry.house == house and entry.command == command:
            return entry.level
    return None
