"""
X10Control API-level models.

This module contains models that belong to the api layer:
- Address, State, Selection (addressing and device state)
- Device, SceneMember (capability facts read from the environment catalog)
"""

import re
from dataclasses import dataclass
from typing import Any, Self, TYPE_CHECKING

if TYPE_CHECKING:
    from .message import AddressMessage

from .types import HouseCode, Const
from ..exceptions import X10InvalidNotationError, X10ConfigurationError


@dataclass(frozen=True)
class Address:
    """An X10 house code and device number. Device 0 addresses the whole house."""
    house: HouseCode
    device: int

    _NOTATION = re.compile(r"^([A-P])([0-9]{1,2})?$")

    def __post_init__(self):
        if not (Const.HOUSE_DEVICE <= self.device <= Const.MAX_DEVICE):
            raise ValueError(f"Device number must be 0-16, got {self.device}")

    @classmethod
    def parse(cls, notation: str) -> Self:
        """Parse "A5", or a bare "A" for a house address. Raises X10InvalidNotationError."""
        match = cls._NOTATION.fullmatch(notation) if isinstance(notation, str) else None
        if match is None:
            raise X10InvalidNotationError(f"Invalid address notation: {notation!r}")
        house = HouseCode.named(match.group(1))
        if match.group(2) is None:
            return cls(house=house, device=Const.HOUSE_DEVICE)
        device = int(match.group(2))
        if not (Const.MIN_DEVICE <= device <= Const.MAX_DEVICE):
            raise X10InvalidNotationError(f"Invalid device number in address: {notation!r}")
        return cls(house=house, device=device)

    @classmethod
    def house_address(cls, house: HouseCode) -> Self:
        return cls(house=house, device=Const.HOUSE_DEVICE)

    @property
    def is_house_address(self) -> bool:
        return self.device == Const.HOUSE_DEVICE

    @property
    def message(self) -> "AddressMessage":
        """The address message selecting this address"""
        from .message import AddressMessage
        return AddressMessage(house=self.house, device=self.device)

    def __str__(self) -> str:
        if self.is_house_address:
            return self.house.name
        return f"{self.house.name}{self.device}"


@dataclass
class State:
    """The power and brightness level (0-100) of an X10 device"""
    on: bool = False
    level: int = Const.MAX_LEVEL

    _NOTATION = re.compile(r"^(ON|OFF)-([0-9]{1,3})$")

    @classmethod
    def parse(cls, notation: str) -> Self:
        """Parse "ON-50" or "OFF-100". Raises X10InvalidNotationError."""
        match = cls._NOTATION.fullmatch(notation) if isinstance(notation, str) else None
        if match is None:
            raise X10InvalidNotationError(f"Invalid state notation: {notation!r}")
        level = int(match.group(2))
        if not (Const.MIN_LEVEL <= level <= Const.MAX_LEVEL):
            raise X10InvalidNotationError(f"Invalid state level: {notation!r}")
        return cls(on=(match.group(1) == "ON"), level=level)

    def matches_scene_level(self, scene_level: int) -> bool:
        """True if this state is what a scene member configured with scene_level would show"""
        if scene_level == 0 and not self.on:
            return True
        return self.on and scene_level == self.level

    def __str__(self) -> str:
        return f"{'ON' if self.on else 'OFF'}-{self.level}"


class Selection:
    """
    The devices most recently addressed on one house code.

    Address messages add to the selection until a command closes it; the next
    address after that starts a new selection.
    """

    def __init__(self):
        self._selection: set[int] = set()
        self._closed = False

    @property
    def selection(self) -> frozenset[int]:
        return frozenset(self._selection)

    @property
    def closed(self) -> bool:
        return self._closed

    def select(self, device: int) -> None:
        if self._closed:
            self._selection = {device}
            self._closed = False
        else:
            self._selection.add(device)

    def deselect_all(self) -> None:
        self._selection.clear()
        self._closed = False

    def close_selection(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        return f"<{sorted(self._selection)}, {'closed' if self._closed else 'open'}>"


@dataclass(frozen=True)
class Device:
    """Capabilities of one device, as described by the environment catalog"""
    all_lights_on: bool = True              # responds to AllLightsOn on the device house code
    all_lights_off: bool = True             # responds to AllLightsOff on the device house code
    all_units_off: bool = True              # responds to AllUnitsOff on the device house code
    dims: bool = True                       # responds to Dim and Bright
    extended: bool = False                  # supports extended set-level commands
    preset: bool = False                    # supports preset dim commands
    universal_all_lights_on: bool = False   # responds to AllLightsOn on any house code
    universal_all_lights_off: bool = False  # responds to AllLightsOff on any house code
    universal_all_units_off: bool = False   # responds to AllUnitsOff on any house code

    # Catalog key for each field
    _KEYS = {
        "all_lights_on": "allLightsOn",
        "all_lights_off": "allLightsOff",
        "all_units_off": "allUnitsOff",
        "dims": "dims",
        "extended": "extended",
        "preset": "preset",
        "universal_all_lights_on": "universalAllLightsOn",
        "universal_all_lights_off": "universalAllLightsOff",
        "universal_all_units_off": "universalAllUnitsOff",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Build from a catalog entry. A device that responds to both all-lights
        commands is assumed to dim. Raises X10ConfigurationError if a present
        key holds anything but a JSON boolean.
        """
        for key in cls._KEYS.values():
            if key in data and not isinstance(data[key], bool):
                raise X10ConfigurationError(f"Device key {key} must be true or false, got {data[key]!r}")
        all_lights_on = data.get("allLightsOn", True)
        all_lights_off = data.get("allLightsOff", True)
        return cls(
            all_lights_on = all_lights_on,
            all_lights_off = all_lights_off,
            all_units_off = data.get("allUnitsOff", True),
            dims = data.get("dims", all_lights_on and all_lights_off),
            extended = data.get("extended", False),
            preset = data.get("preset", False),
            universal_all_lights_on = data.get("universalAllLightsOn", False),
            universal_all_lights_off = data.get("universalAllLightsOff", False),
            universal_all_units_off = data.get("universalAllUnitsOff", False),
        )

    def to_dict(self) -> dict[str, bool]:
        return {key: getattr(self, attr) for attr, key in self._KEYS.items()}


@dataclass(frozen=True)
class SceneMember:
    """One address in a scene and the level (0-100) the scene sets it to"""
    address: Address
    level: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(address=Address.parse(data["address"]), level=int(data["level"]))

    def to_dict(self) -> dict[str, Any]:
        return {"address": str(self.address), "level": self.level}
