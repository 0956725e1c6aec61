"""
The capability catalog: what each device on the powerline can do, and which
addresses are scenes.

The catalog is persisted as a JSON document:

    {
        "devices": {"A1": {"dims": true, "extended": true}, ...},
        "scenes": {"P16": [{"address": "A1", "level": 50}, ...]}
    }

Lookups return None for an address with no device entry. None means
"unknown", which callers treat differently from False.
"""

import json
import logging
import os
from typing import Any, Optional, Self

from .models import Address, Device, SceneMember
from .types import HouseCode, CommandCode, Const


class Environment:

    def __init__(self,
                 devices: Optional[dict[Address, Device]] = None,
                 scenes: Optional[dict[Address, list[SceneMember]]] = None,
                 path: Optional[str] = None,
                 ):
        self.devices: dict[Address, Device] = dict(devices or {})
        self.scenes: dict[Address, list[SceneMember]] = dict(scenes or {})
        self.path = path

    def __repr__(self) -> str:
        return f"Environment(devices={len(self.devices)}, scenes={len(self.scenes)}, path={self.path!r})"

    # ============================
    # Capability lookups
    # ============================

    def responds_to_command(self, address: Address, house: HouseCode, command: CommandCode) -> bool:
        """
        True if the device at address acts on command when it is sent on house.
        An address with no device entry never responds.
        """
        device = self.devices.get(address)
        if device is None:
            return False
        own_house = (house == address.house)
        match command:
            case CommandCode.ALL_LIGHTS_ON:
                return device.universal_all_lights_on or (device.all_lights_on and own_house)
            case CommandCode.ALL_LIGHTS_OFF:
                return device.universal_all_lights_off or (device.all_lights_off and own_house)
            case CommandCode.ALL_UNITS_OFF:
                return device.universal_all_units_off or (device.all_units_off and own_house)
            case CommandCode.BRIGHT | CommandCode.DIM:
                return device.dims
            case CommandCode.EXTENDED_CODE:
                return device.extended
            case CommandCode.PRESET_DIM_1 | CommandCode.PRESET_DIM_2:
                return device.preset
            case _:
                return True

    def all_lights_on(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.all_lights_on if device else None

    def all_lights_off(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.all_lights_off if device else None

    def all_units_off(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.all_units_off if device else None

    def is_dimable(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.dims if device else None

    def is_extended(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.extended if device else None

    def is_preset_dimable(self, address: Address) -> Optional[bool]:
        device = self.devices.get(address)
        return device.preset if device else None

    def can_set_level(self, address: Address) -> Optional[bool]:
        """True if a level can be sent to address directly, with an extended code or a preset dim"""
        device = self.devices.get(address)
        return (device.extended or device.preset) if device else None

    def scene_members(self, address: Address) -> list[SceneMember]:
        """Members of the scene at address, or an empty list if address isn't a scene"""
        return list(self.scenes.get(address, []))

    # ============================
    # Persistence
    # ============================

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Optional[str] = None) -> Self:
        devices = {
            Address.parse(notation): Device.from_dict(entry)
            for notation, entry in data.get("devices", {}).items()
        }
        scenes = {
            Address.parse(notation): [SceneMember.from_dict(member) for member in members]
            for notation, members in data.get("scenes", {}).items()
        }
        return cls(devices=devices, scenes=scenes, path=path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "devices": {str(address): device.to_dict() for address, device in self.devices.items()},
            "scenes": {
                str(address): [member.to_dict() for member in members]
                for address, members in self.scenes.items()
            },
        }

    @classmethod
    def load(cls, path: Optional[str] = None, logger: Optional[logging.Logger] = None) -> Self:
        """
        Load a catalog from a JSON file (default ~/.x10.json).

        A missing file gives an empty catalog. Any other read or parse error is raised.
        """
        logger = logger or logging.getLogger(__name__)
        path = os.path.expanduser(path or Const.DEFAULT_ENVIRONMENT_FILE)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            logger.info(f"No environment file at {path}, starting with an empty catalog")
            return cls(path=path)
        environment = cls.from_dict(data, path=path)
        logger.debug(f"Loaded {environment}")
        return environment

    def save(self, path: Optional[str] = None) -> None:
        path = os.path.expanduser(path or self.path or Const.DEFAULT_ENVIRONMENT_FILE)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=4)
        self.path = path
