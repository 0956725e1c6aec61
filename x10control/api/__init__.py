"""
API-level models and protocol codec.

This module contains models and types that belong to the API layer:
- Address, State, Selection (addressing and device state)
- Message variants and the encode functions (the X10 codec)
- Instruction (a message aimed at an address)
- Environment, Device, SceneMember (the capability catalog)
- Types and enums used by the API layer
"""

from .models import Address, State, Selection, Device, SceneMember
from .message import (
    Message,
    AddressMessage,
    BrightMessage,
    DimMessage,
    CommandMessage,
    ExtendedMessage,
    PresetDimMessage,
    PresetDimEntry,
    PRESET_DIM_TABLE,
    encode,
    encode_extended_level,
    encode_preset_dim,
    encode_level,
    level_delta_from_repeat_count,
    level_for_extended_code,
    level_from_extended_code,
    level_to_preset_dim_table_index,
    preset_level_for,
)
from .instruction import Instruction
from .environment import Environment
from .types import HouseCode, CommandCode, QueueStrategy, DEVICE_CODE, DEVICE_ADDR, Const

__all__ = [
    # API-level models
    "Address",
    "State",
    "Selection",
    "Device",
    "SceneMember",
    "Instruction",
    "Environment",

    # Messages
    "Message",
    "AddressMessage",
    "BrightMessage",
    "DimMessage",
    "CommandMessage",
    "ExtendedMessage",
    "PresetDimMessage",
    "PresetDimEntry",
    "PRESET_DIM_TABLE",

    # Codec functions
    "encode",
    "encode_extended_level",
    "encode_preset_dim",
    "encode_level",
    "level_delta_from_repeat_count",
    "level_for_extended_code",
    "level_from_extended_code",
    "level_to_preset_dim_table_index",
    "preset_level_for",

    # API-level types
    "HouseCode",
    "CommandCode",
    "QueueStrategy",
    "DEVICE_CODE",
    "DEVICE_ADDR",
    "Const",
]
