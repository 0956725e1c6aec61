"""
X10Control Python Library

A Python library for following and driving X10 powerline home-automation devices.

This library provides three distinct layers of abstraction:

1. **io**: Transport boundary (what a powerline interface must provide, plus a loopback)
2. **api**: The X10 codec (addresses, messages, instructions) and the capability catalog
3. **interface**: The device-state engine, which follows the selection and reports state changes

Example usage:
    import x10control

    control = x10control.X10Control(
        environment=x10control.Environment.load("~/.x10.json"),
        interface=x10control.LoopbackInterface(),
    )
    control.add_state_change_callback(lambda event: print(event.address, event.state))

    # Messages seen on the powerline
    control.receive_messages([
        x10control.Address.parse("A1").message,
        x10control.encode(x10control.HouseCode.A, x10control.CommandCode.ON),
    ], source="cm11a")

    # Instructions sent to the powerline
    instruction = x10control.Instruction.command(x10control.Address.parse("A2"), x10control.CommandCode.OFF)
    control.send_instruction(instruction, source="app")
"""

# High-level interface (recommended for most users)
from .interface import X10Control, InstructionQueue, PendingSend, StateChangeEvent, TriggerEvent

# API-level models
from .api import Address, State, Selection, Device, SceneMember, Instruction, Environment

# Messages and codec
from .api import (
    Message,
    AddressMessage,
    BrightMessage,
    DimMessage,
    CommandMessage,
    ExtendedMessage,
    PresetDimMessage,
    encode,
    encode_extended_level,
    encode_preset_dim,
    encode_level,
)

# Transport boundary
from .io import X10Interface, InterfaceStatus, LoopbackInterface

# Shared types and exceptions
from .api.types import HouseCode, CommandCode, QueueStrategy
from .exceptions import X10Error, X10InvalidNotationError, X10ConfigurationError

# Utilities
from .utils import run_with_keyboard_interrupt

__version__ = "0.1.0"

# Public API - these are the main classes users should import
__all__ = [
    # High-level interface (recommended)
    "X10Control",
    "InstructionQueue",
    "PendingSend",
    "StateChangeEvent",
    "TriggerEvent",

    # API-level models
    "Address",
    "State",
    "Selection",
    "Device",
    "SceneMember",
    "Instruction",
    "Environment",

    # Messages and codec
    "Message",
    "AddressMessage",
    "BrightMessage",
    "DimMessage",
    "CommandMessage",
    "ExtendedMessage",
    "PresetDimMessage",
    "encode",
    "encode_extended_level",
    "encode_preset_dim",
    "encode_level",

    # Transport boundary
    "X10Interface",
    "InterfaceStatus",
    "LoopbackInterface",

    # Exceptions
    "X10Error",
    "X10InvalidNotationError",
    "X10ConfigurationError",

    # Types and enums
    "HouseCode",
    "CommandCode",
    "QueueStrategy",

    # Utilities
    "run_with_keyboard_interrupt",
]
