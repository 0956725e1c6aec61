"""
High-level device-state engine.

This module contains the classes that belong to the interface layer:
- X10Control (follows the selection and keeps the state of every device)
- StateChangeEvent, TriggerEvent (what X10Control reports to its callbacks)
- PendingSend (an instruction waiting for its interface status)
- InstructionQueue (pending instructions, merged before they are sent)
"""

from .interface import X10Control, PendingSend, StateChangeEvent, TriggerEvent, CallbackStateChange, CallbackTrigger
from .queue import InstructionQueue

__all__ = [
    # High-level engine
    "X10Control",
    "InstructionQueue",
    "PendingSend",

    # Events
    "StateChangeEvent",
    "TriggerEvent",
    "CallbackStateChange",
    "CallbackTrigger",
]
