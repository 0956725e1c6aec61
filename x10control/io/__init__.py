"""
Transport boundary.

This module contains the lowest-level communication components:
- X10Interface - What a powerline transport must provide
- InterfaceStatus - The terminal status reported for each send
- LoopbackInterface - A transport that records instead of sending
"""

from .interface import X10Interface, InterfaceStatus, Completion, LoopbackInterface

__all__ = [
    "X10Interface",
    "InterfaceStatus",
    "Completion",
    "LoopbackInterface",
]
