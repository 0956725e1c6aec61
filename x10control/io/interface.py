"""
X10 transport boundary.

This module defines what the engine needs from the component that actually
puts instructions on the powerline (a CM11A/CM15 driver, a network gateway,
etc.) and provides an in-process loopback implementation.

Terms:
- Interface = A transport which sends an Instruction and reports one terminal status
- Completion = The callback which receives that status

A transport must call the completion exactly once per send. Failures are
reported as a status, never raised.

Example usage:
    interface = LoopbackInterface()
    interface.send(instruction, lambda status: print(status.name))
"""

import logging
from enum import Enum
from typing import Callable, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from ..api.instruction import Instruction


class InterfaceStatus(Enum):
    """Terminal status of one send"""
    SUCCESS = "success"
    CONNECTION_NOT_OPEN = "connectionNotOpen"
    CONNECTION_CLOSED = "connectionClosed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timedOut"
    UNEXPECTED_RESPONSE = "unexpectedResponse"
    WRITE_FAILED = "writeFailed"


Completion = Callable[[InterfaceStatus], None]


class X10Interface(Protocol):
    """Anything that can send an instruction and report how it went"""

    def send(self, instruction: "Instruction", completion: Completion) -> None:
        ...


class LoopbackInterface:
    """
    An X10Interface that sends nowhere.

    Every instruction is recorded in `sent`. With auto_complete (the default)
    each send completes immediately with `status`; otherwise completions wait
    in order until `complete()` is called, which lets tests and bridges without
    hardware control exactly when and how a send finishes.
    """

    def __init__(self,
                 status: InterfaceStatus = InterfaceStatus.SUCCESS,
                 auto_complete: bool = True,
                 logger: Optional[logging.Logger] = None,
                 ):
        self.status = status
        self.auto_complete = auto_complete
        self.logger = logger or logging.getLogger(__name__)
        self.sent: list["Instruction"] = []
        self._waiting: list[Completion] = []

    @property
    def waiting(self) -> int:
        """Number of sends still waiting for completion"""
        return len(self._waiting)

    def send(self, instruction: "Instruction", completion: Completion) -> None:
        self.sent.append(instruction)
        self.logger.debug(f"Loopback send {instruction}")
        if self.auto_complete:
            completion(self.status)
        else:
            self._waiting.append(completion)

    def complete(self, status: Optional[InterfaceStatus] = None) -> bool:
        """Complete the oldest waiting send. Returns False if nothing was waiting."""
        if not self._waiting:
            return False
        completion = self._waiting.pop(0)
        completion(status or self.status)
        return True
