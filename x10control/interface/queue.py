"""
Pending instructions waiting to be sent.

Instructions put on the queue are merged with the one queued just before
them, according to Instruction.queue_strategy: a direct level replaces an
earlier direct level on the same address, and a power-on after a direct
level is dropped. drain() then sends what is left, one at a time, through
X10Control.send_instruction.

A long-running consumer calls run(), which drains whenever something is put.
Instructions put while a send is in flight wait on the queue and merge there.
"""

import asyncio
import logging
from typing import Optional

from ..api import Instruction, QueueStrategy
from ..io import InterfaceStatus
from .interface import X10Control


class QueueConst:
    """Constants for the InstructionQueue"""
    DEFAULT_TIMEOUT = 5.0


class InstructionQueue:

    def __init__(self,
                 control: X10Control,
                 source: str,
                 timeout: float = QueueConst.DEFAULT_TIMEOUT,
                 logger: Optional[logging.Logger] = None,
                 ):
        self.control = control
        self.source = source
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._pending: list[Instruction] = []
        self._ready = asyncio.Event()

    @property
    def pending(self) -> list[Instruction]:
        return list(self._pending)

    def put(self, instruction: Instruction) -> QueueStrategy:
        """Queue an instruction behind the last pending one. Returns how it was queued."""
        strategy = instruction.queue_strategy(self._pending[-1]) if self._pending else QueueStrategy.APPEND
        match strategy:
            case QueueStrategy.APPEND:
                self._pending.append(instruction)
            case QueueStrategy.REPLACE:
                self.logger.debug(f"{instruction} replaces {self._pending[-1]}")
                self._pending[-1] = instruction
            case QueueStrategy.DROP:
                self.logger.debug(f"{instruction} dropped after {self._pending[-1]}")
        self._ready.set()
        return strategy

    async def send(self, instruction: Instruction, timeout: Optional[float] = None) -> InterfaceStatus:
        """
        Send one instruction now and wait for the interface to report how it went.

        On timeout the send is abandoned, so a status the interface reports
        afterwards changes nothing.
        """
        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()

        def completion(status: InterfaceStatus) -> None:
            loop.call_soon_threadsafe(_resolve, status)

        def _resolve(status: InterfaceStatus) -> None:
            if not fut.done():
                fut.set_result(status)

        pending = self.control.send_instruction(instruction, self.source, completion)
        try:
            return await asyncio.wait_for(fut, timeout=timeout if timeout is not None else self.timeout)
        except asyncio.TimeoutError:
            pending.abandon()
            self.logger.warning(f"Timed out sending {instruction}")
            return InterfaceStatus.TIMED_OUT

    async def drain(self) -> list[tuple[Instruction, InterfaceStatus]]:
        """Send every pending instruction in order. Returns each instruction with its status."""
        results: list[tuple[Instruction, InterfaceStatus]] = []
        while self._pending:
            instruction = self._pending.pop(0)
            status = await self.send(instruction)
            results.append((instruction, status))
        return results

    async def run(self) -> None:
        """Send instructions as they are put, until cancelled"""
        while True:
            await self._ready.wait()
            self._ready.clear()
            for instruction, status in await self.drain():
                if status == InterfaceStatus.SUCCESS:
                    self.logger.info(f"Sent {instruction}")
                else:
                    self.logger.warning(f"Sending {instruction} failed: {status.name}")
