from dataclasses import dataclass
from typing import Self

from .models import Address
from .message import Message, CommandMessage
from .types import CommandCode, QueueStrategy


@dataclass(frozen=True)
class Instruction:
    """A message aimed at an address, expanded into the messages that go on the wire"""
    address: Address
    message: Message

    @classmethod
    def command(cls, address: Address, code: CommandCode) -> Self:
        return cls(address=address, message=CommandMessage(house=address.house, code=code))

    @property
    def messages(self) -> list[Message]:
        if self.message.requires_address:
            return [self.address.message, self.message]
        return [self.message]

    def queue_strategy(self, previous: "Instruction") -> QueueStrategy:
        """
        How to queue this instruction behind previous, when previous is still waiting to be sent.

        A second direct level on the same address supersedes the first. A plain
        power-on after a direct level is redundant, since setting the level already
        switches the device on, and would race with it on hardware that treats the
        two as separate commands.
        """
        if previous.address == self.address and previous.message.sets_level_directly:
            if self.message.sets_level_directly:
                return QueueStrategy.REPLACE
            if self.message.power is True:
                return QueueStrategy.DROP
        return QueueStrategy.APPEND

    def __str__(self) -> str:
        return f"{self.address}.{self.message}"
