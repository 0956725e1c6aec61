"""
Message broker topic notation.

State is published per device, and requests are accepted, on topics of the
form <prefix><kind>/<address>-<variation>:

    X10/State/A5-On             payload 1 or 0
    X10/State/A5-Level          payload 0-100
    X10/Request/A5-On           payload 1 or 0
    X10/Request/A5-Level        payload 0-100
    X10/Request/A-AllLightsOff  payload ignored, but must be an integer
    X10/Trigger/A-AllLightsOff  payload is the source of the command
"""

import re
from enum import Enum
from typing import Optional

from ..api import Address, Environment, Instruction, CommandCode, encode, encode_level


class TopicType(Enum):
    REQUEST = "request"
    STATE = "state"


class TopicVariation(Enum):
    LEVEL = "Level"
    POWER = "On"


_PAYLOAD = re.compile(r"^-?[0-9]+$")


class TopicScheme:

    def __init__(self, prefix: str = "X10/"):
        self.prefix = prefix
        self.state_prefix = prefix + "State/"
        self.request_prefix = prefix + "Request/"
        self.trigger_prefix = prefix + "Trigger/"

    def topic_type(self, topic: str) -> Optional[TopicType]:
        if topic.startswith(self.request_prefix):
            return TopicType.REQUEST
        if topic.startswith(self.state_prefix):
            return TopicType.STATE
        return None

    def level_state_topic(self, address: Address) -> str:
        return f"{self.state_prefix}{address}-{TopicVariation.LEVEL.value}"

    def power_state_topic(self, address: Address) -> str:
        return f"{self.state_prefix}{address}-{TopicVariation.POWER.value}"

    def trigger_topic(self, trigger: str) -> str:
        return f"{self.trigger_prefix}{trigger}"

    def subscription(self) -> str:
        """Wildcard subscription matching every request topic"""
        return f"{self.request_prefix}#"

    def instruction_from_topic(self, topic: str, payload: str, environment: Optional[Environment]) -> Optional[Instruction]:
        """
        The instruction requested by a topic and payload, or None if either is malformed.

        A level request on an address that can't be set to a level directly
        (or isn't in the environment) gives None.
        """
        match self.topic_type(topic):
            case TopicType.REQUEST:
                name = topic[len(self.request_prefix):]
            case TopicType.STATE:
                name = topic[len(self.state_prefix):]
            case _:
                return None

        parts = name.split("-")
        if len(parts) != 2 or not _PAYLOAD.fullmatch(payload.strip()):
            return None
        try:
            address = Address.parse(parts[0])
        except ValueError:
            return None
        value = int(payload)
        variation = parts[1]

        if variation == TopicVariation.POWER.value:
            return Instruction.command(address, CommandCode.OFF if value == 0 else CommandCode.ON)

        if variation == TopicVariation.LEVEL.value:
            message = encode_level(address, value, environment)
            if message is None:
                return None
            return Instruction(address=address, message=message)

        # Anything else must be a house command sent to a house address, e.g. A-AllLightsOff
        command = CommandCode.named(variation[:1].lower() + variation[1:])
        if not address.is_house_address or command is None or not command.is_house_command:
            return None
        return Instruction(address=address, message=encode(address.house, command))
