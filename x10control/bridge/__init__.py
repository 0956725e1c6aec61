"""
Message broker bridge.

This module contains the pieces that connect X10Control to a message broker:
- TopicScheme - The topic notation for states, requests and triggers
- load_config, validate_config - The YAML bridge configuration

The MQTT bridge itself lives in x10control.bridge.mqtt and needs the mqtt
extra (aiomqtt) installed.
"""

from .topics import TopicScheme, TopicType, TopicVariation
from .config import load_config, validate_config, ConfigConst

__all__ = [
    "TopicScheme",
    "TopicType",
    "TopicVariation",
    "load_config",
    "validate_config",
    "ConfigConst",
]
