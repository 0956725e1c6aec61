"""
Bridge configuration file.

    mqtt:
      host: 192.0.2.20
      port: 1883
      user: x10
      password: secret
      keepalive: 60
    x10:
      environment: ~/.x10.json
      topic_prefix: X10/        # optional
      source: mqtt              # optional, tags state changes made by the bridge
"""

import re
from typing import Any

import yaml

from ..exceptions import X10ConfigurationError


class ConfigConst:
    DEFAULT_TOPIC_PREFIX = "X10/"
    DEFAULT_SOURCE = "mqtt"


def load_config(path: str) -> dict[str, Any]:
    """Read and validate a YAML config file. Raises X10ConfigurationError if it's invalid."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise X10ConfigurationError(f"Can't read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise X10ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e
    return validate_config(config)


def validate_config(config: Any) -> dict[str, Any]:
    """Check a config document and fill in optional fields. Returns the completed config."""
    if not isinstance(config, dict):
        raise X10ConfigurationError("Config must be a mapping")

    required_sections = ['mqtt', 'x10']
    missing = [s for s in required_sections if not isinstance(config.get(s), dict)]
    if missing:
        raise X10ConfigurationError(f"Missing required config sections: {', '.join(missing)}")

    # Validate MQTT config
    mqtt_required = ['host', 'port', 'user', 'password', 'keepalive']
    missing = [f for f in mqtt_required if f not in config['mqtt']]
    if missing:
        raise X10ConfigurationError(f"Missing MQTT config fields: {', '.join(missing)}")

    port = config['mqtt']['port']
    if not isinstance(port, int) or isinstance(port, bool) or port < 1 or port > 65535:
        raise X10ConfigurationError(f"Invalid MQTT port number: {port}")

    keepalive = config['mqtt']['keepalive']
    if not isinstance(keepalive, int) or isinstance(keepalive, bool) or keepalive < 1:
        raise X10ConfigurationError(f"Invalid MQTT keepalive: {keepalive}")

    # Validate X10 config
    x10 = config['x10']
    if not isinstance(x10.get('environment'), str) or not x10['environment']:
        raise X10ConfigurationError("Missing X10 config field: environment")

    prefix = x10.setdefault('topic_prefix', ConfigConst.DEFAULT_TOPIC_PREFIX)
    if not isinstance(prefix, str) or not re.match(r'^[A-Za-z0-9_]+(/[A-Za-z0-9_]+)*/$', prefix):
        raise X10ConfigurationError(f"Invalid topic prefix: {prefix}. Use letters, numbers and /, ending with /.")

    source = x10.setdefault('source', ConfigConst.DEFAULT_SOURCE)
    if not isinstance(source, str) or not source:
        raise X10ConfigurationError(f"Invalid source: {source}")

    return config
