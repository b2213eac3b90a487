"""Default names shared by the CLI and the clients.

We keep topic and group naming in one place so producers and consumers of the
same kind agree on defaults.

Defaults:
- broker: `localhost:9092` (overridable with the `KAFKA_BROKER` env var)
- `measurements` topic for the temperature sensor demo
- `messages` topic for the console chat demo
- `sequence` topic for the sequence validation demo
- consumer group `console`
"""

from __future__ import annotations

import os

DEFAULT_BROKER = "localhost:9092"
MEASUREMENTS_TOPIC = "measurements"
MESSAGES_TOPIC = "messages"
SEQUENCE_TOPIC = "sequence"
CONSUMER_GROUP_DEFAULT = "console"


def default_broker() -> str:
    return os.environ.get("KAFKA_BROKER") or DEFAULT_BROKER


def topic_or_default(topic: str | None, default: str) -> str:
    """Blank or missing topic arguments fall back to the mode's default topic."""
    if topic is None or not topic.strip():
        return default
    return topic
