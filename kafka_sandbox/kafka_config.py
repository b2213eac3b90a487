"""Client configuration for producers, consumers and the admin client.

The dicts built here are passed straight to `confluent_kafka`. See
https://github.com/confluentinc/librdkafka/blob/master/CONFIGURATION.md for the
available settings. Keep them small: the point of the sandbox is to edit these
and observe how behaviour changes.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from .topics import default_broker

# librdkafka log lines are routed into Python logging under this name.
client_log = logging.getLogger("kafka_sandbox.librdkafka")


def _base(broker: str | None) -> dict[str, Any]:
    return {
        "bootstrap.servers": broker or default_broker(),
        "logger": client_log,
    }


def producer_config(broker: str | None = None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    conf = _base(broker)
    conf.update(
        {
            "client.id": f"console-producer-{os.getpid()}",
            # Ack only after all in-sync replicas have the message.
            "acks": "all",
            "enable.idempotence": True,
            "linger.ms": 5,
        }
    )
    if overrides:
        conf.update(overrides)
    return conf


def consumer_config(group: str, broker: str | None = None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    conf = _base(broker)
    conf.update(
        {
            "group.id": group,
            "client.id": f"console-consumer-{os.getpid()}",
            "auto.offset.reset": "earliest",
            "enable.auto.commit": True,
            "session.timeout.ms": 6000,
        }
    )
    if overrides:
        conf.update(overrides)
    return conf


def admin_config(broker: str | None = None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    conf = _base(broker)
    if overrides:
        conf.update(overrides)
    return conf
