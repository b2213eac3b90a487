"""Topic administration: create and delete topics."""

from __future__ import annotations

import logging
from typing import Any, Callable

from confluent_kafka.admin import AdminClient, NewTopic

from .errors import TransportError
from .kafka_config import admin_config

log = logging.getLogger(__name__)

# Give the cluster some time to propagate topic changes before returning.
OPERATION_TIMEOUT = 30.0


class TopicAdmin:
    """Context-managed wrapper over `AdminClient`.

    Both operations wait for the broker's answer and raise `TransportError` if
    it reports a failure (topic exists, unknown topic, no broker, ...).
    """

    def __init__(self, broker: str | None = None, *, admin_factory: Callable[[dict[str, Any]], Any] = AdminClient) -> None:
        self._admin = admin_factory(admin_config(broker))

    def __enter__(self) -> "TopicAdmin":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        # Serve any remaining callbacks (logs, errors) before the client goes away.
        self._admin.poll(0)

    def create(self, topic: str, partitions: int = 1, replication_factor: int = 1) -> None:
        if partitions < 1:
            raise ValueError("partitions must be >= 1")
        futures = self._admin.create_topics(
            [NewTopic(topic, num_partitions=partitions, replication_factor=replication_factor)],
            operation_timeout=OPERATION_TIMEOUT,
        )
        _wait(futures, "create")

    def delete(self, topic: str) -> None:
        futures = self._admin.delete_topics([topic], operation_timeout=OPERATION_TIMEOUT)
        _wait(futures, "delete")


def _wait(futures: dict[str, Any], action: str) -> None:
    for topic, f in futures.items():
        try:
            f.result()  # The result itself is None
        except Exception as e:
            cause = e.args[0] if e.args else e
            raise TransportError(f"Failed to {action} topic '{topic}': {cause}", cause=cause) from e
        log.debug("Topic %s: %s done", topic, action)
