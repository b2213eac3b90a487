from __future__ import annotations

# JSON message consumer.
#
# Subscribes to one topic, polls in a loop and hands every decoded message to a
# handler until the cancellation token is set. Like the producer loop, a bad
# message (or a failing handler) is logged and skipped; only cancellation ends
# the loop, and the consumer is closed exactly once on the way out so the group
# is left cleanly and final offsets are committed.

import logging
from typing import Any, Callable, Generic, TypeVar

from confluent_kafka import Consumer, KafkaError

from .errors import Interrupted, SerializationError
from .serialization import from_json
from .shutdown import CancellationToken

log = logging.getLogger(__name__)

T = TypeVar("T")

MessageHandler = Callable[[T], None]

# SIGINT can't be handled while blocked in poll, so keep each poll short.
POLL_TIMEOUT = 1.0


class JsonMessageConsumer(Generic[T]):
    def __init__(
        self,
        topic: str,
        kafka_settings: dict[str, Any],
        message_handler: MessageHandler[T],
        *,
        from_dict: Callable[[Any], T] | None = None,
        consumer_factory: Callable[[dict[str, Any]], Any] = Consumer,
    ) -> None:
        self.topic = topic
        self._kafka_settings = kafka_settings
        self._message_handler = message_handler
        self._from_dict = from_dict
        self._consumer_factory = consumer_factory

    def consume_loop(self, token: CancellationToken | None = None) -> None:
        """Poll and handle messages until cancelled, then close the consumer."""
        token = token or CancellationToken()
        log.info("Start consumer loop, topic=%s, group=%s", self.topic, self._kafka_settings.get("group.id"))
        consumer = self._consumer_factory(self._kafka_settings)
        try:
            consumer.subscribe([self.topic], on_assign=_log_assignment, on_revoke=_log_revocation)
            while not token.cancelled:
                try:
                    msg = consumer.poll(POLL_TIMEOUT)
                    if msg is None:
                        continue
                    self._handle(msg)
                except (Interrupted, KeyboardInterrupt):
                    break
                except Exception:
                    log.exception("Unexpected error when consuming from Kafka")
        finally:
            log.info("Closing KafkaConsumer ..")
            consumer.close()

    def _handle(self, msg: Any) -> None:
        err = msg.error()
        if err is not None:
            if err.code() == KafkaError._PARTITION_EOF:
                log.debug("%s [%s] reached end at offset %s", msg.topic(), msg.partition(), msg.offset())
            else:
                log.error("Consumer error: %s", err)
            return

        try:
            value = from_json(msg.value(), self._from_dict)
        except SerializationError as e:
            log.error(
                "Skipping undecodable message at %s [%s] offset %s: %s",
                msg.topic(),
                msg.partition(),
                msg.offset(),
                e,
            )
            return

        log.debug("Received message at %s [%s] offset %s, key %s", msg.topic(), msg.partition(), msg.offset(), msg.key())
        self._message_handler(value)


def _log_assignment(consumer: Any, partitions: list[Any]) -> None:
    log.info("Assigned partitions: %s", ", ".join(f"{p.topic}-{p.partition}" for p in partitions))


def _log_revocation(consumer: Any, partitions: list[Any]) -> None:
    log.info("Revoked partitions: %s", ", ".join(f"{p.topic}-{p.partition}" for p in partitions))
