from __future__ import annotations

# JSON message producer.
#
# Two layers:
# 1) Send strategies: how one message is handed to the Kafka client and how its
#    delivery outcome is observed (fire-and-forget vs wait-for-ack).
# 2) `JsonMessageProducer.produce_loop()`: owns the client for its whole life,
#    pulls messages from a supplier as fast as it yields them and sends each one
#    with the strategy chosen at start, until cancelled.
#
# Per-message failures never end the loop. Only the cancellation token (or an
# `Interrupted` raised by a supplier waiting on it) does.

import abc
import enum
import logging
from concurrent.futures import Future
from typing import Any, Callable, Generic, Optional, TypeVar

from .errors import Interrupted, SerializationError, TransportError
from .kafka_client import DeliveryReport, KafkaProducerClient
from .serialization import to_json
from .shutdown import CancellationToken

log = logging.getLogger(__name__)

T = TypeVar("T")

MessageSupplier = Callable[[], T]
KeyFunction = Callable[[T], Optional[str]]
Serializer = Callable[[Any], str]


class SendStrategy(abc.ABC, Generic[T]):
    """Sends one message to a fixed topic through an already started client."""

    def __init__(
        self,
        client: KafkaProducerClient,
        topic: str,
        *,
        partition: int | None = None,
        serializer: Serializer = to_json,
        token: CancellationToken | None = None,
    ) -> None:
        self.client = client
        self.topic = topic
        self.partition = partition
        self.serializer = serializer
        self.token = token or CancellationToken()

    def send(self, key: str | None, message: T) -> None:
        try:
            payload = self.serializer(message)
            self._send(key, payload)
        except SerializationError as e:
            log.error("Failed to serialize message for topic %s: %s", self.topic, e)
        except TransportError as e:
            log.error("Failed to send message to Kafka topic %s: %s", self.topic, e)

    @abc.abstractmethod
    def _send(self, key: str | None, payload: str) -> None:
        """Hand one serialized payload to the client."""


class NonBlockingSend(SendStrategy[T]):
    """Enqueue and return at once. The outcome is logged from the delivery callback."""

    def _send(self, key: str | None, payload: str) -> None:
        log.debug("Send non-blocking ..")
        self.client.send(self.topic, payload, key=key, partition=self.partition, on_delivery=self._on_delivery)
        # Serve callbacks of earlier sends that have completed, without waiting.
        self.client.poll(0)

    def _on_delivery(self, report: DeliveryReport) -> None:
        if not report.ok:
            log.error("Failed to send message to Kafka topic %s: %s", report.topic, report.error)
        else:
            log.debug(
                "Async message ack, offset: %s, timestamp: %s, topic-partition: %s-%s",
                report.offset,
                report.timestamp,
                report.topic,
                report.partition,
            )


class BlockingSend(SendStrategy[T]):
    """Enqueue and wait for this message's delivery report before returning."""

    poll_interval = 0.1

    def _send(self, key: str | None, payload: str) -> None:
        log.debug("Send blocking ..")
        outcome: "Future[DeliveryReport]" = Future()
        self.client.send(self.topic, payload, key=key, partition=self.partition, on_delivery=outcome.set_result)

        while not outcome.done():
            # Leave the message in the client buffer; closing the client flushes it.
            self.token.raise_if_cancelled()
            self.client.poll(self.poll_interval)

        report = outcome.result()
        if not report.ok:
            log.error("Failed to send message to Kafka topic %s: %s", report.topic, report.error)
            return
        log.debug(
            "Message ack, offset: %s, timestamp: %s, topic-partition: %s-%s",
            report.offset,
            report.timestamp,
            report.topic,
            report.partition,
        )


class SendMode(enum.Enum):
    NON_BLOCKING = "non-blocking"
    BLOCKING = "blocking"

    def strategy(self, client: KafkaProducerClient, topic: str, **kwargs: Any) -> SendStrategy[Any]:
        if self is SendMode.NON_BLOCKING:
            return NonBlockingSend(client, topic, **kwargs)
        return BlockingSend(client, topic, **kwargs)

    @classmethod
    def from_flag(cls, non_blocking: bool) -> "SendMode":
        return cls.NON_BLOCKING if non_blocking else cls.BLOCKING


class LoopState(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class JsonMessageProducer(Generic[T]):
    """Sends JSON messages from a supplier to one topic until cancelled."""

    def __init__(
        self,
        topic: str,
        kafka_settings: dict[str, Any],
        message_supplier: MessageSupplier[T],
        key_function: KeyFunction[T],
        *,
        non_blocking: bool = True,
        partition: int | None = None,
        serializer: Serializer = to_json,
        client_factory: Callable[[dict[str, Any]], KafkaProducerClient] = KafkaProducerClient,
    ) -> None:
        self.topic = topic
        self.partition = partition
        self.send_mode = SendMode.from_flag(non_blocking)
        self.state = LoopState.STARTING
        self._kafka_settings = kafka_settings
        self._message_supplier = message_supplier
        self._key_function = key_function
        self._serializer = serializer
        self._client_factory = client_factory

    def produce_loop(self, token: CancellationToken | None = None) -> None:
        """Send as fast as the supplier can generate messages until cancelled, then close the client."""
        token = token or CancellationToken()
        log.info("Start producer loop, topic=%s, mode=%s", self.topic, self.send_mode.value)
        self.state = LoopState.STARTING
        client = self._client_factory(self._kafka_settings)
        try:
            strategy: SendStrategy[T] = self.send_mode.strategy(
                client,
                self.topic,
                partition=self.partition,
                serializer=self._serializer,
                token=token,
            )
            self.state = LoopState.RUNNING
            while not token.cancelled:
                try:
                    message = self._message_supplier()
                    key = self._key_function(message)
                    strategy.send(key, message)
                except (Interrupted, KeyboardInterrupt):
                    # Expected on shutdown.
                    break
                except Exception:
                    log.exception("Unexpected error when sending to Kafka")
            self.state = LoopState.DRAINING
        finally:
            log.info("Closing KafkaProducer ..")
            client.close()
            self.state = LoopState.CLOSED
