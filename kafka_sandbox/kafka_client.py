"""Small producer helper built on top of confluent-kafka.

Why this exists:
- `confluent_kafka.Producer` reports delivery through `(err, msg)` callbacks
  served from `poll()`/`flush()`; the sandbox wants a plain `DeliveryReport`.
- Errors come out as `KafkaException`, `BufferError` or `KafkaError` values.
  We normalize them to `TransportError` at this boundary.
- The producer has no `close()`; closing here means flushing once and refusing
  further sends.

Notes for students:
- `produce()` only enqueues the message locally. Nothing is on the wire (and no
  callback fires) until the client's background threads deliver it and you
  call `poll()` or `flush()` to serve the callbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from confluent_kafka import KafkaError, KafkaException, Producer

from .errors import TransportError

log = logging.getLogger(__name__)

DEFAULT_CLOSE_TIMEOUT = 10.0


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of sending one message. Either `error` is set or the metadata is."""

    topic: str | None
    partition: int | None = None
    offset: int | None = None
    timestamp: int | None = None
    error: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_callback(cls, err: KafkaError | None, msg: Any) -> "DeliveryReport":
        topic = msg.topic() if msg is not None else None
        if err is not None:
            return cls(topic=topic, error=err)
        _ts_type, ts = msg.timestamp()
        return cls(topic=topic, partition=msg.partition(), offset=msg.offset(), timestamp=ts)


DeliveryHandler = Callable[[DeliveryReport], None]


class KafkaProducerClient:
    """Thin wrapper around `confluent_kafka.Producer` sending UTF-8 text values."""

    def __init__(self, config: dict[str, Any], *, producer_factory: Callable[[dict[str, Any]], Any] = Producer) -> None:
        self._producer = producer_factory(config)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(
        self,
        topic: str,
        payload: str,
        *,
        key: str | None = None,
        partition: int | None = None,
        on_delivery: DeliveryHandler | None = None,
    ) -> None:
        """Enqueue one message. `on_delivery` is called once with its outcome."""
        if self._closed:
            raise TransportError("Producer is closed")

        kwargs: dict[str, Any] = {"value": payload.encode("utf-8"), "key": key}
        if partition is not None:
            kwargs["partition"] = partition
        if on_delivery is not None:
            kwargs["on_delivery"] = lambda err, msg: on_delivery(DeliveryReport.from_callback(err, msg))

        try:
            self._producer.produce(topic, **kwargs)
        except BufferError as e:
            raise TransportError("Local producer queue is full", cause=e) from e
        except KafkaException as e:
            cause = e.args[0] if e.args else e
            raise TransportError(str(cause), cause=cause) from e

    def poll(self, timeout: float = 0.0) -> int:
        """Serve delivery callbacks, waiting at most `timeout` seconds for events."""
        return self._producer.poll(timeout)

    def close(self, timeout: float = DEFAULT_CLOSE_TIMEOUT) -> None:
        """Flush buffered messages. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        remaining = self._producer.flush(timeout)
        if remaining:
            log.warning("%d message(s) were still undelivered after %.1fs flush", remaining, timeout)
