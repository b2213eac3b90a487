import json
import logging

import pytest
from fakes import FakeProducer

from kafka_sandbox.errors import Interrupted
from kafka_sandbox.kafka_client import KafkaProducerClient
from kafka_sandbox.producer import (
    BlockingSend,
    JsonMessageProducer,
    LoopState,
    NonBlockingSend,
    SendMode,
    SendStrategy,
)
from kafka_sandbox.shutdown import CancellationToken


def _client(fake):
    return KafkaProducerClient({}, producer_factory=lambda conf: fake)


def _supplier(items, token):
    """Yield `items` in order, then cancel the token and raise Interrupted."""
    it = iter(items)

    def supply():
        try:
            return next(it)
        except StopIteration:
            token.cancel()
            raise Interrupted()

    return supply


def _producer(fake, supplier, key_function, *, non_blocking):
    return JsonMessageProducer(
        "t",
        {"bootstrap.servers": "fake:9092"},
        supplier,
        key_function,
        non_blocking=non_blocking,
        client_factory=lambda conf: _client(fake),
    )


def test_send_mode_chosen_from_flag():
    assert SendMode.from_flag(True) is SendMode.NON_BLOCKING
    assert SendMode.from_flag(False) is SendMode.BLOCKING
    assert isinstance(SendMode.BLOCKING.strategy(_client(FakeProducer()), "t"), BlockingSend)
    assert isinstance(SendMode.NON_BLOCKING.strategy(_client(FakeProducer()), "t"), NonBlockingSend)


def test_blocking_send_returns_only_after_ack():
    fake = FakeProducer(ack_after_polls=3)
    strategy = BlockingSend(_client(fake), "t")
    strategy.poll_interval = 0

    strategy.send("k1", {"n": 1})

    assert fake.delivered == ["k1"]
    assert fake.poll_calls >= 4
    assert json.loads(fake.produced[0]["value"]) == {"n": 1}


def test_non_blocking_send_returns_before_ack():
    fake = FakeProducer(ack_after_polls=100)
    strategy = NonBlockingSend(_client(fake), "t")

    strategy.send("k1", "a")

    assert len(fake.produced) == 1
    assert fake.delivered == []


def test_blocking_send_logs_delivery_failure_and_returns(caplog):
    fake = FakeProducer(fail_keys=("bad",))
    strategy = BlockingSend(_client(fake), "t")
    strategy.poll_interval = 0

    with caplog.at_level(logging.ERROR):
        strategy.send("bad", "a")

    assert "Failed to send message to Kafka topic t" in caplog.text
    assert "timed out" in caplog.text


def test_non_blocking_callback_logs_failure(caplog):
    fake = FakeProducer(fail_keys=("bad",))
    strategy = NonBlockingSend(_client(fake), "t")

    with caplog.at_level(logging.ERROR):
        strategy.send("bad", "a")

    assert "Failed to send message to Kafka topic t" in caplog.text


def test_transport_error_on_produce_is_logged_not_raised(caplog):
    fake = FakeProducer(produce_error=BufferError("queue full"))

    with caplog.at_level(logging.ERROR):
        BlockingSend(_client(fake), "t").send("k", "a")
        NonBlockingSend(_client(fake), "t").send("k", "a")

    assert caplog.text.count("Local producer queue is full") == 2


def test_blocking_loop_sends_in_pull_order():
    token = CancellationToken()
    fake = FakeProducer()
    keys = {"a": "k1", "b": "k2", "c": "k3"}
    producer = _producer(fake, _supplier(["a", "b", "c"], token), keys.get, non_blocking=False)

    producer.produce_loop(token)

    assert [m["key"] for m in fake.produced] == ["k1", "k2", "k3"]
    assert [json.loads(m["value"]) for m in fake.produced] == ["a", "b", "c"]
    assert fake.delivered == ["k1", "k2", "k3"]
    assert fake.flush_calls == 1
    assert producer.state is LoopState.CLOSED


def test_serialization_failure_does_not_stop_loop(caplog):
    token = CancellationToken()
    fake = FakeProducer()
    producer = _producer(fake, _supplier([object(), "ok"], token), lambda m: None, non_blocking=True)

    with caplog.at_level(logging.ERROR):
        producer.produce_loop(token)

    assert [json.loads(m["value"]) for m in fake.produced] == ["ok"]
    assert "Failed to serialize message for topic t" in caplog.text
    assert fake.flush_calls == 1


def test_supplier_error_is_logged_and_loop_continues(caplog):
    token = CancellationToken()
    fake = FakeProducer()
    calls = []

    def supply():
        calls.append(1)
        n = len(calls)
        if n == 2:
            raise RuntimeError("sensor offline")
        if n == 4:
            raise Interrupted()
        return f"m{n}"

    producer = _producer(fake, supply, lambda m: m, non_blocking=False)

    with caplog.at_level(logging.ERROR):
        producer.produce_loop(token)

    assert len(calls) == 4
    assert [m["key"] for m in fake.produced] == ["m1", "m3"]
    assert "Unexpected error when sending to Kafka" in caplog.text


def test_interrupt_during_pull_closes_client_once():
    token = CancellationToken()
    fake = FakeProducer()

    def supply():
        token.cancel()
        token.sleep(5)

    producer = _producer(fake, supply, lambda m: None, non_blocking=True)
    producer.produce_loop(token)

    assert fake.produced == []
    assert fake.flush_calls == 1
    assert producer.state is LoopState.CLOSED


def test_interrupt_while_waiting_for_ack_closes_client_once():
    token = CancellationToken()
    # Never acked by poll(); only the final flush delivers it.
    fake = FakeProducer(ack_after_polls=10_000, on_poll=token.cancel)
    producer = _producer(fake, lambda: "a", lambda m: "k", non_blocking=False)

    producer.produce_loop(token)

    assert len(fake.produced) == 1
    assert fake.flush_calls == 1
    assert fake.delivered == ["k"]
    assert producer.state is LoopState.CLOSED


def test_pre_cancelled_token_still_closes_client():
    token = CancellationToken()
    token.cancel()
    fake = FakeProducer()
    producer = _producer(fake, lambda: "a", lambda m: None, non_blocking=True)

    producer.produce_loop(token)

    assert fake.produced == []
    assert fake.flush_calls == 1


def test_fixed_partition_is_passed_to_client():
    token = CancellationToken()
    fake = FakeProducer()
    producer = JsonMessageProducer(
        "t",
        {},
        _supplier(["a"], token),
        lambda m: None,
        non_blocking=True,
        partition=2,
        client_factory=lambda conf: _client(fake),
    )

    producer.produce_loop(token)

    assert fake.produced[0]["partition"] == 2


def test_blocking_send_logs_ack_metadata(caplog):
    fake = FakeProducer()
    strategy = BlockingSend(_client(fake), "t")
    strategy.poll_interval = 0

    with caplog.at_level(logging.DEBUG, logger="kafka_sandbox.producer"):
        strategy.send("k1", "a")

    assert "Message ack, offset: 0, timestamp: 1700000000000, topic-partition: t-0" in caplog.text


def test_non_blocking_send_logs_ack_metadata_when_polled(caplog):
    fake = FakeProducer(ack_after_polls=1)
    client = _client(fake)
    strategy = NonBlockingSend(client, "t")

    with caplog.at_level(logging.DEBUG, logger="kafka_sandbox.producer"):
        strategy.send("k1", "a")
        assert "Async message ack" not in caplog.text
        client.poll(0)

    assert "Async message ack, offset: 0, timestamp: 1700000000000, topic-partition: t-0" in caplog.text


def test_send_strategy_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        SendStrategy(_client(FakeProducer()), "t")
