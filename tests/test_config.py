from kafka_sandbox.kafka_config import admin_config, client_log, consumer_config, producer_config
from kafka_sandbox.topics import DEFAULT_BROKER, MEASUREMENTS_TOPIC, default_broker, topic_or_default


def test_default_broker_env_override(monkeypatch):
    monkeypatch.delenv("KAFKA_BROKER", raising=False)
    assert default_broker() == DEFAULT_BROKER == "localhost:9092"
    monkeypatch.setenv("KAFKA_BROKER", "kafka:29092")
    assert default_broker() == "kafka:29092"
    assert producer_config()["bootstrap.servers"] == "kafka:29092"


def test_topic_or_default():
    assert topic_or_default(None, MEASUREMENTS_TOPIC) == "measurements"
    assert topic_or_default("  ", MEASUREMENTS_TOPIC) == "measurements"
    assert topic_or_default("other", MEASUREMENTS_TOPIC) == "other"


def test_client_configs():
    p = producer_config("b:1", {"linger.ms": 50})
    assert p["bootstrap.servers"] == "b:1"
    assert p["linger.ms"] == 50
    assert p["logger"] is client_log

    c = consumer_config("console", "b:1")
    assert c["group.id"] == "console"
    assert c["auto.offset.reset"] == "earliest"

    assert admin_config("b:1") == {"bootstrap.servers": "b:1", "logger": client_log}
