"""Kafka sandbox: console producers, consumers and topic admin for experimenting with Kafka.

Built on confluent-kafka. The pieces:
- a JSON message producer loop with a blocking or non-blocking send strategy
- a JSON message consumer loop
- topic create/delete commands
- sample message generators (sensor measurements, console chat, number sequence)

Run `python -m kafka_sandbox.app -h` to get started.
"""
from __future__ import annotations
