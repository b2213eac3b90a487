from __future__ import annotations

# Single-entrypoint runner.
#
#     python -m kafka_sandbox.app <mode> [TOPIC [P|GROUP]] [options]
#
# Producers take an optional partition P to pin all messages to; consumers an
# optional consumer group. The default topic depends on the kind of messages.
# Every producer/consumer runs until Ctrl+C (or SIGTERM), then closes its
# client within a short grace period.

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable

from .admin import TopicAdmin
from .console_messages import Message, console_message_supplier, console_message_to_console
from .consumer import JsonMessageConsumer
from .kafka_config import consumer_config, producer_config
from .measurements import SensorEvent, sensor_event_to_console, temperature_sensor_supplier
from .producer import JsonMessageProducer
from .sequence import DEFAULT_STATE_FILE, SequenceValidator, sequence_supplier
from .shutdown import DEFAULT_GRACE_SECONDS, CancellationToken, run_until_shutdown
from .topics import (
    CONSUMER_GROUP_DEFAULT,
    MEASUREMENTS_TOPIC,
    MESSAGES_TOPIC,
    SEQUENCE_TOPIC,
    default_broker,
    topic_or_default,
)

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s - %(message)s"


class SandboxArgumentParser(argparse.ArgumentParser):
    """Reports any command line mistake as `Bad syntax` and exits with status 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        print(f"Bad syntax: {message}", file=sys.stderr)
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = SandboxArgumentParser(
        description="Kafka sandbox - console producers, consumers and topic admin",
        epilog=f"Default consumer group is '{CONSUMER_GROUP_DEFAULT}'. Kafka broker is {default_broker()}.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_common_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--broker", default=default_broker(), help="bootstrap broker(s) host:port")
        p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    def add_producer(name: str, default_topic: str, summary: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=summary)
        add_common_args(p)
        p.add_argument("topic", nargs="?", default=default_topic, help=f"topic (default: {default_topic})")
        p.add_argument("partition", nargs="?", type=int, default=None, help="send all messages to this partition")
        p.add_argument("--blocking", action="store_true", help="wait for each message to be acknowledged")
        return p

    def add_consumer(name: str, default_topic: str, summary: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=summary)
        add_common_args(p)
        p.add_argument("topic", nargs="?", default=default_topic, help=f"topic (default: {default_topic})")
        p.add_argument("group", nargs="?", default=CONSUMER_GROUP_DEFAULT, help="consumer group")
        return p

    p_prod = add_producer("producer", MEASUREMENTS_TOPIC, "Send temperature sensor measurements")
    p_prod.add_argument("--interval", type=float, default=1.0, help="seconds between measurements")
    add_consumer("consumer", MEASUREMENTS_TOPIC, "Print temperature sensor measurements")

    add_producer("console-message-producer", MESSAGES_TOPIC, "Send lines typed on the console")
    add_consumer("console-message-consumer", MESSAGES_TOPIC, "Print console messages")

    p_seq = add_producer("sequence-producer", SEQUENCE_TOPIC, "Send an increasing number sequence")
    p_seq.add_argument("--interval", type=float, default=1.0, help="seconds between numbers")
    p_seq.add_argument("--state-file", type=Path, default=DEFAULT_STATE_FILE, help="where the next number is kept")
    add_consumer("sequence-consumer", SEQUENCE_TOPIC, "Validate the number sequence")

    p_new = sub.add_parser("newtopic", help="Create a topic with N partitions (default 1)")
    add_common_args(p_new)
    p_new.add_argument("topic")
    p_new.add_argument("partitions", nargs="?", type=int, default=1)

    p_del = sub.add_parser("deltopic", help="Delete a topic")
    add_common_args(p_del)
    p_del.add_argument("topic")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    if args.cmd == "newtopic":
        _new_topic(args)
        return

    if args.cmd == "deltopic":
        _delete_topic(args)
        return

    topic = topic_or_default(args.topic, _DEFAULT_TOPICS[args.cmd])

    if args.cmd == "producer":
        _producer(
            args,
            topic,
            lambda token: temperature_sensor_supplier(token, interval_seconds=args.interval),
            lambda event: event.device_id,
        )
        return

    if args.cmd == "consumer":
        _consumer(args, topic, sensor_event_to_console, SensorEvent.from_dict)
        return

    if args.cmd == "console-message-producer":
        print("Type a message and press Enter to send it (Ctrl+D to stop).")
        _producer(args, topic, lambda token: console_message_supplier(), lambda message: message.sender_id)
        return

    if args.cmd == "console-message-consumer":
        _consumer(args, topic, console_message_to_console, Message.from_dict)
        return

    if args.cmd == "sequence-producer":
        _producer(
            args,
            topic,
            lambda token: sequence_supplier(token, state_file=args.state_file, interval_seconds=args.interval),
            lambda n: None,
        )
        return

    if args.cmd == "sequence-consumer":
        _consumer(args, topic, SequenceValidator(), int)
        return


_DEFAULT_TOPICS = {
    "producer": MEASUREMENTS_TOPIC,
    "consumer": MEASUREMENTS_TOPIC,
    "console-message-producer": MESSAGES_TOPIC,
    "console-message-consumer": MESSAGES_TOPIC,
    "sequence-producer": SEQUENCE_TOPIC,
    "sequence-consumer": SEQUENCE_TOPIC,
}


def _producer(
    args: argparse.Namespace,
    topic: str,
    supplier_factory: Callable[[CancellationToken], Callable[[], Any]],
    key_function: Callable[[Any], str | None],
) -> None:
    log.info("New producer with PID %d", os.getpid())
    token = CancellationToken()
    producer = JsonMessageProducer(
        topic,
        producer_config(args.broker),
        supplier_factory(token),
        key_function,
        non_blocking=not args.blocking,
        partition=args.partition,
    )
    run_until_shutdown(producer.produce_loop, token=token, grace_seconds=DEFAULT_GRACE_SECONDS, name="producer-loop")


def _consumer(
    args: argparse.Namespace,
    topic: str,
    handler: Callable[[Any], None],
    from_dict: Callable[[Any], Any],
) -> None:
    log.info("New consumer with PID %d", os.getpid())
    consumer = JsonMessageConsumer(topic, consumer_config(args.group, args.broker), handler, from_dict=from_dict)
    # The consumer is never touched from the shutdown side; the loop closes it.
    run_until_shutdown(consumer.consume_loop, grace_seconds=DEFAULT_GRACE_SECONDS, name="consumer-loop")


def _new_topic(args: argparse.Namespace) -> None:
    try:
        with TopicAdmin(args.broker) as ta:
            ta.create(args.topic, args.partitions)
        log.info("New topic '%s' created with %d partitions.", args.topic, args.partitions)
    except Exception as e:
        print(f"Failed: {e}", file=sys.stderr)
        sys.exit(1)


def _delete_topic(args: argparse.Namespace) -> None:
    try:
        with TopicAdmin(args.broker) as ta:
            ta.delete(args.topic)
        log.info("Delete topic '%s'", args.topic)
    except Exception as e:
        print(f"Failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
