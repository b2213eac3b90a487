from __future__ import annotations

# Console chat demo.
#
# The producer reads lines typed on stdin and sends each one as a message; the
# sender id (one per process) is the key. The consumer prints every message it
# receives. Run a few of each with different consumer groups to see how
# partitions and groups share the messages.

import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, TextIO

from .errors import Interrupted


@dataclass(frozen=True)
class Message:
    text: str
    sender_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(text=str(data["text"]), sender_id=str(data["sender_id"]))


def console_message_supplier(
    *,
    stream: TextIO | None = None,
    sender_id: str | None = None,
) -> Callable[[], Message]:
    """Supplier blocking on the next non-blank input line.

    End of input ends the producer, the same way a shutdown does.
    """
    sender = sender_id or f"sender-{os.getpid()}"

    def supply() -> Message:
        src = stream or sys.stdin
        while True:
            line = src.readline()
            if not line:
                raise Interrupted()
            text = line.strip()
            if text:
                return Message(text=text, sender_id=sender)

    return supply


def console_message_to_console(message: Message) -> None:
    print(f"[{message.sender_id}] {message.text}")
