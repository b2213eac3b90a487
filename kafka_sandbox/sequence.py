"""Sequence validation demo.

The producer sends consecutive integers (no key) at a fixed rate and keeps the
next number in a state file, so a restarted producer continues where the last
one stopped. The consumer checks that numbers arrive in order and reports gaps
(lost or skipped messages) and numbers arriving late or twice (duplicates or
reordering, e.g. across partitions or after a rebalance).
"""

from __future__ import annotations

import enum
import logging
import os
from pathlib import Path
from typing import Callable

from .shutdown import CancellationToken

log = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path("target/sequence-producer.state")


def read_next_number(state_file: Path) -> int:
    try:
        return int(state_file.read_text(encoding="utf-8").strip())
    except FileNotFoundError:
        return 1
    except ValueError:
        log.warning("Ignoring corrupt sequence state in %s, starting from 1", state_file)
        return 1


def write_next_number(state_file: Path, n: int) -> None:
    state_file.parent.mkdir(parents=True, exist_ok=True)
    tmp = state_file.with_name(state_file.name + ".tmp")
    tmp.write_text(f"{n}\n", encoding="utf-8")
    os.replace(tmp, state_file)


def sequence_supplier(
    token: CancellationToken,
    *,
    state_file: Path = DEFAULT_STATE_FILE,
    interval_seconds: float = 1.0,
) -> Callable[[], int]:
    """Supplier of the next sequence number, one every `interval_seconds`."""
    next_number = [read_next_number(state_file)]
    log.info("Sequence producer starting at %d (state in %s)", next_number[0], state_file)

    def supply() -> int:
        token.sleep(interval_seconds)
        n = next_number[0]
        write_next_number(state_file, n + 1)
        next_number[0] = n + 1
        return n

    return supply


class SequenceStatus(enum.Enum):
    SYNC = "sync"
    IN_ORDER = "in-order"
    GAP = "gap"
    OUT_OF_ORDER = "out-of-order"


class SequenceValidator:
    """Tracks the expected next number and classifies every received one."""

    def __init__(self) -> None:
        self.expected: int | None = None
        self.errors = 0

    def validate(self, n: int) -> SequenceStatus:
        expected = self.expected
        if expected is None:
            status = SequenceStatus.SYNC
        elif n == expected:
            status = SequenceStatus.IN_ORDER
        elif n > expected:
            status = SequenceStatus.GAP
            self.errors += 1
        else:
            status = SequenceStatus.OUT_OF_ORDER
            self.errors += 1

        if status is not SequenceStatus.OUT_OF_ORDER:
            self.expected = n + 1
        return status

    def __call__(self, n: int) -> None:
        expected = self.expected
        status = self.validate(int(n))
        if status is SequenceStatus.SYNC:
            print(f"[sequence] synchronized at {n}")
        elif status is SequenceStatus.IN_ORDER:
            print(f"[sequence] {n} ok")
        elif status is SequenceStatus.GAP:
            print(f"[sequence] {n} ERROR: gap, expected {expected}, missing {n - expected} message(s) (errors: {self.errors})")
        else:
            print(f"[sequence] {n} ERROR: out of order or duplicate, expected {expected} (errors: {self.errors})")
