from __future__ import annotations

"""Temperature sensor demo messages.

The producer side pretends to be one sensor device taking a reading about once
per second; the device id is the message key, so all readings from one device
land in the same partition, in order.
"""

import datetime as dt
import os
import random
from dataclasses import dataclass
from typing import Any, Callable

from .shutdown import CancellationToken


@dataclass(frozen=True)
class SensorEvent:
    device_id: str
    measure_type: str
    unit_type: str
    timestamp: dt.datetime
    value: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SensorEvent":
        return cls(
            device_id=str(data["device_id"]),
            measure_type=str(data["measure_type"]),
            unit_type=str(data["unit_type"]),
            timestamp=dt.datetime.fromisoformat(data["timestamp"]),
            value=int(data["value"]),
        )


def acquire_temperature_sensor_measurement(
    *,
    device_id: str,
    previous: int | None = None,
    rng: random.Random | None = None,
) -> SensorEvent:
    """Take one reading. Values drift by at most one degree from the previous one.

    Args:
        device_id: id of the (simulated) device.
        previous: the last value read, or None for the first reading.
        rng: optional RNG (useful for deterministic tests).
    """
    r = rng or random
    if previous is None:
        value = r.randint(-10, 30)
    else:
        value = previous + r.choice((-1, 0, 1))
    return SensorEvent(
        device_id=device_id,
        measure_type="temperature",
        unit_type="celsius",
        timestamp=dt.datetime.now(dt.timezone.utc).replace(microsecond=0),
        value=value,
    )


def temperature_sensor_supplier(
    token: CancellationToken,
    *,
    interval_seconds: float = 1.0,
    device_id: str | None = None,
    rng: random.Random | None = None,
) -> Callable[[], SensorEvent]:
    """Supplier of sensor readings, one every `interval_seconds`.

    Waiting is done on the token so a shutdown wakes the supplier at once.
    """
    device = device_id or f"sensor-{os.getpid()}"
    last: list[int] = []

    def supply() -> SensorEvent:
        token.sleep(interval_seconds)
        event = acquire_temperature_sensor_measurement(
            device_id=device, previous=last[0] if last else None, rng=rng
        )
        last[:] = [event.value]
        return event

    return supply


def sensor_event_to_console(event: SensorEvent) -> None:
    print(
        f"[measurement] {event.timestamp.isoformat()} {event.device_id}: "
        f"{event.measure_type} {event.value} {event.unit_type}"
    )
