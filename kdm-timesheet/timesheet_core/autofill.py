"""Randomized bulk fill of empty slots and the shake gesture that triggers it.

Fill policy:
  - between ceil(40%) and ceil(80%) of the empty slots are filled
  - slots are drawn without replacement, jobs with replacement
  - randomness comes from an injectable ``random.Random``

The gesture side only counts qualifying shakes and emits a single "fire"
signal once the quota is reached; it never touches slots itself.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .models import JobCatalog, Slot
from .transitions import assign_job, replace_slot

logger = logging.getLogger(__name__)

FILL_MIN_SHARE = 0.4
FILL_MAX_SHARE = 0.8

SHAKE_THRESHOLD = 2.0
SHAKE_MIN_INTERVAL_MS = 1000
SHAKE_QUOTA = 2

_default_rng = random.Random()


@dataclass(frozen=True)
class FillResult:
    slots: tuple[Slot, ...]
    filled_count: int
    empty_count: int

    @property
    def nothing_to_fill(self) -> bool:
        return self.empty_count == 0


def fill_bounds(empty_count: int) -> tuple[int, int]:
    return math.ceil(empty_count * FILL_MIN_SHARE), math.ceil(empty_count * FILL_MAX_SHARE)


def auto_fill(
    slots: Sequence[Slot],
    catalog: JobCatalog,
    *,
    rng: random.Random | None = None,
) -> FillResult:
    rng = rng or _default_rng
    empty = [slot for slot in slots if slot.is_empty]
    if not empty:
        return FillResult(slots=tuple(slots), filled_count=0, empty_count=0)
    if not catalog:
        logger.warning("Auto-fill skipped: job catalog is empty")
        return FillResult(slots=tuple(slots), filled_count=0, empty_count=len(empty))

    low, high = fill_bounds(len(empty))
    job_count = rng.randint(low, high)
    chosen = rng.sample(empty, job_count)

    result = tuple(slots)
    for slot in chosen:
        job = rng.choice(list(catalog))
        result = replace_slot(result, assign_job(slot, job.id, catalog))

    logger.info("Auto-filled %d of %d empty slots", len(chosen), len(empty))
    return FillResult(slots=result, filled_count=len(chosen), empty_count=len(empty))


# -- Shake trigger --

@dataclass(frozen=True)
class MotionSample:
    x: float
    y: float
    z: float
    timestamp_ms: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


@dataclass(frozen=True)
class ShakeEvent:
    timestamp_ms: float
    magnitude: float


class ShakeDetector:
    """Turns raw accelerometer samples into spaced-out shake events."""

    def __init__(self, *, threshold: float = SHAKE_THRESHOLD, min_interval_ms: float = SHAKE_MIN_INTERVAL_MS):
        self.threshold = threshold
        self.min_interval_ms = min_interval_ms
        self._last_event_ms: float | None = None

    def reset(self) -> None:
        self._last_event_ms = None

    def on_motion_sample(self, sample: MotionSample) -> ShakeEvent | None:
        magnitude = sample.magnitude
        if magnitude <= self.threshold:
            return None
        if self._last_event_ms is not None and sample.timestamp_ms - self._last_event_ms <= self.min_interval_ms:
            return None
        self._last_event_ms = sample.timestamp_ms
        return ShakeEvent(timestamp_ms=sample.timestamp_ms, magnitude=magnitude)


class ShakeFillSession:
    """One shake-to-fill attempt.

    ``sensor`` is anything with ``add_listener(callback)`` returning a
    subscription that has ``remove()``. The subscription is released when the
    quota fires, on ``cancel()``, on ``close()`` and on context exit.
    """

    def __init__(
        self,
        on_fire: Callable[[], Any],
        *,
        detector: ShakeDetector | None = None,
        quota: int = SHAKE_QUOTA,
    ):
        self.on_fire = on_fire
        self.detector = detector or ShakeDetector()
        self.quota = quota
        self.shake_count = 0
        self.state = "idle"
        self._subscription: Any = None

    @property
    def active(self) -> bool:
        return self.state == "active"

    def start(self, sensor: Any) -> ShakeFillSession:
        if self.state != "idle":
            raise RuntimeError(f"shake session already {self.state}")
        self.detector.reset()
        self.shake_count = 0
        self._subscription = sensor.add_listener(self.handle_sample)
        self.state = "active"
        return self

    def handle_sample(self, sample: MotionSample) -> bool:
        """Feed one sample; returns True if this sample fired the fill."""
        if not self.active:
            return False
        event = self.detector.on_motion_sample(sample)
        if event is None:
            return False
        self.shake_count += 1
        logger.debug("Shake %d/%d (magnitude %.2f)", self.shake_count, self.quota, event.magnitude)
        if self.shake_count < self.quota:
            return False

        self.state = "fired"
        try:
            self.on_fire()
        finally:
            self._release()
        return True

    def cancel(self) -> None:
        if self.active:
            self.state = "cancelled"
        self._release()

    def close(self) -> None:
        if self.active:
            self.state = "closed"
        self._release()

    def _release(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.remove()

    def __enter__(self) -> ShakeFillSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
