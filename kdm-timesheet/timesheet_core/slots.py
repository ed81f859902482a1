"""Working-day slot grid."""

from __future__ import annotations

from .models import DayDefinition, Slot
from .time_utils import format_minutes, require_minutes

DEFAULT_DAY = DayDefinition()


def generate_slots(definition: DayDefinition = DEFAULT_DAY) -> tuple[Slot, ...]:
    """Build the ordered, cleared slot sequence for one working day.

    Steps whose start lies inside [break_start, break_end) are skipped. Only
    slots that end at or before the day end are produced, so an empty or
    inverted day yields an empty tuple.
    """
    step = definition.step_minutes
    if step <= 0:
        raise ValueError(f"step_minutes must be positive, got {step}")

    start = require_minutes(definition.start, field="start")
    end = require_minutes(definition.end, field="end")
    break_start = require_minutes(definition.break_start, field="break_start")
    break_end = require_minutes(definition.break_end, field="break_end")

    slots: list[Slot] = []
    current = start
    while current + step <= end:
        if not (break_start <= current < break_end):
            slots.append(
                Slot(
                    index=len(slots),
                    start_time=format_minutes(current),
                    end_time=format_minutes(current + step),
                )
            )
        current += step
    return tuple(slots)
