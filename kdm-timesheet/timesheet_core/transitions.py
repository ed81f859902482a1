"""User-initiated slot transitions.

Every operation returns new values; the slot tuple owned by a day is never
edited in place. Slots that already carry a remote record need an explicit
``confirmed=True`` before a user change is applied.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from .models import DAY_OFF_LABEL, PLANNED_LABEL, JobCatalog, RemoteResult, Slot

logger = logging.getLogger(__name__)

Transition = Callable[[Slot], Slot]
DeleteRecord = Callable[[Any], RemoteResult]


class ConfirmationRequired(Exception):
    """Raised when a persisted slot would be changed without confirmation."""

    def __init__(self, slot: Slot):
        super().__init__(
            f"slot {slot.start_time}-{slot.end_time} is backed by record "
            f"{slot.existing_record_id}; confirm to change it"
        )
        self.slot = slot


def routine_description(job_name: str) -> str:
    return f"Routine {job_name} work"


def assign_job(slot: Slot, job_id: Any, catalog: JobCatalog) -> Slot:
    job = catalog.get(job_id)
    if job is None:
        logger.debug("Job %s not in catalog, assigning without description", job_id)
    return replace(
        slot,
        job_id=job_id,
        is_day_off=False,
        is_planned=False,
        existing_record_id=None,
        description=routine_description(job.name) if job else "",
    )


def assign_planned(slot: Slot, job_id: Any, catalog: JobCatalog) -> Slot:
    job = catalog.get(job_id)
    return replace(
        slot,
        job_id=job_id,
        is_day_off=False,
        is_planned=True,
        existing_record_id=None,
        description=f"Plan: {job.name}" if job else PLANNED_LABEL,
    )


def mark_day_off(slot: Slot) -> Slot:
    return replace(
        slot,
        job_id=None,
        is_day_off=True,
        is_planned=False,
        existing_record_id=None,
        description=DAY_OFF_LABEL,
    )


def reset_slot(slot: Slot) -> Slot:
    return Slot(index=slot.index, start_time=slot.start_time, end_time=slot.end_time)


def replace_slot(slots: Sequence[Slot], updated: Slot) -> tuple[Slot, ...]:
    result = list(slots)
    result[_position(result, updated.index)] = updated
    return tuple(result)


def _position(slots: Sequence[Slot], index: int) -> int:
    for pos, slot in enumerate(slots):
        if slot.index == index:
            return pos
    raise IndexError(f"no slot with index {index}")


def slot_at(slots: Sequence[Slot], index: int) -> Slot:
    return slots[_position(slots, index)]


def apply_transition(
    slots: Sequence[Slot],
    index: int,
    transition: Transition,
    *,
    confirmed: bool = False,
) -> tuple[Slot, ...]:
    slot = slot_at(slots, index)
    if slot.is_persisted and not confirmed:
        raise ConfirmationRequired(slot)
    return replace_slot(slots, transition(slot))


@dataclass(frozen=True)
class ClearOutcome:
    slots: tuple[Slot, ...]
    cleared: bool
    deleted_record_id: Any = None
    message: str | None = None


def clear_slot(
    slots: Sequence[Slot],
    index: int,
    delete_record: DeleteRecord,
    *,
    confirmed: bool = False,
) -> ClearOutcome:
    """Reset a slot to empty, deleting its remote record first when it has one.

    A persisted slot is only reset once ``delete_record`` reports success. A
    rejected or failing delete leaves the sequence untouched.
    """
    slot = slot_at(slots, index)
    if not slot.is_persisted:
        return ClearOutcome(slots=replace_slot(slots, reset_slot(slot)), cleared=True)
    if not confirmed:
        raise ConfirmationRequired(slot)

    record_id = slot.existing_record_id
    try:
        result = delete_record(record_id)
    except Exception as exc:
        logger.exception("Deleting record %s failed", record_id)
        return ClearOutcome(slots=tuple(slots), cleared=False, message=str(exc) or type(exc).__name__)

    if not result.success:
        logger.warning("Remote rejected deletion of record %s: %s", record_id, result.message)
        return ClearOutcome(slots=tuple(slots), cleared=False, message=result.message)

    return ClearOutcome(
        slots=replace_slot(slots, reset_slot(slot)),
        cleared=True,
        deleted_record_id=record_id,
        message=result.message,
    )
