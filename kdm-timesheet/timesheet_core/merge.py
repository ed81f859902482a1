from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .models import (
    DAY_OFF_LABEL,
    PLANNED_LABEL,
    ROUTINE_LABEL,
    STATUS_DAY_OFF,
    STATUS_PLANNED,
    RemoteRecord,
    Slot,
)
from .time_utils import split_timestamp

logger = logging.getLogger(__name__)


def _overlay(slot: Slot, record: RemoteRecord) -> Slot:
    if record.status_kind == STATUS_DAY_OFF:
        return replace(
            slot,
            job_id=None,
            is_day_off=True,
            is_planned=False,
            existing_record_id=record.id,
            description=DAY_OFF_LABEL,
        )
    if record.status_kind == STATUS_PLANNED:
        return replace(
            slot,
            job_id=record.job_id,
            is_day_off=False,
            is_planned=True,
            existing_record_id=record.id,
            description=record.job_name or PLANNED_LABEL,
        )
    return replace(
        slot,
        job_id=record.job_id,
        is_day_off=False,
        is_planned=False,
        existing_record_id=record.id,
        description=record.description or record.job_name or ROUTINE_LABEL,
    )


def merge_records(
    slots: Sequence[Slot],
    records: Iterable[RemoteRecord],
    target_date: str,
) -> tuple[Slot, ...]:
    """Overlay persisted remote records for ``target_date`` onto a slot grid.

    Records are matched to slots by exact "HH:MM" start time. Records that do
    not land on a slot boundary are dropped. When two records hit the same
    slot the later one in ``records`` wins.
    """
    merged = list(slots)
    position = {slot.start_time: pos for pos, slot in enumerate(merged)}

    for record in records:
        parts = split_timestamp(record.start_timestamp)
        if parts is None:
            logger.debug("Skipping record %s with unparseable start %r", record.id, record.start_timestamp)
            continue
        day, hhmm = parts
        if day != target_date:
            continue
        pos = position.get(hhmm)
        if pos is None:
            logger.debug("Skipping record %s: %s %s matches no slot", record.id, day, hhmm)
            continue
        merged[pos] = _overlay(merged[pos], record)

    return tuple(merged)
