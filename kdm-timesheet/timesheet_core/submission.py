"""Drain pending slots of a day to the remote timesheet service.

Each eligible slot is dispatched on its own: a rejected or failing item is
counted and the batch moves on. Slot state is not touched here; callers
regenerate and re-merge the day afterwards to pick up the new records.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .models import KIND_DAY_OFF, KIND_PLANNED, JobCatalog, RemoteResult, Slot, SlotFailure
from .time_utils import slot_timestamp

logger = logging.getLogger(__name__)

SLOT_HOURS = 0.5


@dataclass(frozen=True)
class JobSubmission:
    job_id: Any
    description: str
    start_time: str
    end_time: str
    hours: float = SLOT_HOURS
    piece: int = 0


class SubmissionTarget(Protocol):
    def submit_job(self, job: JobSubmission) -> RemoteResult: ...

    def submit_planning(self, day: str, start_time: str, end_time: str, job_id: Any) -> RemoteResult: ...

    def submit_day_off(self, day: str, start_time: str, end_time: str) -> RemoteResult: ...


@dataclass
class SubmissionReport:
    eligible_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    failures: list[SlotFailure] = field(default_factory=list)

    @property
    def nothing_to_submit(self) -> bool:
        return self.eligible_count == 0

    @property
    def all_succeeded(self) -> bool:
        return self.eligible_count > 0 and self.failure_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible_count,
            "succeeded": self.success_count,
            "failed": self.failure_count,
            "nothing_to_submit": self.nothing_to_submit,
            "failures": [
                {"index": f.index, "start_time": f.start_time, "kind": f.kind, "message": f.message}
                for f in self.failures
            ],
        }


def pending_slots(slots: Sequence[Slot]) -> list[Slot]:
    return sorted((slot for slot in slots if slot.is_pending), key=lambda slot: slot.index)


def build_job_submission(slot: Slot, catalog: JobCatalog, day: str) -> JobSubmission:
    description = slot.description
    if not description:
        job = catalog.get(slot.job_id)
        description = f"Routine {job.name if job else slot.job_id}"
    return JobSubmission(
        job_id=slot.job_id,
        description=description,
        start_time=slot_timestamp(day, slot.start_time),
        end_time=slot_timestamp(day, slot.end_time),
    )


def _dispatch(slot: Slot, catalog: JobCatalog, day: str, target: SubmissionTarget) -> RemoteResult:
    if slot.kind == KIND_DAY_OFF:
        return target.submit_day_off(day, slot.start_time, slot.end_time)
    if slot.kind == KIND_PLANNED:
        return target.submit_planning(day, slot.start_time, slot.end_time, slot.job_id)
    return target.submit_job(build_job_submission(slot, catalog, day))


def submit_pending(
    slots: Sequence[Slot],
    catalog: JobCatalog,
    day: str,
    target: SubmissionTarget,
) -> SubmissionReport:
    eligible = pending_slots(slots)
    report = SubmissionReport(eligible_count=len(eligible))
    if not eligible:
        logger.info("Nothing to submit for %s", day)
        return report

    for slot in eligible:
        try:
            result = _dispatch(slot, catalog, day, target)
        except Exception as exc:
            logger.exception("Submitting %s slot %s on %s failed", slot.kind, slot.start_time, day)
            result = RemoteResult(success=False, message=str(exc) or type(exc).__name__)

        if result.success:
            report.success_count += 1
            continue
        report.failure_count += 1
        report.failures.append(
            SlotFailure(index=slot.index, start_time=slot.start_time, kind=slot.kind, message=result.message or "")
        )

    logger.info(
        "Submitted %s: %d succeeded, %d failed", day, report.success_count, report.failure_count
    )
    return report
