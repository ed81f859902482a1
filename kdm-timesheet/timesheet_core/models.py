from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

# Remote record status ids. Anything that is not a day-off or a plan is
# treated as ordinary completed work.
STATUS_DAY_OFF = "DayOff"
STATUS_PLANNED = "Planned"
STATUS_COMPLETED = "Completed"

KIND_EMPTY = "empty"
KIND_JOB = "job"
KIND_PLANNED = "planned"
KIND_DAY_OFF = "day_off"

DAY_OFF_LABEL = "Day off"
PLANNED_LABEL = "Planned work"
ROUTINE_LABEL = "Routine work"

MAX_JOB_NAME_LENGTH = 60


@dataclass(frozen=True)
class Slot:
    index: int
    start_time: str
    end_time: str
    job_id: Any = None
    description: str = ""
    is_day_off: bool = False
    is_planned: bool = False
    existing_record_id: Any = None

    @property
    def is_persisted(self) -> bool:
        return self.existing_record_id is not None

    @property
    def is_empty(self) -> bool:
        return (
            self.job_id is None
            and not self.is_day_off
            and not self.is_planned
            and self.existing_record_id is None
        )

    @property
    def is_pending(self) -> bool:
        """True when the slot carries content that has not been submitted yet."""
        return self.kind != KIND_EMPTY and not self.is_persisted

    @property
    def kind(self) -> str:
        if self.is_day_off:
            return KIND_DAY_OFF
        if self.is_planned:
            return KIND_PLANNED
        if self.job_id is not None:
            return KIND_JOB
        return KIND_EMPTY

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "job_id": self.job_id,
            "description": self.description,
            "is_day_off": self.is_day_off,
            "is_planned": self.is_planned,
            "existing_record_id": self.existing_record_id,
            "kind": self.kind,
        }


def truncate_job_name(name: str, limit: int = MAX_JOB_NAME_LENGTH) -> str:
    if len(name) <= limit:
        return name
    return name[: limit - 3] + "..."


@dataclass(frozen=True)
class JobDefinition:
    id: Any
    name: str


class JobCatalog:
    """Ordered, read-only set of job definitions loaded once per session."""

    def __init__(self, jobs: Iterable[JobDefinition] = ()):
        self._jobs: tuple[JobDefinition, ...] = tuple(jobs)
        self._by_id = {job.id: job for job in self._jobs}

    def get(self, job_id: Any) -> JobDefinition | None:
        return self._by_id.get(job_id)

    def __iter__(self) -> Iterator[JobDefinition]:
        return iter(self._jobs)

    def __len__(self) -> int:
        return len(self._jobs)

    def __bool__(self) -> bool:
        return bool(self._jobs)

    def __repr__(self) -> str:
        return f"JobCatalog({len(self._jobs)} jobs)"


@dataclass(frozen=True)
class RemoteRecord:
    id: Any
    start_timestamp: str
    status_kind: str = STATUS_COMPLETED
    job_id: Any = None
    description: str | None = None
    job_name: str | None = None
    end_timestamp: str | None = None
    hours: float | None = None


@dataclass(frozen=True)
class RemoteResult:
    success: bool
    message: str | None = None


@dataclass(frozen=True)
class DayDefinition:
    start: str = "08:30"
    end: str = "17:30"
    break_start: str = "12:30"
    break_end: str = "13:30"
    step_minutes: int = 30


@dataclass
class SlotFailure:
    index: int
    start_time: str
    kind: str
    message: str = field(default="")
