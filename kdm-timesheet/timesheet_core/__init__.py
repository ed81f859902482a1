"""Day-schedule reconciliation and submission core for the KDM timesheet."""

from .autofill import FillResult, MotionSample, ShakeDetector, ShakeEvent, ShakeFillSession, auto_fill
from .merge import merge_records
from .models import DayDefinition, JobCatalog, JobDefinition, RemoteRecord, RemoteResult, Slot
from .slots import generate_slots
from .submission import JobSubmission, SubmissionReport, submit_pending
from .transitions import (
    ClearOutcome,
    ConfirmationRequired,
    apply_transition,
    assign_job,
    assign_planned,
    clear_slot,
    mark_day_off,
    replace_slot,
)

__all__ = [
    "ClearOutcome",
    "ConfirmationRequired",
    "DayDefinition",
    "FillResult",
    "JobCatalog",
    "JobDefinition",
    "JobSubmission",
    "MotionSample",
    "RemoteRecord",
    "RemoteResult",
    "ShakeDetector",
    "ShakeEvent",
    "ShakeFillSession",
    "Slot",
    "SubmissionReport",
    "apply_transition",
    "assign_job",
    "assign_planned",
    "auto_fill",
    "clear_slot",
    "generate_slots",
    "mark_day_off",
    "merge_records",
    "replace_slot",
    "submit_pending",
]
