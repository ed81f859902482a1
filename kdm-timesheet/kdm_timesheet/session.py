"""Per-user working session: the selected day, its slots and the job catalog.

The session is the only owner of the slot tuple. Every edit swaps in a new
tuple returned by ``timesheet_core``; nothing mutates slots in place.
"""

from __future__ import annotations

import logging
import random
from typing import Any

import httpx

from timesheet_core.autofill import FillResult, ShakeFillSession, auto_fill
from timesheet_core.merge import merge_records
from timesheet_core.models import DAY_OFF_LABEL, PLANNED_LABEL, DayDefinition, JobCatalog, Slot
from timesheet_core.slots import generate_slots
from timesheet_core.submission import SubmissionReport, submit_pending
from timesheet_core.transitions import (
    ClearOutcome,
    apply_transition,
    assign_job,
    assign_planned,
    clear_slot,
    mark_day_off,
    replace_slot,
    slot_at,
)

from .kdm_client import Credentials, KdmClient
from .utils import ensure_date, today_iso

logger = logging.getLogger(__name__)


class NotLoggedIn(Exception):
    pass


def slot_label(slot: Slot, catalog: JobCatalog) -> str:
    if slot.is_day_off:
        return DAY_OFF_LABEL
    if slot.is_planned:
        return slot.description or PLANNED_LABEL
    if slot.job_id is not None:
        job = catalog.get(slot.job_id)
        return job.name if job else "Job"
    if slot.is_persisted:
        return slot.description
    return ""


class DaySession:
    def __init__(
        self,
        client: KdmClient,
        creds: Credentials | None,
        *,
        definition: DayDefinition | None = None,
        history_limit: int = 100,
    ):
        self.client = client
        self.creds = creds
        self.definition = definition or DayDefinition()
        self.history_limit = history_limit
        self.catalog = JobCatalog()
        self.day: str | None = None
        self.slots: tuple[Slot, ...] = ()
        self.shake: ShakeFillSession | None = None

    def _require_creds(self) -> Credentials:
        if self.creds is None:
            raise NotLoggedIn("log in first")
        return self.creds

    def _require_day(self) -> str:
        if self.day is None:
            raise ValueError("no day selected")
        return self.day

    def load_catalog(self) -> JobCatalog:
        self.catalog = self.client.fetch_job_catalog(self._require_creds())
        logger.info("Loaded %d job definitions", len(self.catalog))
        return self.catalog

    def select_date(self, day: str | None = None) -> tuple[Slot, ...]:
        """Switch to ``day``, discarding unsubmitted edits of the previous day."""
        self.cancel_shake_fill()
        self.day = ensure_date(day or today_iso())
        return self.refresh()

    def refresh(self) -> tuple[Slot, ...]:
        creds = self._require_creds()
        day = self._require_day()
        slots = generate_slots(self.definition)
        try:
            history = self.client.fetch_history(creds, limit=self.history_limit)
        except httpx.HTTPError:
            logger.exception("Fetching existing records for %s failed", day)
            history = []
        self.slots = merge_records(slots, history, day)
        return self.slots

    # -- Slot edits --

    def assign_job(self, index: int, job_id: Any, *, confirmed: bool = False) -> Slot:
        self.slots = apply_transition(
            self.slots, index, lambda slot: assign_job(slot, job_id, self.catalog), confirmed=confirmed
        )
        return self.slots[index]

    def plan_job(self, index: int, job_id: Any, *, confirmed: bool = False) -> Slot:
        self.slots = apply_transition(
            self.slots, index, lambda slot: assign_planned(slot, job_id, self.catalog), confirmed=confirmed
        )
        return self.slots[index]

    def mark_day_off(self, index: int, *, confirmed: bool = False) -> Slot:
        self.slots = apply_transition(self.slots, index, mark_day_off, confirmed=confirmed)
        return self.slots[index]

    def clear(self, index: int, *, confirmed: bool = False) -> ClearOutcome:
        bound = self.client.bind(self._require_creds())
        outcome = clear_slot(self.slots, index, bound.delete_record, confirmed=confirmed)
        self.slots = outcome.slots
        return outcome

    # -- Bulk operations --

    def auto_fill(self, rng: random.Random | None = None) -> FillResult:
        result = auto_fill(self.slots, self.catalog, rng=rng)
        self.slots = result.slots
        return result

    def start_shake_fill(self, sensor: Any, rng: random.Random | None = None) -> ShakeFillSession:
        if not self.catalog:
            raise ValueError("job catalog must be loaded before shake fill")
        self.cancel_shake_fill()
        self.shake = ShakeFillSession(lambda: self.auto_fill(rng))
        return self.shake.start(sensor)

    def cancel_shake_fill(self) -> None:
        shake, self.shake = self.shake, None
        if shake is not None:
            shake.cancel()

    def submit(self) -> SubmissionReport:
        """Submit pending slots, then reload the day from the server.

        Slots whose submission failed are carried over as pending edits so a
        retry sends only those; the ones that went through come back as
        persisted records.
        """
        day = self._require_day()
        target = self.client.bind(self._require_creds())
        report = submit_pending(self.slots, self.catalog, day, target)
        if report.nothing_to_submit:
            return report

        failed = {failure.index: slot_at(self.slots, failure.index) for failure in report.failures}
        self.refresh()
        for index, slot in failed.items():
            if slot_at(self.slots, index).is_empty:
                self.slots = replace_slot(self.slots, slot)
        return report

    def close(self) -> None:
        self.cancel_shake_fill()

    def __enter__(self) -> DaySession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def day_view(self) -> dict[str, Any]:
        rows = []
        for slot in self.slots:
            row = slot.to_dict()
            row["label"] = slot_label(slot, self.catalog)
            rows.append(row)
        return {
            "date": self.day,
            "user": self.creds.display_name if self.creds else None,
            "pending": sum(1 for slot in self.slots if slot.is_pending),
            "slots": rows,
        }
