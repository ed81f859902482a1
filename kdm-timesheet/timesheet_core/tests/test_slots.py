"""Tests for the working-day slot grid."""

import pytest

from timesheet_core.models import DayDefinition
from timesheet_core.slots import generate_slots
from timesheet_core.time_utils import parse_hhmm_to_minutes


class TestDefaultDay:
    def test_sixteen_slots(self):
        slots = generate_slots(DayDefinition())
        assert len(slots) == 16

    def test_first_and_last(self):
        slots = generate_slots(DayDefinition())
        assert (slots[0].start_time, slots[0].end_time) == ("08:30", "09:00")
        assert (slots[-1].start_time, slots[-1].end_time) == ("17:00", "17:30")

    def test_lunch_break_skipped(self):
        starts = {slot.start_time for slot in generate_slots(DayDefinition())}
        assert "12:30" not in starts
        assert "13:00" not in starts
        assert "12:00" in starts
        assert "13:30" in starts

    def test_indexes_sequential(self):
        slots = generate_slots(DayDefinition())
        assert [slot.index for slot in slots] == list(range(16))

    def test_slots_start_empty(self):
        assert all(slot.is_empty for slot in generate_slots(DayDefinition()))


class TestGridProperties:
    @pytest.mark.parametrize(
        "definition",
        [
            DayDefinition(),
            DayDefinition(start="07:00", end="19:00", break_start="11:00", break_end="12:30"),
            DayDefinition(start="09:00", end="17:00", break_start="12:00", break_end="12:00"),
            DayDefinition(start="08:00", end="18:00", break_start="12:00", break_end="13:00", step_minutes=15),
            DayDefinition(start="00:00", end="24:00", break_start="00:00", break_end="06:00", step_minutes=60),
        ],
    )
    def test_ordered_unique_and_outside_break(self, definition):
        slots = generate_slots(definition)
        starts = [parse_hhmm_to_minutes(slot.start_time) for slot in slots]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)

        b0 = parse_hhmm_to_minutes(definition.break_start)
        b1 = parse_hhmm_to_minutes(definition.break_end)
        assert not any(b0 <= s < b1 for s in starts)

        for prev, nxt in zip(slots, slots[1:]):
            assert parse_hhmm_to_minutes(prev.end_time) <= parse_hhmm_to_minutes(nxt.start_time)

    def test_deterministic(self):
        definition = DayDefinition(start="07:30", end="16:00")
        assert generate_slots(definition) == generate_slots(definition)

    def test_inverted_day_is_empty(self):
        assert generate_slots(DayDefinition(start="17:00", end="08:00")) == ()

    def test_zero_length_day_is_empty(self):
        assert generate_slots(DayDefinition(start="09:00", end="09:00")) == ()

    def test_no_partial_slot_at_day_end(self):
        slots = generate_slots(DayDefinition(start="08:00", end="09:45", break_start="12:00", break_end="12:00"))
        assert slots[-1].end_time == "09:30"

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            generate_slots(DayDefinition(step_minutes=0))

    def test_invalid_time(self):
        with pytest.raises(ValueError):
            generate_slots(DayDefinition(start="8h30"))
