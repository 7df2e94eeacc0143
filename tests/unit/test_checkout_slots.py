import pytest
from datetime import date, timedelta

from salonbook.checkout.slots import (
    SlotSelection,
    SlotSelector,
    ToggleResult,
    format_time_label,
    generate_dates,
    generate_time_slots,
    toggle_time,
    validate_selection,
)
from salonbook.errors import PreconditionError, ValidationError

TODAY = date(2026, 10, 19)


def test_generate_dates_window_of_21_days():
    dates = generate_dates(21, today=TODAY)
    assert len(dates) == 21
    assert dates[0].value == "2026-10-19"
    assert dates[-1].value == (TODAY + timedelta(days=20)).isoformat()
    assert dates[0].day == "Mon"
    assert dates[0].month == "OCT"
    assert dates[0].date == 19


def test_generate_dates_rejects_empty_window():
    with pytest.raises(ValidationError):
        generate_dates(0, today=TODAY)


def test_default_time_slots():
    slots = generate_time_slots()
    assert slots[0] == "2:30 PM"
    assert slots[-1] == "8:15 PM"
    assert len(slots) == 24
    assert "5:00 PM" in slots


def test_time_labels_noon_and_midnight():
    assert format_time_label(12 * 60) == "12:00 PM"
    assert format_time_label(0) == "12:00 AM"
    assert generate_time_slots("11:45", "12:15", 15) == ["11:45 AM", "12:00 PM", "12:15 PM"]


def test_time_slots_invalid_parameters():
    with pytest.raises(ValidationError):
        generate_time_slots("14:30", "20:15", 0)
    with pytest.raises(ValidationError):
        generate_time_slots("20:15", "14:30", 15)


def test_toggle_time_pure_function():
    selected, result = toggle_time([], "2:30 PM")
    assert (selected, result) == (["2:30 PM"], ToggleResult.ADDED)
    selected, result = toggle_time(selected, "2:30 PM")
    assert (selected, result) == ([], ToggleResult.REMOVED)
    full = ["2:30 PM", "2:45 PM", "3:00 PM"]
    selected, result = toggle_time(full, "3:15 PM")
    assert result == ToggleResult.LIMIT_REACHED
    assert selected == full


def test_selector_requires_date_before_time():
    selector = SlotSelector(21, today=TODAY)
    with pytest.raises(PreconditionError):
        selector.toggle_time("2:30 PM")


def test_selector_keeps_insertion_order_and_limit():
    selector = SlotSelector(21, today=TODAY)
    selector.select_date("2026-10-20")
    for label in ("4:00 PM", "2:30 PM", "3:00 PM"):
        assert selector.toggle_time(label) == ToggleResult.ADDED
    assert selector.toggle_time("5:00 PM") == ToggleResult.LIMIT_REACHED
    assert selector.selected_times == ["4:00 PM", "2:30 PM", "3:00 PM"]
    selection = selector.selection()
    assert selection.times == ["4:00 PM", "2:30 PM", "3:00 PM"]
    assert selection.combined_label() == "4:00 PM, 2:30 PM, 3:00 PM"


def test_selector_rejects_out_of_window_date_and_unknown_label():
    selector = SlotSelector(21, today=TODAY)
    with pytest.raises(ValidationError):
        selector.select_date(TODAY + timedelta(days=21))
    with pytest.raises(ValidationError):
        selector.select_date(TODAY - timedelta(days=1))
    selector.select_date(TODAY)
    with pytest.raises(ValidationError):
        selector.toggle_time("9:00 AM")


def test_selector_reset():
    selector = SlotSelector(21, today=TODAY)
    selector.select_date(TODAY)
    selector.toggle_time("2:30 PM")
    selector.reset()
    assert selector.selection() == SlotSelection()


@pytest.mark.parametrize("selection", [
    SlotSelection(date=None, times=["2:30 PM"]),
    SlotSelection(date="2026-10-20", times=[]),
    SlotSelection(date="2026-11-09", times=["2:30 PM"]),
    SlotSelection(date="2026-10-20", times=["2:30 PM", "2:30 PM"]),
    SlotSelection(date="2026-10-20", times=["2:30 PM", "2:45 PM", "3:00 PM", "3:15 PM"]),
    SlotSelection(date="2026-10-20", times=["9:00 AM"]),
    SlotSelection(date="2026-10-20xyz", times=["2:30 PM"]),
    SlotSelection(date="2026-10-20T10:00:00", times=["2:30 PM"]),
    SlotSelection(date="20-10-2026", times=["2:30 PM"]),
])
def test_validate_selection_rejections(selection):
    with pytest.raises(ValidationError):
        validate_selection(selection, 21, today=TODAY)


def test_validate_selection_last_day_of_window():
    last = (TODAY + timedelta(days=20)).isoformat()
    normalized = validate_selection(SlotSelection(date=last, times=["8:15 PM"]), 21, today=TODAY)
    assert normalized.date == last


def test_selector_accepts_date_and_datetime_objects():
    from datetime import datetime

    selector = SlotSelector(21, today=TODAY)
    assert selector.select_date(datetime(2026, 10, 20, 9, 30)) == "2026-10-20"
    assert selector.select_date(TODAY) == "2026-10-19"
    with pytest.raises(ValidationError):
        selector.select_date("2026-10-20xyz")
