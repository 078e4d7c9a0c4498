import pytest

from brewdash.tanks.phase import (
    DAY_MS,
    calc_progress,
    cooling_window,
    days_since,
    format_md,
    parse_timestamp,
    resolve_phase,
)

from conftest import T0

START = "2026-03-01"
END = "2026-03-21"   # T0 + 20 days


def test_parse_timestamp_formats():
    assert parse_timestamp("2026-03-01") == T0
    assert parse_timestamp("2026/03/01") == T0
    assert parse_timestamp("2026-03-01T08:00") == T0 + 8 * 3_600_000
    assert parse_timestamp("2026-03-01T08:00:00+08:00") == T0
    assert parse_timestamp("2026-03-01T00:00:00Z") == T0


@pytest.mark.parametrize("bad", [None, "", "   ", "soon", "2026-13-45"])
def test_parse_timestamp_rejects(bad):
    assert parse_timestamp(bad) is None


@pytest.mark.parametrize("offset_ms, expected", [
    (-DAY_MS, "fermenting"),
    (0, "fermenting"),
    (10 * DAY_MS - 1, "fermenting"),
    (10 * DAY_MS, "cooling"),
    (15 * DAY_MS, "cooling"),
    (20 * DAY_MS, "cooling"),
    (20 * DAY_MS + 1, "ready"),
    (40 * DAY_MS, "ready"),
])
def test_auto_phase_timeline(offset_ms, expected):
    assert resolve_phase("auto", START, END, T0 + offset_ms) == expected


def test_operator_override_wins():
    late = T0 + 100 * DAY_MS
    assert resolve_phase("fermenting", START, END, late) == "fermenting"
    assert resolve_phase("ready", "", "", T0) == "ready"
    assert resolve_phase("Cooling", START, END, T0) == "cooling"


def test_missing_end_keeps_fermenting():
    assert resolve_phase("auto", START, "", T0 + 365 * DAY_MS) == "fermenting"
    assert resolve_phase("auto", START, "not a date", T0 + 365 * DAY_MS) == "fermenting"


def test_short_batch_cools_from_start():
    # 5 day batch: the window is clamped to start
    assert cooling_window(T0, T0 + 5 * DAY_MS) == (T0, T0 + 5 * DAY_MS)
    assert resolve_phase("auto", START, "2026-03-06", T0) == "cooling"
    assert resolve_phase("auto", START, "2026-03-06", T0 - 1) == "fermenting"


def test_cooling_window_without_end():
    assert cooling_window(T0, None) is None
    assert cooling_window(None, T0 + 20 * DAY_MS) == (T0 + 10 * DAY_MS, T0 + 20 * DAY_MS)


def test_progress():
    assert calc_progress(START, END, T0 - DAY_MS) == 0
    assert calc_progress(START, END, T0 + DAY_MS) == 5
    assert calc_progress(START, END, T0 + 5 * DAY_MS) == 25
    assert calc_progress(START, END, T0 + 30 * DAY_MS) == 100
    assert calc_progress("", END, T0) == 0
    assert calc_progress(END, START, T0) == 0
    assert calc_progress(START, START, T0) == 0


def test_days_since():
    assert days_since(START, T0) == 1
    assert days_since(START, T0 + DAY_MS - 1) == 1
    assert days_since(START, T0 + DAY_MS) == 2
    assert days_since(START, T0 - 1) == 0
    assert days_since("", T0) is None
    assert days_since("whenever", T0) is None


def test_format_md():
    assert format_md(START) == "03/01"
    assert format_md("2026-12-09T10:00") == "12/09"
    assert format_md("") == "--/--"
    assert format_md("tbd") == "--/--"


def test_extended_iso_forms():
    assert parse_timestamp("2026-03-01T08:00:00.5Z") == T0 + 8 * 3_600_000 + 500
    assert parse_timestamp("20260301") == T0


def test_dates_past_the_last_representable_year():
    # parses, but lands in year 10000 once shifted to UTC
    far = "9999-12-31T23:00:00-14:00"
    assert format_md(far) == "--/--"
    assert resolve_phase("auto", START, far, T0) == "fermenting"
    assert 0 <= calc_progress(START, far, T0 + DAY_MS) <= 100
