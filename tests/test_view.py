import pytest

from brewdash.tanks.phase import DAY_MS
from brewdash.tanks.sanitizer import normalize_row, sanitize_records
from brewdash.tanks.view import BADGES, build_view, format_abv, tank_no, visible_sorted

from conftest import T0


@pytest.mark.parametrize("raw, expected", [
    ("", "--"),
    ("  ", "--"),
    ("5", "5%"),
    ("5.50", "5.5%"),
    ("6.2%", "6.2%"),
    ("approx 5", "approx 5"),
    ("nan", "nan"),
])
def test_format_abv(raw, expected):
    assert format_abv(raw) == expected


def test_tank_no():
    assert tank_no("F7") == 7
    assert tank_no("f12") == 12
    assert tank_no("X-3") == 3
    assert tank_no("") == 0


def test_visible_sorted_filters_and_orders():
    records = sanitize_records({
        "F10": {"show": True},
        "F2": {"show": True},
        "F3": {"show": False},
        "F1": {"show": True},
    })
    assert [tank_id for tank_id, _ in visible_sorted(records)] == ["F1", "F2", "F10"]


def test_placeholders_for_empty_record():
    view = build_view("F2", normalize_row({"show": True, "beer": "IPA"}), "fermenting", "18.9℃", 18.9, T0)
    assert view.id == "F2"
    assert view.no == 2
    assert view.beer == "IPA"
    assert view.style == "--"
    assert view.abv == "--"
    assert view.ibu == "--"
    assert view.capacity == "150L"
    assert view.start_md == "--/--"
    assert view.end_md == "--/--"
    assert view.progress == 0
    assert view.day is None
    assert view.dayText == "DAY --"
    assert view.badgeCN == BADGES["fermenting"]
    assert view.limited is False


def test_full_record_view():
    rec = normalize_row({
        "show": True,
        "beer": "",
        "style": "Helles",
        "abv": "4.8",
        "ibu": "18",
        "capacity": "",
        "start": "2026-03-01",
        "end": "2026-03-21",
        "limited": True,
    })
    view = build_view("F5", rec, "cooling", "12.3℃", 12.3, T0 + 12 * DAY_MS).to_dict()
    assert view["beer"] == "（未命名）"
    assert view["abv"] == "4.8%"
    assert view["capacity"] == "--"
    assert view["start_md"] == "03/01"
    assert view["end_md"] == "03/21"
    assert view["progress"] == 60
    assert view["day"] == 13
    assert view["dayText"] == "DAY 13"
    assert view["status"] == "cooling"
    assert view["badgeCN"] == "降温中"
    assert view["temp"] == "12.3℃"
    assert view["temp_value"] == 12.3
    assert view["limited"] is True


def test_every_phase_has_a_badge():
    assert set(BADGES) == {"fermenting", "cooling", "ready"}
    assert BADGES["ready"] == "即将开罐"
