from datetime import date

from core.models import MonthRow, Project
from core.periods import (
    current_month_iso,
    in_ym_range,
    is_person_inactive_in_month,
    label_from_start,
    label_from_ym,
    parse_ym,
    project_months,
    ym_from_start_index,
)


def test_year_carry():
    assert [ym_from_start_index("2024-11", i) for i in range(3)] == ["2024-11", "2024-12", "2025-01"]
    assert ym_from_start_index("2024-11", 11) == "2025-10"
    assert ym_from_start_index("2024-01", 24) == "2026-01"


def test_parse_ym_rejects_garbage():
    assert parse_ym("2025-09") == (2025, 9)
    assert parse_ym("2025-9") == (2025, 9)
    assert parse_ym("2025-13") is None
    assert parse_ym("Sep 2025") is None
    assert parse_ym("") is None
    assert ym_from_start_index("nope", 2) is None


def test_labels():
    assert label_from_ym("2025-09") == "Sep 2025"
    assert label_from_start("2024-12", 1) == "Jan 2025"
    assert label_from_start("", 2) == "M3"


def test_in_range_open_ended():
    assert in_ym_range("2025-01")
    assert in_ym_range("2025-01", "2025-01", "2025-01")
    assert not in_ym_range("2024-12", "2025-01")
    assert not in_ym_range("2025-02", None, "2025-01")


def test_current_month_iso():
    assert current_month_iso(date(2026, 1, 5)) == "2026-01"


def test_project_months_window():
    proj = Project(id="p", start_month_iso="2024-11", months=[])
    assert list(project_months(proj)) == []

    proj.months = [MonthRow(id=str(i)) for i in range(4)]
    yms = [ym for _, ym, _ in project_months(proj, "2024-12", "2025-01")]
    assert yms == ["2024-12", "2025-01"]


def test_project_months_bad_start_yields_nothing():
    proj = Project(id="p", start_month_iso="garbage", months=[MonthRow(id="m")])
    assert list(project_months(proj)) == []


def test_inactive_in_month(person):
    active = person("a")
    leaver = person("b", is_active=False, inactive_date="2025-03-15")
    gone = person("c", is_active=False)

    assert not is_person_inactive_in_month(active, "2030-01")
    assert not is_person_inactive_in_month(leaver, "2025-03")
    assert is_person_inactive_in_month(leaver, "2025-04")
    assert is_person_inactive_in_month(gone, "2000-01")


def test_inactive_from_first_of_month(person):
    leaver = person("b", is_active=False, inactive_date="2025-03-01")
    assert is_person_inactive_in_month(leaver, "2025-03")
    assert not is_person_inactive_in_month(leaver, "2025-02")
