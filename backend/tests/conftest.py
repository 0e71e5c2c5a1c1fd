import pytest

from core.models import MonthRow, Project, RosterPerson


def make_person(person_id, **kwargs):
    defaults = {
        "name": person_id.upper(),
        "person_type": "Contractor",
        "department": "Engineering",
        "hourly_rate": 0.0,
        "base_monthly_hours": 160,
    }
    defaults.update(kwargs)
    return RosterPerson(id=person_id, **defaults)


def make_project(project_id, start, allocations, **kwargs):
    """``allocations`` is one dict per month; members default to every allocated id."""
    months = []
    for idx, entry in enumerate(allocations):
        entry = dict(entry)
        expenses = entry.pop("_expenses", 0.0)
        revenue = entry.pop("_revenue", 0.0)
        months.append(
            MonthRow(
                id=f"{project_id}-m{idx}",
                person_allocations=entry,
                expenses=expenses,
                revenue=revenue,
            )
        )
    members = kwargs.pop("member_ids", None)
    if members is None:
        members = sorted({pid for entry in allocations for pid in entry if not pid.startswith("_")})
    return Project(
        id=project_id,
        name=kwargs.pop("name", project_id.title()),
        start_month_iso=start,
        member_ids=members,
        months=months,
        **kwargs,
    )


@pytest.fixture
def person():
    return make_person


@pytest.fixture
def project():
    return make_project
