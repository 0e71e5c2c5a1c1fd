from __future__ import annotations

from collections import defaultdict
from typing import Callable, Collection, Dict, Iterable, List, Optional, Tuple

from .allocation import allocated_hours, project_people
from .compensation import effective_hourly_rate
from .models import (
    MatrixMonth,
    Project,
    RosterPerson,
    UtilizationCell,
    UtilizationMatrix,
    UtilizationProjectRow,
    UtilizationRow,
)
from .parsing import to_number
from .periods import is_person_inactive_in_month, label_from_ym, project_months

GROUP_BY_PERSON = "person"
GROUP_BY_DEPARTMENT = "department"

HoursLookup = Callable[[RosterPerson, str], float]


def over_capacity_pct(util: float) -> float:
    return max(0.0, (util - 1) * 100)


def _person_cell(ym: str, person: RosterPerson, hours_of: HoursLookup) -> UtilizationCell:
    hours = hours_of(person, ym)
    base = to_number(person.base_monthly_hours)
    inactive = is_person_inactive_in_month(person, ym)
    return UtilizationCell(
        ym=ym,
        label=label_from_ym(ym),
        hours=hours,
        capacity=base,
        util=hours / max(1.0, base),
        inactive=inactive,
        inactive_hours=hours if inactive else 0.0,
    )


def _group_cell(ym: str, members: List[RosterPerson], hours_of: HoursLookup) -> UtilizationCell:
    # Department utilization is total hours over total capacity, not a mean of ratios.
    hours = capacity = inactive_hours = 0.0
    active = 0
    for person in members:
        person_hours = hours_of(person, ym)
        if is_person_inactive_in_month(person, ym):
            inactive_hours += person_hours
            continue
        active += 1
        hours += person_hours
        capacity += to_number(person.base_monthly_hours)
    return UtilizationCell(
        ym=ym,
        label=label_from_ym(ym),
        hours=hours,
        capacity=capacity,
        util=hours / capacity if capacity > 0 else 0.0,
        inactive=bool(members) and active == 0,
        inactive_hours=inactive_hours,
    )


def _cells(
    months: List[str],
    members: List[RosterPerson],
    hours_of: HoursLookup,
    per_person: bool,
) -> Tuple[List[UtilizationCell], float, float]:
    if per_person:
        cells = [_person_cell(ym, members[0], hours_of) for ym in months]
    else:
        cells = [_group_cell(ym, members, hours_of) for ym in months]
    total_hours = sum(cell.hours for cell in cells)
    avg_util = sum(cell.util for cell in cells) / len(cells) if cells else 0.0
    return cells, total_hours, avg_util


def _subjects(people: List[RosterPerson], group_by: str) -> List[Tuple[str, str, str, List[RosterPerson]]]:
    if group_by != GROUP_BY_DEPARTMENT:
        return [(person.id, person.name, person.department, [person]) for person in people]
    grouped: Dict[str, List[RosterPerson]] = {}
    for person in people:
        grouped.setdefault(person.department or "Other", []).append(person)
    return [(dept, dept, dept, members) for dept, members in grouped.items()]


def build_utilization_matrix(
    projects: Iterable[Project],
    roster: Iterable[RosterPerson],
    people_filter: Optional[Collection[str]] = None,
    start_ym: Optional[str] = None,
    end_ym: Optional[str] = None,
    group_by: str = GROUP_BY_PERSON,
) -> UtilizationMatrix:
    """Person (or department) x calendar-month matrix of allocated hours.

    Utilization is uncapped. Each row carries a per-project breakdown that
    omits projects with no hours in the window. Cells for people who are
    inactive in that month are flagged instead of zeroed.
    """
    projects = list(projects)
    roster = list(roster)
    people = roster if people_filter is None else [p for p in roster if p.id in set(people_filter)]

    months = sorted({ym for project in projects for _, ym, _ in project_months(project, start_ym, end_ym)})

    totals: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    per_project: Dict[str, Dict[str, Dict[str, float]]] = defaultdict(
        lambda: defaultdict(lambda: defaultdict(float))
    )
    for project in projects:
        members = project_people(project, people)
        for _, ym, month in project_months(project, start_ym, end_ym):
            allocations = month.person_allocations or {}
            for person in members:
                alloc = to_number(allocations.get(person.id))
                if alloc <= 0:
                    continue
                hours = allocated_hours(person, alloc)
                totals[person.id][ym] += hours
                per_project[person.id][project.id][ym] += hours

    def total_hours_of(person: RosterPerson, ym: str) -> float:
        return totals.get(person.id, {}).get(ym, 0.0)

    per_person = group_by != GROUP_BY_DEPARTMENT
    rows: List[UtilizationRow] = []
    for key, label, department, members in _subjects(people, group_by):
        cells, total_hours, avg_util = _cells(months, members, total_hours_of, per_person)

        by_project: List[UtilizationProjectRow] = []
        for project in projects:
            project_members = project_people(project, members)
            if not project_members:
                continue

            def project_hours_of(person: RosterPerson, ym: str, project_id: str = project.id) -> float:
                return per_project.get(person.id, {}).get(project_id, {}).get(ym, 0.0)

            p_cells, p_hours, p_util = _cells(months, project_members, project_hours_of, per_person)
            if p_hours <= 0:
                continue
            by_project.append(
                UtilizationProjectRow(
                    project_id=project.id,
                    project_name=project.name,
                    cells=p_cells,
                    total_hours=p_hours,
                    avg_util=p_util,
                )
            )

        rows.append(
            UtilizationRow(
                key=key,
                label=label,
                department=department,
                person_ids=[person.id for person in members],
                cells=cells,
                total_hours=total_hours,
                avg_util=avg_util,
                by_project=by_project,
            )
        )

    return UtilizationMatrix(
        group_by=GROUP_BY_DEPARTMENT if not per_person else GROUP_BY_PERSON,
        months=[MatrixMonth(ym=ym, label=label_from_ym(ym)) for ym in months],
        rows=rows,
    )


def labor_cost_by_month(
    projects: Iterable[Project],
    roster: Iterable[RosterPerson],
    people_filter: Optional[Collection[str]] = None,
    start_ym: Optional[str] = None,
    end_ym: Optional[str] = None,
) -> Dict[str, float]:
    """Monthly labor cost of the people shown in the utilization matrix."""
    roster = list(roster)
    matrix = build_utilization_matrix(projects, roster, people_filter, start_ym, end_ym)
    rates = {person.id: effective_hourly_rate(person) for person in roster}
    costs = {month.ym: 0.0 for month in matrix.months}
    for row in matrix.rows:
        rate = rates.get(row.key, 0.0)
        for cell in row.cells:
            costs[cell.ym] += rate * cell.hours
    return costs
