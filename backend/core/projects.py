from __future__ import annotations

import copy
import time
import uuid
from typing import Collection, Iterable, List, Optional

from .models import DEFAULT_OVERHEAD_PER_HOUR, DEFAULT_TARGET_MARGIN, MonthRow, Project, RosterPerson
from .parsing import clamp, to_number
from .periods import current_month_iso, label_from_start


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


def create_project(
    name: str = "New Project",
    start_month_iso: Optional[str] = None,
    overhead_per_hour: float = DEFAULT_OVERHEAD_PER_HOUR,
    target_margin_pct: float = DEFAULT_TARGET_MARGIN,
    member_ids: Optional[List[str]] = None,
    project_status: str = "Active",
) -> Project:
    start = start_month_iso or current_month_iso()
    return Project(
        id=new_id(),
        name=name,
        project_status=project_status,
        overhead_per_hour=overhead_per_hour,
        target_margin_pct=target_margin_pct,
        start_month_iso=start,
        member_ids=list(member_ids or []),
        months=[MonthRow(id=new_id(), label=label_from_start(start, 0))],
        updated_at=now_ms(),
    )


def clamp_allocation(value: object) -> float:
    return clamp(to_number(value), 0.0, 100.0)


def relabel_months(project: Project) -> Project:
    for index, month in enumerate(project.months):
        month.label = label_from_start(project.start_month_iso, index)
    return project


def normalize_project(project: Project) -> Project:
    """Clamp every allocation to 0..100 and derive month labels from the start month."""
    for month in project.months:
        month.person_allocations = {
            pid: clamp_allocation(pct) for pid, pct in month.person_allocations.items()
        }
    return relabel_months(project)


def add_month(project: Project) -> MonthRow:
    """Append a month that starts as a copy of the last one."""
    last = project.months[-1] if project.months else None
    month = MonthRow(
        id=new_id(),
        label=label_from_start(project.start_month_iso, len(project.months)),
        person_allocations=dict(last.person_allocations) if last else {},
        expenses=last.expenses if last else 0.0,
        revenue=last.revenue if last else 0.0,
    )
    project.months.append(month)
    return month


def find_month(project: Project, month_id: str) -> Optional[MonthRow]:
    return next((month for month in project.months if month.id == month_id), None)


def set_allocation(project: Project, month_id: str, person_id: str, value: object) -> Project:
    month = find_month(project, month_id)
    if month is not None:
        month.person_allocations[person_id] = clamp_allocation(value)
    return project


def set_expenses(project: Project, month_id: str, value: object) -> Project:
    month = find_month(project, month_id)
    if month is not None:
        month.expenses = to_number(value)
    return project


def set_revenue(project: Project, month_id: str, value: object) -> Project:
    month = find_month(project, month_id)
    if month is not None:
        month.revenue = to_number(value)
    return project


def toggle_member(project: Project, person_id: str, on: bool) -> Project:
    if on:
        if person_id not in project.member_ids:
            project.member_ids.append(person_id)
        for month in project.months:
            month.person_allocations.setdefault(person_id, 0.0)
        return project
    project.member_ids = [pid for pid in project.member_ids if pid != person_id]
    for month in project.months:
        month.person_allocations.pop(person_id, None)
    return project


def duplicate_project(project: Project) -> Project:
    clone = copy.deepcopy(project)
    clone.id = new_id()
    clone.name = f"{project.name} (Copy)"
    for month in clone.months:
        month.id = new_id()
    clone.updated_at = now_ms()
    return clone


def upsert_project(project: Project, projects: List[Project]) -> List[Project]:
    project.updated_at = now_ms()
    for idx, existing in enumerate(projects):
        if existing.id == project.id:
            updated = list(projects)
            updated[idx] = project
            return updated
    return [project] + list(projects)


def remove_person(person_id: str, projects: Iterable[Project]) -> int:
    """Drop a removed roster person from every project; returns months touched."""
    touched = 0
    for project in projects:
        if person_id in project.member_ids:
            project.member_ids = [pid for pid in project.member_ids if pid != person_id]
        for month in project.months:
            if month.person_allocations.pop(person_id, None) is not None:
                touched += 1
    return touched


def filter_projects(
    projects: Iterable[Project],
    project_ids: Optional[Collection[str]] = None,
    statuses: Optional[Collection[str]] = None,
) -> List[Project]:
    selected = []
    for project in projects:
        if project_ids is not None and project.id not in project_ids:
            continue
        if statuses is not None and project.project_status not in statuses:
            continue
        selected.append(project)
    return selected


def select_people(
    roster: Iterable[RosterPerson],
    departments: Optional[Collection[str]] = None,
    people_ids: Optional[Collection[str]] = None,
    search: str = "",
) -> List[RosterPerson]:
    needle = search.strip().lower()
    selected = []
    for person in roster:
        if departments is not None and person.department not in departments:
            continue
        if people_ids is not None and person.id not in people_ids:
            continue
        if needle and needle not in f"{person.name} {person.department}".lower():
            continue
        selected.append(person)
    return selected


def sort_by_updated(projects: Iterable[Project]) -> List[Project]:
    return sorted(projects, key=lambda project: project.updated_at or 0, reverse=True)
