from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .compensation import effective_hourly_rate
from .models import MonthRow, MonthStats, Project, RosterPerson, TotalsResult
from .parsing import to_number

logger = logging.getLogger(__name__)


def index_people(people: Iterable[RosterPerson]) -> Dict[str, RosterPerson]:
    indexed: Dict[str, RosterPerson] = {}
    for person in people:
        indexed.setdefault(person.id, person)
    return indexed


def allocated_hours(person: RosterPerson, alloc_pct: object) -> float:
    return to_number(person.base_monthly_hours) * to_number(alloc_pct) / 100


def compute_month_stats(
    people: Iterable[RosterPerson],
    month: MonthRow,
    overhead_per_hour: float,
) -> MonthStats:
    by_id = index_people(people)
    hours = 0.0
    labor = 0.0

    for person_id, alloc_pct in (month.person_allocations or {}).items():
        person = by_id.get(person_id)
        if person is None:
            logger.debug("Month %s: no roster entry for %s, skipped", month.id, person_id)
            continue
        person_hours = allocated_hours(person, alloc_pct)
        hours += person_hours
        labor += effective_hourly_rate(person) * person_hours

    overhead = to_number(overhead_per_hour) * hours
    expenses = to_number(month.expenses)
    revenue = to_number(month.revenue)
    return MonthStats(
        hours=hours,
        labor=labor,
        overhead=overhead,
        expenses=expenses,
        all_in=labor + overhead + expenses,
        revenue=revenue,
    )


def project_people(project: Project, roster: Iterable[RosterPerson]) -> List[RosterPerson]:
    members = set(project.member_ids or [])
    return [person for person in roster if person.id in members]


def compute_project_totals(project: Project, roster: Iterable[RosterPerson]) -> TotalsResult:
    people = project_people(project, roster)
    total_hours = labor_cost = overhead_cost = expenses = revenue = 0.0

    for month in project.months:
        stats = compute_month_stats(people, month, project.overhead_per_hour)
        total_hours += stats.hours
        labor_cost += stats.labor
        overhead_cost += stats.overhead
        expenses += stats.expenses
        revenue += stats.revenue

    all_in = labor_cost + overhead_cost + expenses
    profit = revenue - all_in
    margin = profit / revenue if revenue > 0 else 0.0
    return TotalsResult(
        total_hours=total_hours,
        labor_cost=labor_cost,
        overhead_cost=overhead_cost,
        expenses=expenses,
        all_in=all_in,
        revenue=revenue,
        profit=profit,
        margin=margin,
    )
