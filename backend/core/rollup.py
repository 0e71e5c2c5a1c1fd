from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .allocation import compute_month_stats, project_people
from .models import CalendarBucket, Project, RosterPerson
from .periods import add_months, format_ym, in_ym_range, label_from_ym, parse_ym, project_months

PAD_MONTHS = 24


def _accumulate(bucket: CalendarBucket, project: Project, people: List[RosterPerson], month) -> None:
    stats = compute_month_stats(people, month, project.overhead_per_hour)
    bucket.hours += stats.hours
    bucket.labor += stats.labor
    bucket.overhead += stats.overhead
    bucket.expenses += stats.expenses
    bucket.revenue += stats.revenue
    bucket.all_in = bucket.labor + bucket.overhead + bucket.expenses


def build_calendar_rollup(
    projects: Iterable[Project],
    roster: Iterable[RosterPerson],
    start_ym: Optional[str] = None,
    end_ym: Optional[str] = None,
) -> List[CalendarBucket]:
    """Sum every project's months onto the absolute YYYY-MM axis.

    Only calendar months actually touched by a project inside the window get
    a bucket; the result is sorted by ``ym``.
    """
    roster = list(roster)
    buckets: Dict[str, CalendarBucket] = {}

    for project in projects:
        people = project_people(project, roster)
        for _, ym, month in project_months(project, start_ym, end_ym):
            bucket = buckets.get(ym)
            if bucket is None:
                bucket = buckets[ym] = CalendarBucket(ym=ym, label=label_from_ym(ym))
            _accumulate(bucket, project, people, month)

    return [buckets[ym] for ym in sorted(buckets)]


def pad_calendar_rollup(
    projects: Iterable[Project],
    roster: Iterable[RosterPerson],
    pad_months: int = PAD_MONTHS,
    start_ym: Optional[str] = None,
    end_ym: Optional[str] = None,
) -> List[CalendarBucket]:
    """Continuous variant used by charts.

    Starts at the earliest project start, spans the longest project plus
    ``pad_months``, and drops trailing buckets with no labor and no revenue.
    The optional window is applied to the padded axis after trimming.
    """
    projects = [project for project in projects if parse_ym(project.start_month_iso)]
    if not projects:
        return []
    roster = list(roster)

    year, month = min(parse_ym(project.start_month_iso) for project in projects)
    longest = max(len(project.months) for project in projects)

    buckets: List[CalendarBucket] = []
    for offset in range(longest + pad_months):
        ym = format_ym(*add_months(year, month, offset))
        buckets.append(CalendarBucket(ym=ym, label=label_from_ym(ym)))
    by_ym = {bucket.ym: bucket for bucket in buckets}

    for project in projects:
        people = project_people(project, roster)
        for _, ym, row in project_months(project):
            bucket = by_ym.get(ym)
            if bucket is not None:
                _accumulate(bucket, project, people, row)

    while buckets and buckets[-1].labor == 0 and buckets[-1].revenue == 0:
        buckets.pop()
    return [bucket for bucket in buckets if in_ym_range(bucket.ym, start_ym, end_ym)]


def summarize_rollup(buckets: Iterable[CalendarBucket]) -> Dict[str, float]:
    summary = {
        "labor": 0.0,
        "overhead": 0.0,
        "expenses": 0.0,
        "all_in": 0.0,
        "revenue": 0.0,
        "hours": 0.0,
    }
    for bucket in buckets:
        summary["labor"] += bucket.labor
        summary["overhead"] += bucket.overhead
        summary["expenses"] += bucket.expenses
        summary["all_in"] += bucket.all_in
        summary["revenue"] += bucket.revenue
        summary["hours"] += bucket.hours
    summary["profit"] = summary["revenue"] - summary["all_in"]
    summary["margin"] = summary["profit"] / summary["revenue"] if summary["revenue"] > 0 else 0.0
    return summary


def cumulative_series(buckets: Iterable[CalendarBucket]) -> List[Dict[str, object]]:
    series: List[Dict[str, object]] = []
    cum_revenue = 0.0
    cum_all_in = 0.0
    for bucket in buckets:
        cum_revenue += bucket.revenue
        cum_all_in += bucket.all_in
        series.append(
            {
                "ym": bucket.ym,
                "label": bucket.label,
                "cum_revenue": cum_revenue,
                "cum_all_in": cum_all_in,
            }
        )
    return series
