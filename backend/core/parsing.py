from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Optional

from .models import DEFAULT_BASE_MONTHLY_HOURS, MonthRow, Project, RosterPerson


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Coerce a loosely typed field to a finite float, or return ``fallback``."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number) or math.isinf(number):
        return fallback
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", name or "").strip()


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    return to_number(value)


def person_from_dict(data: Dict[str, Any]) -> RosterPerson:
    return RosterPerson(
        id=str(data.get("id", "")),
        name=normalize_name(str(data.get("name", ""))),
        person_type=str(data.get("personType") or "Contractor"),
        department=str(data.get("department") or "Other"),
        comp_mode=data.get("compMode") or None,
        monthly_salary=_optional_number(data.get("monthlySalary")),
        annual_salary=_optional_number(data.get("annualSalary")),
        hourly_rate=_optional_number(data.get("hourlyRate")),
        base_monthly_hours=to_number(data.get("baseMonthlyHours"), DEFAULT_BASE_MONTHLY_HOURS),
        is_active=bool(data.get("isActive", True)),
        inactive_date=data.get("inactiveDate") or None,
    )


def month_from_dict(data: Dict[str, Any]) -> MonthRow:
    allocations = data.get("personAllocations") or {}
    if not isinstance(allocations, dict):
        allocations = {}
    return MonthRow(
        id=str(data.get("id", "")),
        label=str(data.get("label", "")),
        person_allocations={str(pid): to_number(pct) for pid, pct in allocations.items()},
        expenses=to_number(data.get("expenses")),
        revenue=to_number(data.get("revenue")),
    )


def project_from_dict(data: Dict[str, Any]) -> Project:
    months = data.get("months") if isinstance(data.get("months"), list) else []
    member_ids = data.get("memberIds") if isinstance(data.get("memberIds"), list) else []
    updated_at = data.get("updatedAt")
    return Project(
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
        description=str(data.get("description") or ""),
        status=str(data.get("status") or ""),
        project_status=str(data.get("projectStatus") or "Active"),
        overhead_per_hour=to_number(data.get("overheadPerHour")),
        target_margin_pct=to_number(data.get("targetMarginPct")),
        start_month_iso=str(data.get("startMonthISO") or ""),
        member_ids=[str(pid) for pid in member_ids],
        months=[month_from_dict(month) for month in months if isinstance(month, dict)],
        updated_at=int(to_number(updated_at)) if updated_at is not None else None,
    )


def person_to_dict(person: RosterPerson) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": person.id,
        "name": person.name,
        "personType": person.person_type,
        "department": person.department,
        "baseMonthlyHours": person.base_monthly_hours,
        "isActive": person.is_active,
    }
    optional = {
        "compMode": person.comp_mode,
        "monthlySalary": person.monthly_salary,
        "annualSalary": person.annual_salary,
        "hourlyRate": person.hourly_rate,
        "inactiveDate": person.inactive_date,
    }
    data.update({key: value for key, value in optional.items() if value is not None})
    return data


def month_to_dict(month: MonthRow) -> Dict[str, Any]:
    return {
        "id": month.id,
        "label": month.label,
        "personAllocations": dict(month.person_allocations),
        "expenses": month.expenses,
        "revenue": month.revenue,
    }


def project_to_dict(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "projectStatus": project.project_status,
        "overheadPerHour": project.overhead_per_hour,
        "targetMarginPct": project.target_margin_pct,
        "startMonthISO": project.start_month_iso,
        "memberIds": list(project.member_ids),
        "months": [month_to_dict(month) for month in project.months],
        "updatedAt": project.updated_at,
    }


def roster_from_dicts(rows: List[Dict[str, Any]]) -> List[RosterPerson]:
    return [person_from_dict(row) for row in rows if isinstance(row, dict)]


def projects_from_dicts(rows: List[Dict[str, Any]]) -> List[Project]:
    return [project_from_dict(row) for row in rows if isinstance(row, dict)]
