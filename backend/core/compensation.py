from __future__ import annotations

from .models import DEFAULT_BASE_MONTHLY_HOURS, SALARIED_TYPES, RosterPerson
from .parsing import to_number


def is_salaried(person_type: str) -> bool:
    return person_type in SALARIED_TYPES


def effective_monthly_comp(person: RosterPerson) -> float:
    if not is_salaried(person.person_type):
        return 0.0
    mode = person.comp_mode or "monthly"
    if mode == "annual":
        monthly = to_number(person.annual_salary) / 12
    else:
        monthly = to_number(person.monthly_salary)
    return max(0.0, monthly)


def effective_hourly_rate(person: RosterPerson) -> float:
    """Normalized cost per hour for salaried and hourly people alike."""
    if is_salaried(person.person_type):
        base = max(1.0, to_number(person.base_monthly_hours, DEFAULT_BASE_MONTHLY_HOURS))
        return effective_monthly_comp(person) / base
    return max(0.0, to_number(person.hourly_rate))
