from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterator, Optional, Tuple

from .models import MonthRow, Project, RosterPerson

logger = logging.getLogger(__name__)

YM_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})")


def parse_ym(value: Optional[str]) -> Optional[Tuple[int, int]]:
    if not value:
        return None
    match = YM_PATTERN.match(str(value))
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def format_ym(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def add_months(year: int, month: int, count: int) -> Tuple[int, int]:
    offset = year * 12 + (month - 1) + count
    return offset // 12, offset % 12 + 1


def ym_from_start_index(start_iso: str, index: int) -> Optional[str]:
    parsed = parse_ym(start_iso)
    if parsed is None:
        return None
    return format_ym(*add_months(parsed[0], parsed[1], index))


def label_from_ym(ym: str) -> str:
    parsed = parse_ym(ym)
    if parsed is None:
        return ym
    return date(parsed[0], parsed[1], 1).strftime("%b %Y")


def label_from_start(start_iso: str, index: int) -> str:
    ym = ym_from_start_index(start_iso, index)
    return label_from_ym(ym) if ym else f"M{index + 1}"


def current_month_iso(today: Optional[date] = None) -> str:
    today = today or date.today()
    return format_ym(today.year, today.month)


def in_ym_range(ym: str, start_ym: Optional[str] = None, end_ym: Optional[str] = None) -> bool:
    if start_ym and ym < start_ym:
        return False
    if end_ym and ym > end_ym:
        return False
    return True


def project_months(
    project: Project,
    start_ym: Optional[str] = None,
    end_ym: Optional[str] = None,
) -> Iterator[Tuple[int, str, MonthRow]]:
    """Yield ``(index, ym, month)`` for every project month inside the window."""
    if parse_ym(project.start_month_iso) is None:
        if project.months:
            logger.debug(
                "Skipping project %s: unparseable start month %r",
                project.id,
                project.start_month_iso,
            )
        return
    for index, month in enumerate(project.months):
        ym = ym_from_start_index(project.start_month_iso, index)
        if ym is None or not in_ym_range(ym, start_ym, end_ym):
            continue
        yield index, ym, month


def is_person_inactive_in_month(person: RosterPerson, ym: str) -> bool:
    if person.is_active:
        return False
    if not person.inactive_date:
        return True
    return f"{ym}-01" >= person.inactive_date
