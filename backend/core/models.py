from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

PERSON_TYPES = ("Full-Time", "FT Resource", "Part-Time", "PT Resource", "Contractor")
SALARIED_TYPES = ("Full-Time", "FT Resource")
COMP_MODES = ("monthly", "annual")
DEPARTMENTS = (
    "C-Suite",
    "BD",
    "Marketing",
    "Product",
    "Engineering",
    "Ops",
    "Software",
    "Admin",
    "Other",
)
PROJECT_STATUSES = ("Test", "BD", "Active", "Completed", "Cancelled")

DEFAULT_BASE_MONTHLY_HOURS = 160
DEFAULT_OVERHEAD_PER_HOUR = 15.0
DEFAULT_TARGET_MARGIN = 0.35


@dataclass
class RosterPerson:
    id: str
    name: str = ""
    person_type: str = "Contractor"
    department: str = "Other"
    comp_mode: Optional[str] = None
    monthly_salary: Optional[float] = None
    annual_salary: Optional[float] = None
    hourly_rate: Optional[float] = None
    base_monthly_hours: float = DEFAULT_BASE_MONTHLY_HOURS
    is_active: bool = True
    inactive_date: Optional[str] = None


@dataclass
class MonthRow:
    id: str
    label: str = ""
    person_allocations: Dict[str, float] = field(default_factory=dict)
    expenses: float = 0.0
    revenue: float = 0.0


@dataclass
class Project:
    id: str
    name: str = ""
    description: str = ""
    status: str = ""
    project_status: str = "Active"
    overhead_per_hour: float = 0.0
    target_margin_pct: float = 0.0
    start_month_iso: str = ""
    member_ids: List[str] = field(default_factory=list)
    months: List[MonthRow] = field(default_factory=list)
    updated_at: Optional[int] = None


@dataclass
class MonthStats:
    hours: float = 0.0
    labor: float = 0.0
    overhead: float = 0.0
    expenses: float = 0.0
    all_in: float = 0.0
    revenue: float = 0.0


@dataclass
class TotalsResult:
    total_hours: float
    labor_cost: float
    overhead_cost: float
    expenses: float
    all_in: float
    revenue: float
    profit: float
    margin: float


@dataclass
class CalendarBucket:
    ym: str
    label: str
    labor: float = 0.0
    overhead: float = 0.0
    expenses: float = 0.0
    all_in: float = 0.0
    revenue: float = 0.0
    hours: float = 0.0


@dataclass
class UtilizationCell:
    ym: str
    label: str
    hours: float
    capacity: float
    util: float
    inactive: bool = False
    inactive_hours: float = 0.0


@dataclass
class UtilizationProjectRow:
    project_id: str
    project_name: str
    cells: List[UtilizationCell]
    total_hours: float
    avg_util: float


@dataclass
class UtilizationRow:
    key: str
    label: str
    department: str
    person_ids: List[str]
    cells: List[UtilizationCell]
    total_hours: float
    avg_util: float
    by_project: List[UtilizationProjectRow] = field(default_factory=list)


@dataclass
class MatrixMonth:
    ym: str
    label: str


@dataclass
class UtilizationMatrix:
    group_by: str
    months: List[MatrixMonth]
    rows: List[UtilizationRow]
