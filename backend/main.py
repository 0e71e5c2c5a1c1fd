from __future__ import annotations

import io
import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import settings
from core.allocation import compute_project_totals
from core.excel_export import build_export_zip
from core.migrations import migrate_projects, migrate_roster, unwrap_snapshot, wrap_snapshot
from core.models import Project, RosterPerson
from core.parsing import project_from_dict, project_to_dict, projects_from_dicts, roster_from_dicts
from core.periods import format_ym, parse_ym
from core.projects import (
    add_month,
    create_project,
    duplicate_project,
    filter_projects,
    find_month,
    normalize_project,
    remove_person,
    select_people,
    set_allocation,
    set_expenses,
    set_revenue,
    sort_by_updated,
    toggle_member,
    upsert_project,
)
from core.rollup import build_calendar_rollup, cumulative_series, pad_calendar_rollup, summarize_rollup
from core.todo import (
    alpha_order,
    copy_unfinished,
    previous_week_key,
    remove_assignee,
    resolve_order,
    row_from_dict,
    row_to_dict,
)
from core.utilization import GROUP_BY_DEPARTMENT, GROUP_BY_PERSON, build_utilization_matrix, labor_cost_by_month
from logging_config import setup_logging

setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = logging.getLogger("staffplan.api")

STORAGE_DIR = settings.STORAGE_DIR
STORAGE_DIR.mkdir(parents=True, exist_ok=True)

app = FastAPI(title="Staffing & Margin Planner API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonType(str, Enum):
    full_time = "Full-Time"
    ft_resource = "FT Resource"
    part_time = "Part-Time"
    pt_resource = "PT Resource"
    contractor = "Contractor"


class Department(str, Enum):
    c_suite = "C-Suite"
    bd = "BD"
    marketing = "Marketing"
    product = "Product"
    engineering = "Engineering"
    ops = "Ops"
    software = "Software"
    admin = "Admin"
    other = "Other"


class CompMode(str, Enum):
    monthly = "monthly"
    annual = "annual"


class ProjectStatus(str, Enum):
    test = "Test"
    bd = "BD"
    active = "Active"
    completed = "Completed"
    cancelled = "Cancelled"


class RosterPersonPayload(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    person_type: PersonType
    department: Department
    comp_mode: CompMode | None = None
    monthly_salary: float | None = None
    annual_salary: float | None = None
    hourly_rate: float | None = None
    base_monthly_hours: float = Field(default=settings.BASE_MONTHLY_HOURS, ge=0)
    is_active: bool = True
    inactive_date: str | None = None


class MonthRowPayload(CamelModel):
    id: str = Field(min_length=1)
    label: str = ""
    person_allocations: dict[str, float] = {}
    expenses: float = 0.0
    revenue: float = 0.0


class ProjectPayload(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    status: str = ""
    project_status: ProjectStatus
    overhead_per_hour: float
    target_margin_pct: float
    start_month_iso: str = Field(alias="startMonthISO", min_length=1)
    member_ids: list[str] = []
    months: list[MonthRowPayload] = []
    updated_at: int | None = None


class ProjectCreate(CamelModel):
    name: str | None = None
    description: str = ""
    status: str = ""
    project_status: ProjectStatus = ProjectStatus.active
    overhead_per_hour: float | None = None
    target_margin_pct: float | None = None
    start_month_iso: str | None = Field(default=None, alias="startMonthISO")
    member_ids: list[str] = []


class MonthCellUpdate(CamelModel):
    person_allocations: dict[str, float] = {}
    expenses: float | None = None
    revenue: float | None = None


class TodoPayload(CamelModel):
    id: str | None = None
    text: str
    due_date: str | None = None
    done: bool = False
    assignees: list[str] = []


class WeekRowPayload(CamelModel):
    project_id: str
    bd_needed: bool = False
    bd_notes: str = ""
    todos: list[TodoPayload]


class WeekPayload(CamelModel):
    week_key: str = Field(min_length=10)
    rows: list[WeekRowPayload]
    order: list[str] | None = None


class CopyWeekRequest(CamelModel):
    week_key: str = Field(min_length=10)


@app.get("/api/health")
async def health() -> JSONResponse:
    if not STORAGE_DIR.exists():
        return JSONResponse(content={"ok": False, "error": "storage unavailable"}, status_code=500)
    return JSONResponse(content={"ok": True})


# --- roster ---


@app.get("/api/roster")
async def get_roster() -> list[dict[str, Any]]:
    return load_roster_records()


@app.put("/api/roster")
async def replace_roster(payload: list[RosterPersonPayload]) -> dict[str, Any]:
    records = [dump_payload(row) for row in payload]
    new_ids = {row["id"] for row in records}
    removed = [row["id"] for row in load_roster_records() if row["id"] not in new_ids]
    save_roster_records(records)
    if removed:
        cleanup_people(removed)
    return {"ok": True, "removed": removed}


@app.post("/api/roster", status_code=201)
async def create_person(payload: RosterPersonPayload) -> dict[str, Any]:
    records = load_roster_records()
    if any(row.get("id") == payload.id for row in records):
        raise HTTPException(status_code=400, detail="Person already exists")
    records.append(dump_payload(payload))
    save_roster_records(records)
    return {"ok": True}


@app.put("/api/roster/{person_id}")
async def update_person(person_id: str, payload: RosterPersonPayload) -> dict[str, Any]:
    if payload.id != person_id:
        raise HTTPException(status_code=400, detail="Invalid payload")
    records = load_roster_records()
    record = dump_payload(payload)
    for idx, row in enumerate(records):
        if row.get("id") == person_id:
            records[idx] = record
            break
    else:
        records.append(record)
    save_roster_records(records)
    return {"ok": True}


@app.delete("/api/roster/{person_id}")
async def delete_person(person_id: str) -> dict[str, Any]:
    records = load_roster_records()
    remaining = [row for row in records if row.get("id") != person_id]
    if len(remaining) == len(records):
        raise HTTPException(status_code=404, detail="Not found")
    save_roster_records(remaining)
    cleanup_people([person_id])
    logger.info("Person removed", extra={"person_id": person_id})
    return {"ok": True}


# --- projects ---


@app.get("/api/projects")
async def get_projects() -> list[dict[str, Any]]:
    return [project_to_dict(project) for project in sort_by_updated(projects_from_dicts(load_project_records()))]


@app.post("/api/projects", status_code=201)
async def create_project_endpoint(payload: ProjectCreate | None = None) -> dict[str, Any]:
    payload = payload or ProjectCreate()
    projects = projects_from_dicts(load_project_records())
    start = payload.start_month_iso
    if start is not None:
        start = normalize_ym(start, "startMonthISO")
    project = create_project(
        name=payload.name or f"Project {len(projects) + 1}",
        start_month_iso=start,
        overhead_per_hour=(
            payload.overhead_per_hour
            if payload.overhead_per_hour is not None
            else settings.OVERHEAD_PER_HOUR
        ),
        target_margin_pct=(
            payload.target_margin_pct
            if payload.target_margin_pct is not None
            else settings.TARGET_MARGIN
        ),
        member_ids=payload.member_ids,
        project_status=payload.project_status.value,
    )
    project.description = payload.description
    project.status = payload.status
    return store_project(project, projects)


@app.get("/api/projects/{project_id}")
async def get_project(project_id: str) -> dict[str, Any]:
    return project_to_dict(find_project(project_id, projects_from_dicts(load_project_records())))


@app.put("/api/projects/{project_id}")
async def update_project(project_id: str, payload: ProjectPayload) -> dict[str, Any]:
    if payload.id != project_id:
        raise HTTPException(status_code=400, detail="Invalid payload")
    projects = projects_from_dicts(load_project_records())
    find_project(project_id, projects)
    project = project_from_dict(dump_payload(payload))
    project.start_month_iso = normalize_ym(project.start_month_iso, "startMonthISO") or ""
    record = store_project(normalize_project(project), projects)
    logger.info("Project saved", extra={"project_id": project_id})
    return {"ok": True, "project": record}


@app.delete("/api/projects/{project_id}")
async def delete_project(project_id: str) -> dict[str, Any]:
    records = load_project_records()
    remaining = [row for row in records if row.get("id") != project_id]
    if len(remaining) == len(records):
        raise HTTPException(status_code=404, detail="Not found")
    save_project_records(remaining)
    logger.info("Project deleted", extra={"project_id": project_id})
    return {"ok": True}


@app.post("/api/projects/{project_id}/duplicate", status_code=201)
async def duplicate_project_endpoint(project_id: str) -> dict[str, Any]:
    projects = projects_from_dicts(load_project_records())
    return store_project(duplicate_project(find_project(project_id, projects)), projects)


@app.post("/api/projects/{project_id}/months", status_code=201)
async def add_project_month(project_id: str) -> dict[str, Any]:
    projects = projects_from_dicts(load_project_records())
    project = find_project(project_id, projects)
    add_month(project)
    return store_project(project, projects)


@app.patch("/api/projects/{project_id}/months/{month_id}")
async def update_project_month(project_id: str, month_id: str, payload: MonthCellUpdate) -> dict[str, Any]:
    projects = projects_from_dicts(load_project_records())
    project = find_project(project_id, projects)
    if find_month(project, month_id) is None:
        raise HTTPException(status_code=404, detail="Month not found")
    for person_id, pct in payload.person_allocations.items():
        set_allocation(project, month_id, person_id, pct)
    if payload.expenses is not None:
        set_expenses(project, month_id, payload.expenses)
    if payload.revenue is not None:
        set_revenue(project, month_id, payload.revenue)
    return store_project(project, projects)


@app.put("/api/projects/{project_id}/members/{person_id}")
async def add_project_member(project_id: str, person_id: str) -> dict[str, Any]:
    if not any(row.get("id") == person_id for row in load_roster_records()):
        raise HTTPException(status_code=404, detail="Person not found")
    projects = projects_from_dicts(load_project_records())
    project = toggle_member(find_project(project_id, projects), person_id, True)
    return store_project(project, projects)


@app.delete("/api/projects/{project_id}/members/{person_id}")
async def remove_project_member(project_id: str, person_id: str) -> dict[str, Any]:
    projects = projects_from_dicts(load_project_records())
    project = toggle_member(find_project(project_id, projects), person_id, False)
    return store_project(project, projects)


@app.get("/api/projects/{project_id}/totals")
async def get_project_totals(project_id: str) -> dict[str, Any]:
    project = find_project(project_id, projects_from_dicts(load_project_records()))
    roster = roster_from_dicts(load_roster_records())
    return camel_dump(compute_project_totals(project, roster))


# --- weekly todo / BD tracking ---


@app.get("/api/todo")
async def get_week(week_key: str = Query("", alias="weekKey")) -> dict[str, Any]:
    if not week_key:
        raise HTTPException(status_code=400, detail="weekKey required")
    state = load_todo_state()
    rows = list(state["weeks"].get(week_key, {}).values())
    order = resolve_order(week_key, state["orders"])
    if order is None:
        order = alpha_order(projects_from_dicts(load_project_records()))
    return {"weekKey": week_key, "order": order, "rows": rows}


@app.put("/api/todo")
async def save_week(payload: WeekPayload) -> dict[str, Any]:
    state = load_todo_state()
    week = state["weeks"].setdefault(payload.week_key, {})
    for row in payload.rows:
        week[row.project_id] = row_to_dict(row_from_dict(dump_payload(row)))
    if payload.order is not None:
        state["orders"][payload.week_key] = payload.order
    save_todo_state(state)
    logger.info("Week saved", extra={"week_key": payload.week_key})
    return {"ok": True}


@app.post("/api/todo/copy-unfinished")
async def copy_unfinished_todos(payload: CopyWeekRequest) -> dict[str, Any]:
    try:
        prev_key = previous_week_key(payload.week_key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid weekKey") from exc
    state = load_todo_state()
    previous = {pid: row_from_dict(row) for pid, row in state["weeks"].get(prev_key, {}).items()}
    current = {pid: row_from_dict(row) for pid, row in state["weeks"].get(payload.week_key, {}).items()}
    project_ids = [row.get("id") for row in load_project_records()]
    merged, copied = copy_unfinished(previous, current, project_ids)
    if copied:
        state["weeks"][payload.week_key] = {pid: row_to_dict(row) for pid, row in merged.items()}
        save_todo_state(state)
    return {"copied": copied, "rows": [row_to_dict(row) for row in merged.values()]}


# --- analytics ---


@app.get("/api/analytics/projects")
async def get_portfolio_totals(
    status: list[ProjectStatus] | None = Query(None),
) -> list[dict[str, Any]]:
    roster, projects = load_snapshot(statuses=status)
    results = []
    for project in projects:
        totals = camel_dump(compute_project_totals(project, roster))
        totals.update({"id": project.id, "name": project.name, "projectStatus": project.project_status})
        results.append(totals)
    return results


@app.get("/api/analytics/rollup")
async def get_rollup(
    start: str | None = None,
    end: str | None = None,
    status: list[ProjectStatus] | None = Query(None),
    project: list[str] | None = Query(None),
    padded: bool = False,
) -> dict[str, Any]:
    start_ym = normalize_ym(start, "start")
    end_ym = normalize_ym(end, "end")
    roster, projects = load_snapshot(statuses=status, project_ids=project)
    if padded:
        buckets = pad_calendar_rollup(projects, roster, start_ym=start_ym, end_ym=end_ym)
    else:
        buckets = build_calendar_rollup(projects, roster, start_ym, end_ym)
    return {
        "buckets": [camel_dump(bucket) for bucket in buckets],
        "summary": camel_dump(summarize_rollup(buckets)),
        "cumulative": camel_dump(cumulative_series(buckets)),
    }


@app.get("/api/analytics/utilization")
async def get_utilization(
    start: str | None = None,
    end: str | None = None,
    group_by: str = Query(GROUP_BY_PERSON, alias="groupBy"),
    status: list[ProjectStatus] | None = Query(None),
    project: list[str] | None = Query(None),
    department: list[Department] | None = Query(None),
    person: list[str] | None = Query(None),
    search: str = "",
) -> dict[str, Any]:
    if group_by not in (GROUP_BY_PERSON, GROUP_BY_DEPARTMENT):
        raise HTTPException(status_code=400, detail="groupBy must be person or department")
    start_ym = normalize_ym(start, "start")
    end_ym = normalize_ym(end, "end")
    roster, projects = load_snapshot(statuses=status, project_ids=project)
    people_filter = people_filter_for(roster, department, person, search)

    matrix = build_utilization_matrix(projects, roster, people_filter, start_ym, end_ym, group_by)
    result = camel_dump(matrix)
    if group_by == GROUP_BY_PERSON:
        result["laborCostByMonth"] = labor_cost_by_month(projects, roster, people_filter, start_ym, end_ym)
    return result


@app.get("/api/export/excel")
async def export_excel(
    start: str | None = None,
    end: str | None = None,
    status: list[ProjectStatus] | None = Query(None),
    group_by: str = Query(GROUP_BY_DEPARTMENT, alias="groupBy"),
) -> StreamingResponse:
    start_ym = normalize_ym(start, "start")
    end_ym = normalize_ym(end, "end")
    roster, projects = load_snapshot(statuses=status)

    buckets = build_calendar_rollup(projects, roster, start_ym, end_ym)
    totals = [(project.name, compute_project_totals(project, roster)) for project in projects]
    matrix = build_utilization_matrix(projects, roster, None, start_ym, end_ym, group_by)

    label = f"{start_ym or 'all'}_{end_ym or 'all'}"
    output = io.BytesIO(build_export_zip(buckets, totals, matrix, label))

    filename = f"staffing-plan-{label}.zip"
    return StreamingResponse(
        output,
        media_type="application/zip",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# --- helpers ---


def dump_payload(payload: BaseModel) -> dict[str, Any]:
    return payload.model_dump(mode="json", by_alias=True, exclude_none=True)


def camel_dump(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    if isinstance(value, dict):
        return {
            to_camel(key) if isinstance(key, str) and "_" in key else key: camel_dump(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [camel_dump(item) for item in value]
    return value


def normalize_ym(value: str | None, field: str) -> str | None:
    if not value:
        return None
    parsed = parse_ym(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid {field}, expected YYYY-MM")
    return format_ym(*parsed)


def people_filter_for(
    roster: list[RosterPerson],
    departments: list[Department] | None,
    people_ids: list[str] | None,
    search: str,
) -> set[str] | None:
    if departments is None and people_ids is None and not search:
        return None
    selected = select_people(
        roster,
        departments={dept.value for dept in departments} if departments is not None else None,
        people_ids=set(people_ids) if people_ids is not None else None,
        search=search,
    )
    return {person.id for person in selected}


def load_snapshot(
    statuses: list[ProjectStatus] | None = None,
    project_ids: list[str] | None = None,
) -> tuple[list[RosterPerson], list[Project]]:
    roster = roster_from_dicts(load_roster_records())
    projects = filter_projects(
        projects_from_dicts(load_project_records()),
        project_ids=set(project_ids) if project_ids is not None else None,
        statuses={status.value for status in statuses} if statuses is not None else None,
    )
    return roster, projects


def find_project(project_id: str, projects: list[Project]) -> Project:
    for project in projects:
        if project.id == project_id:
            return project
    raise HTTPException(status_code=404, detail="Not found")


def store_project(project: Project, projects: list[Project]) -> dict[str, Any]:
    save_project_records([project_to_dict(row) for row in upsert_project(project, projects)])
    return project_to_dict(project)


def cleanup_people(person_ids: list[str]) -> None:
    records = load_project_records()
    projects = projects_from_dicts(records)
    touched = sum(remove_person(person_id, projects) for person_id in person_ids)
    save_project_records([project_to_dict(project) for project in projects])

    state = load_todo_state()
    for week in state["weeks"].values():
        rows = {pid: row_from_dict(row) for pid, row in week.items()}
        if any(remove_assignee(rows, person_id) for person_id in person_ids):
            week.update({pid: row_to_dict(row) for pid, row in rows.items()})
    save_todo_state(state)
    logger.info("Removed %s from %d project months", ", ".join(person_ids), touched)


def roster_path() -> Path:
    return STORAGE_DIR / "roster.json"


def projects_path() -> Path:
    return STORAGE_DIR / "projects.json"


def todo_path() -> Path:
    return STORAGE_DIR / "todo.json"


def load_roster_records() -> list[dict[str, Any]]:
    records, version = unwrap_snapshot(read_json_safe(roster_path(), []))
    return migrate_roster(records, version)


def save_roster_records(records: list[dict[str, Any]]) -> None:
    write_json(roster_path(), wrap_snapshot(records))


def load_project_records() -> list[dict[str, Any]]:
    records, version = unwrap_snapshot(read_json_safe(projects_path(), []))
    return migrate_projects(records, version)


def save_project_records(records: list[dict[str, Any]]) -> None:
    write_json(projects_path(), wrap_snapshot(records))


def load_todo_state() -> dict[str, Any]:
    state = read_json_safe(todo_path(), {})
    if not isinstance(state, dict):
        state = {}
    state.setdefault("weeks", {})
    state.setdefault("orders", {})
    return state


def save_todo_state(state: dict[str, Any]) -> None:
    write_json(todo_path(), state)


def read_json_safe(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return read_json(path)
    except (ValueError, OSError):
        logger.exception("Failed to read %s", path)
        return default


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=True), encoding="utf-8")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    try:
        import uvicorn
    except ImportError:
        raise SystemExit("Uvicorn not installed. Install with: pip install -e .")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
