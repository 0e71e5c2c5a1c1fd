from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .models import Project


@dataclass
class TodoItem:
    id: str
    text: str
    due_date: Optional[str] = None
    done: bool = False
    assignees: List[str] = field(default_factory=list)


@dataclass
class ProjectWeekRow:
    project_id: str
    bd_needed: bool = False
    bd_notes: str = ""
    todos: List[TodoItem] = field(default_factory=list)


WeekState = Dict[str, ProjectWeekRow]


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_key(day: date) -> str:
    return week_start(day).isoformat()


def previous_week_key(key: str) -> str:
    return (date.fromisoformat(key) - timedelta(days=7)).isoformat()


def _dedupe_key(todo: TodoItem) -> str:
    return f"{todo.text.strip().lower()}|{todo.due_date or ''}|{','.join(sorted(todo.assignees))}"


def copy_unfinished(
    previous: WeekState,
    current: WeekState,
    project_ids: Iterable[str],
    make_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> Tuple[WeekState, int]:
    """Carry last week's open todos forward, skipping ones already present."""
    result: WeekState = dict(current)
    copied = 0
    for project_id in project_ids:
        prev_row = previous.get(project_id)
        if prev_row is None:
            continue
        pending = [todo for todo in prev_row.todos if not todo.done and todo.text.strip()]
        if not pending:
            continue
        row = result.get(project_id) or ProjectWeekRow(project_id=project_id)
        existing = {_dedupe_key(todo) for todo in row.todos}
        fresh = []
        for todo in pending:
            if _dedupe_key(todo) in existing:
                continue
            existing.add(_dedupe_key(todo))
            fresh.append(
                TodoItem(
                    id=make_id(),
                    text=todo.text,
                    due_date=todo.due_date,
                    done=False,
                    assignees=list(todo.assignees),
                )
            )
        if fresh:
            result[project_id] = ProjectWeekRow(
                project_id=row.project_id,
                bd_needed=row.bd_needed,
                bd_notes=row.bd_notes,
                todos=row.todos + fresh,
            )
            copied += len(fresh)
    return result, copied


def resolve_order(
    week: str,
    orders: Dict[str, List[str]],
) -> Optional[List[str]]:
    """Order saved for ``week``, else the latest non-empty order before it."""
    current = orders.get(week)
    if current:
        return list(current)
    earlier = sorted((key for key, order in orders.items() if key < week and order), reverse=True)
    if earlier:
        return list(orders[earlier[0]])
    return None


def alpha_order(projects: Iterable[Project]) -> List[str]:
    return [project.id for project in sorted(projects, key=lambda project: (project.name or "").lower())]


def todo_from_dict(data: Dict[str, Any]) -> TodoItem:
    return TodoItem(
        id=str(data.get("id") or uuid.uuid4()),
        text=str(data.get("text", "")),
        due_date=data.get("dueDate") or None,
        done=bool(data.get("done", False)),
        assignees=[str(pid) for pid in data.get("assignees") or []],
    )


def row_from_dict(data: Dict[str, Any]) -> ProjectWeekRow:
    return ProjectWeekRow(
        project_id=str(data.get("projectId", "")),
        bd_needed=bool(data.get("bdNeeded", False)),
        bd_notes=str(data.get("bdNotes") or ""),
        todos=[todo_from_dict(todo) for todo in data.get("todos") or []],
    )


def row_to_dict(row: ProjectWeekRow) -> Dict[str, Any]:
    return {
        "projectId": row.project_id,
        "bdNeeded": row.bd_needed,
        "bdNotes": row.bd_notes,
        "todos": [
            {
                "id": todo.id,
                "text": todo.text,
                "dueDate": todo.due_date,
                "done": todo.done,
                "assignees": list(todo.assignees),
            }
            for todo in row.todos
        ],
    }


def remove_assignee(state: WeekState, person_id: str) -> int:
    removed = 0
    for row in state.values():
        for todo in row.todos:
            if person_id in todo.assignees:
                todo.assignees = [pid for pid in todo.assignees if pid != person_id]
                removed += 1
    return removed
