from datetime import date
from itertools import count

from core.models import Project
from core.todo import (
    ProjectWeekRow,
    TodoItem,
    alpha_order,
    copy_unfinished,
    previous_week_key,
    remove_assignee,
    resolve_order,
    row_from_dict,
    row_to_dict,
    week_key,
)


def _ids():
    counter = count(1)
    return lambda: f"t{next(counter)}"


def test_week_starts_on_monday():
    assert week_key(date(2025, 1, 8)) == "2025-01-06"
    assert week_key(date(2025, 1, 6)) == "2025-01-06"
    assert week_key(date(2025, 1, 5)) == "2024-12-30"
    assert previous_week_key("2025-01-06") == "2024-12-30"


def test_copy_unfinished_carries_open_todos():
    previous = {
        "p1": ProjectWeekRow(
            project_id="p1",
            todos=[
                TodoItem(id="a", text="Send invoice", assignees=["x"]),
                TodoItem(id="b", text="Done already", done=True),
                TodoItem(id="c", text="   "),
            ],
        )
    }

    state, copied = copy_unfinished(previous, {}, ["p1"], _ids())

    assert copied == 1
    (todo,) = state["p1"].todos
    assert todo.id == "t1"
    assert todo.text == "Send invoice"
    assert todo.assignees == ["x"]
    assert not todo.done


def test_copy_unfinished_skips_duplicates():
    previous = {
        "p1": ProjectWeekRow(
            project_id="p1",
            todos=[TodoItem(id="a", text="Call client", due_date="2025-01-10", assignees=["y", "x"])],
        )
    }
    current = {
        "p1": ProjectWeekRow(
            project_id="p1",
            bd_needed=True,
            todos=[TodoItem(id="z", text="  call CLIENT ", due_date="2025-01-10", assignees=["x", "y"])],
        )
    }

    state, copied = copy_unfinished(previous, current, ["p1"], _ids())

    assert copied == 0
    assert state["p1"].todos == current["p1"].todos
    assert state["p1"].bd_needed


def test_copy_unfinished_only_for_listed_projects():
    previous = {
        "p1": ProjectWeekRow(project_id="p1", todos=[TodoItem(id="a", text="One")]),
        "p2": ProjectWeekRow(project_id="p2", todos=[TodoItem(id="b", text="Two")]),
    }

    state, copied = copy_unfinished(previous, {}, ["p2", "p3"], _ids())

    assert copied == 1
    assert list(state) == ["p2"]


def test_resolve_order_inherits_latest_earlier_week():
    orders = {
        "2025-01-06": ["p2", "p1"],
        "2025-01-13": [],
        "2024-12-30": ["p1"],
    }

    assert resolve_order("2025-01-06", orders) == ["p2", "p1"]
    assert resolve_order("2025-01-20", orders) == ["p2", "p1"]
    assert resolve_order("2024-12-23", orders) is None


def test_alpha_order():
    projects = [Project(id="1", name="beta"), Project(id="2", name="Alpha"), Project(id="3")]
    assert alpha_order(projects) == ["3", "2", "1"]


def test_row_dict_conversion():
    row = row_from_dict(
        {
            "projectId": "p1",
            "bdNeeded": True,
            "bdNotes": None,
            "todos": [{"id": "a", "text": "Draft SOW", "dueDate": "", "assignees": ["x"]}],
        }
    )

    assert row.bd_notes == ""
    assert row.todos[0].due_date is None
    assert row_to_dict(row)["todos"][0] == {
        "id": "a",
        "text": "Draft SOW",
        "dueDate": None,
        "done": False,
        "assignees": ["x"],
    }


def test_remove_assignee():
    state = {
        "p1": ProjectWeekRow(
            project_id="p1",
            todos=[TodoItem(id="a", text="A", assignees=["x", "y"]), TodoItem(id="b", text="B")],
        )
    }

    assert remove_assignee(state, "x") == 1
    assert state["p1"].todos[0].assignees == ["y"]
