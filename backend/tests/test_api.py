import json

import pytest
from fastapi.testclient import TestClient

import main

ROSTER = [
    {
        "id": "a",
        "name": "Ada",
        "personType": "Full-Time",
        "department": "Engineering",
        "compMode": "monthly",
        "monthlySalary": 8000,
        "baseMonthlyHours": 160,
    },
    {
        "id": "b",
        "name": "Bob",
        "personType": "Contractor",
        "department": "BD",
        "hourlyRate": 100,
        "baseMonthlyHours": 80,
    },
]


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "STORAGE_DIR", tmp_path)
    return TestClient(main.app)


@pytest.fixture
def planned(client):
    assert client.put("/api/roster", json=ROSTER).status_code == 200
    created = client.post(
        "/api/projects",
        json={"name": "Alpha", "startMonthISO": "2025-01", "memberIds": ["a", "b"]},
    )
    assert created.status_code == 201
    record = created.json()
    client.post(f"/api/projects/{record['id']}/months")
    record = client.get(f"/api/projects/{record['id']}").json()

    record["months"][0]["personAllocations"] = {"a": 50, "b": 150}
    record["months"][0]["revenue"] = 10000
    record["months"][1]["personAllocations"] = {"a": 100}
    response = client.put(f"/api/projects/{record['id']}", json=record)
    assert response.status_code == 200
    return response.json()["project"]


def test_health(client):
    assert client.get("/api/health").json() == {"ok": True}


def test_roster_round_trip(client):
    client.put("/api/roster", json=ROSTER)
    people = client.get("/api/roster").json()
    assert [p["id"] for p in people] == ["a", "b"]
    assert people[0]["isActive"] is True

    duplicate = client.post("/api/roster", json=ROSTER[0])
    assert duplicate.status_code == 400


def test_new_project_defaults(client):
    record = client.post("/api/projects").json()
    assert record["name"] == "Project 1"
    assert record["overheadPerHour"] == main.settings.OVERHEAD_PER_HOUR
    assert len(record["months"]) == 1


def test_project_update_clamps_and_relabels(planned):
    assert planned["months"][0]["personAllocations"]["b"] == 100
    assert [m["label"] for m in planned["months"]] == ["Jan 2025", "Feb 2025"]


def test_project_update_rejects_bad_start(client, planned):
    planned["startMonthISO"] = "January"
    response = client.put(f"/api/projects/{planned['id']}", json=planned)
    assert response.status_code == 400


def test_project_totals(client, planned):
    totals = client.get(f"/api/projects/{planned['id']}/totals").json()

    assert totals["totalHours"] == 80 + 80 + 160
    assert totals["laborCost"] == 80 * 50 + 80 * 100 + 160 * 50
    assert totals["revenue"] == 10000


def test_rollup_endpoint(client, planned):
    body = client.get("/api/analytics/rollup", params={"start": "2025-02"}).json()

    assert [b["ym"] for b in body["buckets"]] == ["2025-02"]
    assert body["buckets"][0]["allIn"] == 160 * 50 + 160 * 15
    assert body["summary"]["revenue"] == 0
    assert body["cumulative"][0]["cumAllIn"] == body["buckets"][0]["allIn"]


def test_rollup_rejects_bad_month(client):
    response = client.get("/api/analytics/rollup", params={"start": "2025-13"})
    assert response.status_code == 400


def test_utilization_by_department(client, planned):
    body = client.get("/api/analytics/utilization", params={"groupBy": "department"}).json()

    assert body["groupBy"] == "department"
    assert [row["key"] for row in body["rows"]] == ["Engineering", "BD"]
    assert body["rows"][1]["cells"][0]["util"] == pytest.approx(1.0)
    assert "laborCostByMonth" not in body


def test_utilization_by_person_with_filter(client, planned):
    body = client.get("/api/analytics/utilization", params={"department": "Engineering"}).json()

    assert [row["key"] for row in body["rows"]] == ["a"]
    assert body["laborCostByMonth"] == {"2025-01": 4000, "2025-02": 8000}


def test_utilization_rejects_unknown_grouping(client):
    response = client.get("/api/analytics/utilization", params={"groupBy": "team"})
    assert response.status_code == 400


def test_delete_person_cleans_projects(client, planned):
    assert client.delete("/api/roster/a").status_code == 200

    project = client.get(f"/api/projects/{planned['id']}").json()
    assert project["memberIds"] == ["b"]
    assert all("a" not in m["personAllocations"] for m in project["months"])
    assert client.delete("/api/roster/a").status_code == 404


def test_todo_order_is_inherited(client, planned):
    week = {
        "weekKey": "2025-01-06",
        "order": [planned["id"]],
        "rows": [{"projectId": planned["id"], "todos": [{"text": "Kickoff", "assignees": ["a"]}]}],
    }
    assert client.put("/api/todo", json=week).status_code == 200

    next_week = client.get("/api/todo", params={"weekKey": "2025-01-13"}).json()
    assert next_week["order"] == [planned["id"]]
    assert next_week["rows"] == []

    copied = client.post("/api/todo/copy-unfinished", json={"weekKey": "2025-01-13"}).json()
    assert copied["copied"] == 1
    assert copied["rows"][0]["todos"][0]["text"] == "Kickoff"


def test_todo_requires_week_key(client):
    assert client.get("/api/todo").status_code == 400


def test_export_excel(client, planned):
    response = client.get("/api/export/excel", params={"start": "2025-01", "end": "2025-02"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert "staffing-plan-2025-01_2025-02.zip" in response.headers["content-disposition"]


def test_undecodable_storage_reads_as_empty(client, tmp_path):
    (tmp_path / "roster.json").write_bytes(b"\xff\xfe[]")

    response = client.get("/api/roster")

    assert response.status_code == 200
    assert response.json() == []


def test_legacy_projects_with_junk_months_load(client, tmp_path):
    legacy = [{"id": "p", "name": "Old", "startMonthISO": "2024-01", "months": ["junk", {"id": "m"}]}]
    (tmp_path / "projects.json").write_text(json.dumps(legacy), encoding="utf-8")

    (project,) = client.get("/api/projects").json()

    assert [m["id"] for m in project["months"]] == ["m"]
    assert project["months"][0]["label"] == "Jan 2024"


def test_padded_rollup_honours_window(client, planned):
    params = {"start": "2025-02", "end": "2025-02", "padded": "true"}
    body = client.get("/api/analytics/rollup", params=params).json()

    assert [b["ym"] for b in body["buckets"]] == ["2025-02"]
    assert body["summary"]["revenue"] == 0


def test_month_cell_update(client, planned):
    month_id = planned["months"][1]["id"]
    payload = {"personAllocations": {"b": 250}, "expenses": 300, "revenue": 4500}

    project = client.patch(f"/api/projects/{planned['id']}/months/{month_id}", json=payload).json()

    assert project["months"][1]["personAllocations"] == {"a": 100, "b": 100}
    assert project["months"][1]["expenses"] == 300
    assert project["months"][1]["revenue"] == 4500

    missing = client.patch(f"/api/projects/{planned['id']}/months/nope", json=payload)
    assert missing.status_code == 404


def test_member_toggle(client, planned):
    project = client.delete(f"/api/projects/{planned['id']}/members/b").json()
    assert project["memberIds"] == ["a"]
    assert all("b" not in m["personAllocations"] for m in project["months"])

    project = client.put(f"/api/projects/{planned['id']}/members/b").json()
    assert project["memberIds"] == ["a", "b"]
    assert all(m["personAllocations"]["b"] == 0 for m in project["months"])

    assert client.put(f"/api/projects/{planned['id']}/members/ghost").status_code == 404


def test_week_order_defaults_to_alphabetical_and_can_be_cleared(client):
    zeta = client.post("/api/projects", json={"name": "Zeta"}).json()["id"]
    alpha = client.post("/api/projects", json={"name": "alpha"}).json()["id"]

    assert client.get("/api/todo", params={"weekKey": "2025-01-06"}).json()["order"] == [alpha, zeta]

    client.put("/api/todo", json={"weekKey": "2025-01-06", "rows": [], "order": [zeta, alpha]})
    assert client.get("/api/todo", params={"weekKey": "2025-01-06"}).json()["order"] == [zeta, alpha]

    client.put("/api/todo", json={"weekKey": "2025-01-06", "rows": [], "order": []})
    assert client.get("/api/todo", params={"weekKey": "2025-01-06"}).json()["order"] == [alpha, zeta]
