from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from .models import DEFAULT_BASE_MONTHLY_HOURS
from .periods import label_from_start

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3

# 1: department / isActive on roster records
# 2: projectType renamed to projectStatus
# 3: description/status/memberIds filled, month labels derived from start month


def unwrap_snapshot(payload: Any) -> Tuple[List[Dict[str, Any]], int]:
    """Return ``(records, version)`` for a stored snapshot.

    Bare lists predate versioning and are treated as version 0.
    """
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)], 0
    if isinstance(payload, dict):
        items = payload.get("items") or []
        version = payload.get("schemaVersion", 0)
        if not isinstance(version, int):
            version = 0
        return [row for row in items if isinstance(row, dict)], version
    return [], SCHEMA_VERSION


def wrap_snapshot(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"schemaVersion": SCHEMA_VERSION, "items": records}


def migrate_roster(records: List[Dict[str, Any]], version: int) -> List[Dict[str, Any]]:
    migrated = []
    for record in records:
        row = dict(record)
        if version < 1:
            row.setdefault("department", "Other")
            row.setdefault("isActive", True)
        row.setdefault("personType", "Contractor")
        if row.get("baseMonthlyHours") is None:
            row["baseMonthlyHours"] = DEFAULT_BASE_MONTHLY_HOURS
        migrated.append(row)
    if version < SCHEMA_VERSION and records:
        logger.info("Migrated %d roster records from schema v%d", len(records), version)
    return migrated


def migrate_projects(records: List[Dict[str, Any]], version: int) -> List[Dict[str, Any]]:
    migrated = []
    for record in records:
        row = dict(record)
        if version < 2 and "projectStatus" not in row:
            row["projectStatus"] = row.pop("projectType", None) or "Active"
        if version < 3:
            row.setdefault("description", "")
            row.setdefault("status", "")
            row.setdefault("memberIds", [])
            start = str(row.get("startMonthISO") or "")
            months = []
            legacy_months = row.get("months") if isinstance(row.get("months"), list) else []
            for index, month in enumerate(m for m in legacy_months if isinstance(m, dict)):
                month = dict(month)
                month["label"] = label_from_start(start, index)
                month.setdefault("personAllocations", {})
                month.setdefault("expenses", 0)
                month.setdefault("revenue", 0)
                months.append(month)
            row["months"] = months
        migrated.append(row)
    if version < SCHEMA_VERSION and records:
        logger.info("Migrated %d projects from schema v%d", len(records), version)
    return migrated
