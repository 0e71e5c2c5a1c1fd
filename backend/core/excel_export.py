from __future__ import annotations

import io
import zipfile
from typing import List, Tuple

import pandas as pd
from openpyxl import Workbook

from .models import CalendarBucket, TotalsResult, UtilizationMatrix
from .rollup import summarize_rollup


def build_rollup_excel(
    buckets: List[CalendarBucket],
    totals: List[Tuple[str, TotalsResult]],
) -> bytes:
    rollup = pd.DataFrame(
        [
            {
                "Month": bucket.ym,
                "Label": bucket.label,
                "Hours": bucket.hours,
                "Labor": bucket.labor,
                "Overhead": bucket.overhead,
                "Expenses": bucket.expenses,
                "All_in": bucket.all_in,
                "Revenue": bucket.revenue,
            }
            for bucket in buckets
        ],
        columns=["Month", "Label", "Hours", "Labor", "Overhead", "Expenses", "All_in", "Revenue"],
    )
    summary = summarize_rollup(buckets)
    summary_df = pd.DataFrame([{"Item": key, "Value": value} for key, value in summary.items()])
    projects_df = pd.DataFrame(
        [
            {
                "Project": name,
                "Hours": result.total_hours,
                "Labor": result.labor_cost,
                "Overhead": result.overhead_cost,
                "Expenses": result.expenses,
                "All_in": result.all_in,
                "Revenue": result.revenue,
                "Profit": result.profit,
                "Margin": result.margin,
            }
            for name, result in totals
        ],
        columns=["Project", "Hours", "Labor", "Overhead", "Expenses", "All_in", "Revenue", "Profit", "Margin"],
    )

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        rollup.to_excel(writer, index=False, sheet_name="Calendar")
        summary_df.to_excel(writer, index=False, sheet_name="Summary")
        projects_df.to_excel(writer, index=False, sheet_name="Projects")
    output.seek(0)
    return output.read()


def build_utilization_excel(matrix: UtilizationMatrix) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Utilization"

    ws.append(["Name", "Project"] + [month.label for month in matrix.months] + ["Total hours"])
    for row in matrix.rows:
        values = ["N/A" if cell.inactive else round(cell.util, 4) for cell in row.cells]
        ws.append([row.label, "TOTAL"] + values + [row.total_hours])
        for project_row in row.by_project:
            project_values = [round(cell.util, 4) for cell in project_row.cells]
            ws.append(["", project_row.project_name] + project_values + [project_row.total_hours])

    ws_hours = wb.create_sheet(title="Hours")
    ws_hours.append(["Name", "Project"] + [month.ym for month in matrix.months])
    for row in matrix.rows:
        ws_hours.append([row.label, "TOTAL"] + [cell.hours for cell in row.cells])
        for project_row in row.by_project:
            ws_hours.append(["", project_row.project_name] + [cell.hours for cell in project_row.cells])

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.read()


def build_export_zip(
    buckets: List[CalendarBucket],
    totals: List[Tuple[str, TotalsResult]],
    matrix: UtilizationMatrix,
    label: str,
) -> bytes:
    rollup = build_rollup_excel(buckets, totals)
    utilization = build_utilization_excel(matrix)

    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"COST_ROLLUP_{label}.xlsx", rollup)
        zf.writestr(f"UTILIZATION_{label}.xlsx", utilization)

    zip_buffer.seek(0)
    return zip_buffer.read()
