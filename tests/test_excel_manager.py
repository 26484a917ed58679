"""End-of-day Excel exports.

Invariants:
    - Each closed day gets its own workbook with Summary and Orders sheets
    - The history keeps one row per day; re-closing a day replaces its row
    - An export blocked by the workbook lock is retried
"""

import pandas as pd
import pytest

from flame_kitchen.services.excel_manager import ExcelManager
from flame_kitchen.tasks import export_day_report


@pytest.fixture(autouse=True)
def data_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(ExcelManager, "DATA_DIR", tmp_path)
    return tmp_path


def make_report(day: str, revenue: float, orders: int = 1) -> dict:
    return {
        "date": day,
        "closed_at": f"{day}T22:00:00",
        "closed_by": "Cashier User",
        "notes": None,
        "total_orders": orders,
        "total_revenue": revenue,
        "total_cash": revenue,
        "total_card": 0.0,
        "total_momo": 0.0,
        "total_paystack": 0.0,
        "orders": [
            {
                "order_number": f"DF-{day.replace('-', '')}-{n:05d}",
                "order_type": "TAKEAWAY",
                "status": "COMPLETED",
                "payment_status": "PAID",
                "payment_method": "CASH",
                "items": 1,
                "subtotal": revenue / orders,
                "discount": 0.0,
                "tax": 0.0,
                "total": revenue / orders,
                "created_at": f"{day}T12:00:00",
            }
            for n in range(1, orders + 1)
        ],
    }


def test_export_writes_day_workbook():
    result = ExcelManager.export_day_report(make_report("2026-03-01", 80.0, orders=2))

    assert result["success"]
    report_file = ExcelManager.report_path("2026-03-01")
    assert result["file"] == str(report_file)

    summary = pd.read_excel(report_file, sheet_name="Summary", engine="openpyxl")
    orders = pd.read_excel(report_file, sheet_name="Orders", engine="openpyxl")
    assert list(summary.columns) == ExcelManager.SUMMARY_COLUMNS
    assert summary.loc[0, "total_revenue"] == 80.0
    assert list(orders.columns) == ExcelManager.ORDER_COLUMNS
    assert len(orders) == 2


def test_history_replaces_reclosed_day():
    ExcelManager.export_day_report(make_report("2026-03-01", 80.0))
    ExcelManager.export_day_report(make_report("2026-03-02", 40.0))
    ExcelManager.export_day_report(make_report("2026-03-01", 95.0))

    history = ExcelManager.get_day_history()

    assert len(history) == 2
    by_day = {str(row["date"]): row for row in history}
    assert by_day["2026-03-01"]["total_revenue"] == 95.0
    assert by_day["2026-03-02"]["total_revenue"] == 40.0


def test_empty_day_exports_header_only():
    report = make_report("2026-03-03", 0.0)
    report["orders"] = []
    report["total_orders"] = 0

    result = ExcelManager.export_day_report(report)

    orders = pd.read_excel(ExcelManager.report_path("2026-03-03"), sheet_name="Orders", engine="openpyxl")
    assert result["success"]
    assert orders.empty


def test_history_empty_before_first_export():
    assert ExcelManager.get_day_history() == []


def test_task_runs_export():
    result = export_day_report.apply(args=(make_report("2026-03-04", 12.5),)).get()

    assert result["success"]
    assert result["date"] == "2026-03-04"
    assert "processing_time_seconds" in result
    assert ExcelManager.report_path("2026-03-04").exists()


def test_task_retries_when_workbook_is_locked(monkeypatch):
    real_export = ExcelManager.export_day_report
    calls = []

    def export_after_lock_released(report):
        calls.append(report["date"])
        if len(calls) == 1:
            return {
                "success": False,
                "message": "Lock timeout (30s)",
                "date": report["date"],
                "file": None,
                "exported_at": None,
                "retryable": True,
            }
        return real_export(report)

    monkeypatch.setattr(ExcelManager, "export_day_report", export_after_lock_released)

    result = export_day_report.apply(args=(make_report("2026-03-05", 20.0),)).get()

    assert calls == ["2026-03-05", "2026-03-05"]
    assert result["success"]
    assert ExcelManager.report_path("2026-03-05").exists()
