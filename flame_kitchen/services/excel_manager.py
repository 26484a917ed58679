"""
Excel Report Manager with Concurrency Control

Process-safe Excel exports of closed trading days:
- one workbook per day with a Summary and an Orders sheet
- a running history workbook with one row per closed day

Workers may run several exports at once, so every write happens under
a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from flame_kitchen.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Process-safe Excel report writer."""

    DATA_DIR = Path(settings.data_directory)
    LOCK_TIMEOUT = settings.excel_lock_timeout

    HISTORY_FILENAME = "day_sessions.xlsx"

    SUMMARY_COLUMNS = [
        "date",
        "closed_at",
        "closed_by",
        "total_orders",
        "total_revenue",
        "total_cash",
        "total_card",
        "total_momo",
        "total_paystack",
        "notes",
        "exported_at",
    ]

    ORDER_COLUMNS = [
        "order_number",
        "order_type",
        "status",
        "payment_status",
        "payment_method",
        "items",
        "subtotal",
        "discount",
        "tax",
        "total",
        "created_at",
    ]

    @classmethod
    def _reports_dir(cls) -> Path:
        return cls.DATA_DIR / "day_reports"

    @classmethod
    def _history_file(cls) -> Path:
        return cls.DATA_DIR / cls.HISTORY_FILENAME

    @classmethod
    def _history_lock(cls) -> Path:
        return cls.DATA_DIR / f"{cls.HISTORY_FILENAME}.lock"

    @classmethod
    def report_path(cls, day: str) -> Path:
        return cls._reports_dir() / f"day-{day}.xlsx"

    @classmethod
    def _ensure_dirs(cls) -> None:
        """Create the data directories if needed."""
        reports_dir = cls._reports_dir()
        if not reports_dir.exists():
            reports_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created reports directory: {reports_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
                return pd.DataFrame(columns=columns)
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_day_report(cls, report: dict[str, Any]) -> dict[str, Any]:
        """
        Write a closed day's report and append it to the history.

        Args:
            report: Day totals plus an ``orders`` list of order rows

        Returns:
            Result dict with success flag, message and file path
        """
        cls._ensure_dirs()

        day = report.get("date", "unknown")
        result = {
            "success": False,
            "message": "",
            "date": day,
            "file": None,
            "exported_at": None,
            "retryable": False,
        }

        try:
            export_time = datetime.now().isoformat()
            summary_row = {column: report.get(column) for column in cls.SUMMARY_COLUMNS}
            summary_row["exported_at"] = export_time

            orders_df = pd.DataFrame(report.get("orders") or [], columns=cls.ORDER_COLUMNS)
            summary_df = pd.DataFrame([summary_row], columns=cls.SUMMARY_COLUMNS)

            report_file = cls.report_path(day)
            lock = FileLock(str(report_file) + ".lock", timeout=cls.LOCK_TIMEOUT)
            with lock:
                with pd.ExcelWriter(str(report_file), engine="openpyxl") as writer:
                    summary_df.to_excel(writer, sheet_name="Summary", index=False)
                    orders_df.to_excel(writer, sheet_name="Orders", index=False)

            history_lock = FileLock(str(cls._history_lock()), timeout=cls.LOCK_TIMEOUT)
            with history_lock:
                logger.debug(f"Lock acquired for day {day}")

                history = cls._load_or_create_df(cls._history_file(), cls.SUMMARY_COLUMNS)
                # A reopened and re-closed day replaces its earlier row
                if not history.empty:
                    history = history[history["date"].astype(str) != str(day)]
                history = pd.concat([history, summary_df], ignore_index=True)
                history.to_excel(str(cls._history_file()), index=False, engine="openpyxl")

            logger.info(f"Day {day} exported to Excel ({len(orders_df)} orders)")

            result["success"] = True
            result["message"] = f"Day {day} exported"
            result["file"] = str(report_file)
            result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            result["retryable"] = True
            logger.error(f"Lock timeout exporting day {day}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting day {day}")

        return result

    @classmethod
    def get_day_history(cls) -> list[dict[str, Any]]:
        """All exported day summaries."""
        history_file = cls._history_file()
        if not history_file.exists():
            return []

        try:
            df = pd.read_excel(history_file, engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading day history: {e}")
            return []
