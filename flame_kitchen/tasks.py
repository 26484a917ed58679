"""
Celery Tasks
Background work that should not hold up an API request.
"""

import logging
import time

from flame_kitchen.celery_worker import celery_app
from flame_kitchen.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
)
def export_day_report(self, report: dict) -> dict:
    """
    Export a closed day to Excel.

    A lock timeout (another export holding the workbook) is retried;
    other failures are returned in the result.

    Args:
        report: Day totals plus the day's orders

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    day = report.get("date", "unknown")

    logger.info(f"Task {task_id}: Exporting day {day}")
    start_time = time.time()

    result = ExcelManager.export_day_report(report)

    if result["retryable"]:
        logger.warning(
            f"Task {task_id}: Day {day} export blocked - {result['message']} "
            f"(retry {self.request.retries + 1}/{self.max_retries})"
        )
        raise self.retry(countdown=self.default_retry_delay * 2 ** self.request.retries)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"Task {task_id}: Day {day} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: Day {day} export failed - {result['message']}")

    return result
