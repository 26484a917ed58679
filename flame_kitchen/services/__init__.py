"""
                        Services Module

Business logic shared by the API routes.

Services:
    - payment: Paystack payment processing (mock when unconfigured)
    - ordering: order pricing, numbering and settlement
    - day_session: trading day state and revenue totals
    - realtime: WebSocket rooms and event emission
    - excel_manager: process-safe Excel day reports
"""

from flame_kitchen.services.excel_manager import ExcelManager
from flame_kitchen.services.realtime import manager

__all__ = ["ExcelManager", "manager"]
