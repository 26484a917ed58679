"""
Day Report Verification Script

Checks the exported day-session history workbook for consistency.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from flame_kitchen.services.excel_manager import ExcelManager

METHOD_COLUMNS = ["total_cash", "total_card", "total_momo", "total_paystack"]


def verify_history() -> bool:
    """Verify the day history file written by the day-close export."""
    history_file = ExcelManager.DATA_DIR / ExcelManager.HISTORY_FILENAME

    print("=" * 60)
    print("🔍 DAY REPORT VERIFICATION")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {history_file}")
    print("=" * 60)

    history = ExcelManager.get_day_history()
    if not history:
        print("\n❌ No day history found!")
        print("   Close a day first: POST /api/day-session/close")
        return False

    df = pd.DataFrame(history)
    print("\n✅ History loaded successfully!")

    print("\n📊 STATISTICS:")
    print(f"   Days: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in ExcelManager.SUMMARY_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print("\n✅ All required columns present")

    ok = not missing
    if "date" in df.columns:
        duplicates = df["date"].duplicated().sum()
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate days found!")
            ok = False
        else:
            print("✅ No duplicate days")

    if not missing:
        split = df[METHOD_COLUMNS].sum(axis=1).round(2)
        mismatched = df[(split - df["total_revenue"].round(2)).abs() > 0.01]
        if len(mismatched) > 0:
            print(f"\n⚠️ Payment split differs from revenue on: {list(mismatched['date'])}")
            ok = False
        else:
            print("✅ Payment split matches revenue")

        print("\n💰 REVENUE:")
        print(f"   Total: {df['total_revenue'].sum():.2f}")
        print(f"   Average per day: {df['total_revenue'].mean():.2f}")

        print("\n📋 RECENT DAYS:")
        print("-" * 60)
        cols = ["date", "total_orders", "total_revenue", "closed_by"]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_history() else 1)
