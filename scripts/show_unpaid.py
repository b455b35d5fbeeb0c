#!/usr/bin/env python3
"""Show members who have not paid dues for a month, optionally queueing reminders."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from club_finance.aggregation import to_frame
from club_finance.config import configure_logging, get_db_path
from club_finance.db import ClubStore
from club_finance.formatting import format_percentage, format_rupiah, period_label
from club_finance.services import ClubFinanceService


def main(month: int, year: int, remind: bool = False, db_path: str | None = None) -> None:
    store = ClubStore(db_path or get_db_path())
    store.init_db()
    service = ClubFinanceService(store)

    overview = service.payments_overview(month, year)
    coverage = overview.coverage
    print(f"Dues for {period_label(month, year)}")
    print(f"  active members: {coverage.total_members}")
    print(f"  paid:           {coverage.paid_this_month} ({format_percentage(coverage.payment_rate)})")
    print(f"  collected:      {format_rupiah(coverage.total_collected)}")

    if not overview.unpaid:
        print("\nEveryone has paid. 🎉")
        return

    print(f"\nUnpaid ({len(overview.unpaid)}):")
    df = to_frame(overview.unpaid)[['name', 'member_class', 'phone']]
    print(df.fillna('-').to_string(index=False))

    if remind:
        count = service.generate_reminders(today=date(year, month, min(date.today().day, 28)))
        print(f"\nQueued {count} reminders.")


if __name__ == '__main__':
    today = date.today()
    parser = argparse.ArgumentParser(description='Show members with unpaid dues.')
    parser.add_argument('--month', type=int, default=today.month, help='Month number (1-12)')
    parser.add_argument('--year', type=int, default=today.year, help='Year')
    parser.add_argument('--remind', action='store_true', help='Create pending reminders for unpaid members')
    parser.add_argument('--db', default=None, help='Database path (defaults to CLUBFIN_DB_PATH)')
    args = parser.parse_args()
    configure_logging()
    main(args.month, args.year, remind=args.remind, db_path=args.db)
