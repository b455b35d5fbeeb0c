"""Monthly financial and membership reports.

A report is a small header (title, period, generation time), a summary
block and one or two detail tables held as DataFrames.  The Streamlit
reports page shows them directly and offers the CSV export produced by
:func:`report_to_csv`.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

try:
    from . import aggregation as agg
    from .config import CLUB_NAME, REPORTS_DIR, ensure_data_directories
    from .formatting import category_label, format_date, format_percentage, format_rupiah, month_name
    from .models import Budget, Member, MemberPayment, Transaction
except ImportError:
    import aggregation as agg  # type: ignore
    from config import CLUB_NAME, REPORTS_DIR, ensure_data_directories  # type: ignore
    from formatting import category_label, format_date, format_percentage, format_rupiah, month_name  # type: ignore
    from models import Budget, Member, MemberPayment, Transaction  # type: ignore

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = ["Tanggal", "Jenis", "Kategori", "Deskripsi", "Jumlah"]
BUDGET_COLUMNS = ["Kategori", "Budget", "Aktual", "Sisa", "Persentase"]
MEMBER_COLUMNS = ["Nama", "Kelas", "Status", "Tanggal Bayar", "Jumlah"]


@dataclass
class Report:
    kind: str
    title: str
    month: int
    year: int
    generated_at: datetime
    summary: Dict[str, str]
    tables: Dict[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def period(self) -> str:
        return f"{month_name(self.month)} {self.year}"

    @property
    def filename(self) -> str:
        label = "Keuangan" if self.kind == "financial" else "Keanggotaan"
        return f"Laporan_{label}_{month_name(self.month)}_{self.year}.csv"


def build_financial_report(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    month: int,
    year: int,
    club_name: str = CLUB_NAME,
    generated_at: Optional[datetime] = None,
) -> Report:
    """Summarise one month of the ledger and compare it with that month's budgets.

    Only transactions dated inside the month are counted, whatever range
    the caller fetched.
    """
    period = agg.filter_period(transactions, month, year)
    summary = agg.ledger_summary(period)

    txn_rows: List[List[str]] = [
        [
            format_date(t.date),
            "Pemasukan" if t.is_income else "Pengeluaran",
            category_label(t.category) if t.category else "-",
            t.description,
            format_rupiah(t.amount),
        ]
        for t in sorted(period, key=lambda t: (t.date, t.id))
    ]

    tables = {"Daftar Transaksi": pd.DataFrame(txn_rows, columns=TRANSACTION_COLUMNS)}

    variances = agg.budget_variance(budgets, period, month=month, year=year)
    if variances:
        tables["Perbandingan Budget vs Aktual"] = pd.DataFrame(
            [
                [
                    category_label(v.category),
                    format_rupiah(v.monthly_limit),
                    format_rupiah(v.actual),
                    format_rupiah(v.remaining),
                    format_percentage(v.percentage),
                ]
                for v in variances
            ],
            columns=BUDGET_COLUMNS,
        )

    return Report(
        kind="financial",
        title=f"Laporan Keuangan {club_name}",
        month=month,
        year=year,
        generated_at=generated_at or datetime.now(),
        summary={
            "Total Pemasukan": format_rupiah(summary.total_income),
            "Total Pengeluaran": format_rupiah(summary.total_expense),
            "Saldo": format_rupiah(summary.balance),
        },
        tables=tables,
    )


def build_membership_report(
    members: Iterable[Member],
    payments: Iterable[MemberPayment],
    month: int,
    year: int,
    club_name: str = CLUB_NAME,
    generated_at: Optional[datetime] = None,
) -> Report:
    """Dues coverage for one month with a per-member payment table."""
    members = list(members)
    payments = list(payments)
    coverage = agg.payment_coverage(members, payments, month, year)
    statuses = agg.membership_status(members, payments, month, year)

    rows = [
        [
            s.name,
            s.member_class,
            "Sudah Bayar" if s.paid else "Belum Bayar",
            format_date(s.payment_date) if s.paid else "-",
            format_rupiah(s.amount) if s.paid else "-",
        ]
        for s in statuses
    ]

    return Report(
        kind="membership",
        title=f"Laporan Keanggotaan {club_name}",
        month=month,
        year=year,
        generated_at=generated_at or datetime.now(),
        summary={
            "Total Anggota Aktif": str(coverage.total_members),
            "Sudah Membayar": str(coverage.paid_this_month),
            "Belum Membayar": str(coverage.unpaid_this_month),
            "Persentase Pembayaran": format_percentage(coverage.payment_rate),
        },
        tables={"Status Pembayaran Kas": pd.DataFrame(rows, columns=MEMBER_COLUMNS)},
    )


def report_to_csv(report: Report) -> str:
    """Render a report as CSV text: header lines, summary, then each table."""
    buffer = io.StringIO()
    buffer.write(f"{report.title}\n{report.period}\n")
    buffer.write(f"Dibuat pada,{report.generated_at:%d/%m/%Y %H:%M}\n\n")
    pd.DataFrame(list(report.summary.items()), columns=["Ringkasan", "Nilai"]).to_csv(buffer, index=False)
    for name, table in report.tables.items():
        buffer.write(f"\n{name}\n")
        table.to_csv(buffer, index=False)
    return buffer.getvalue()


def save_report(report: Report, directory: Optional[Path] = None) -> Path:
    """Write the CSV rendition of ``report`` into ``directory`` (default: reports dir)."""
    if directory is None:
        ensure_data_directories()
        directory = REPORTS_DIR
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report.filename
    path.write_text(report_to_csv(report), encoding="utf-8")
    logger.info("Saved %s report to %s", report.kind, path)
    return path
