"""Main entry point for the Streamlit multi-page app: the dashboard.

Pages in the pages/ directory automatically appear in the sidebar.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from club_finance import ui
from club_finance.config import CLUB_NAME
from club_finance.formatting import category_label, format_date, format_percentage, format_rupiah, period_label
from club_finance.services import DashboardData

RECENT_LIMIT = 10


def main():
    """Render the dashboard cards and the latest transactions."""
    st.set_page_config(page_title=f"Kas {CLUB_NAME}", page_icon="🏸", layout="wide")
    ui.render_sidebar()

    st.title(f"🏸 Manajemen Kas {CLUB_NAME}")
    st.caption("Kelola keuangan, anggota dan pembayaran kas dengan mudah")

    service = ui.get_service()
    data = None
    with ui.notify_errors("Memuat dashboard"):
        data = ui.load("dashboard", service.dashboard)
    if data is None:
        return

    _render_cards(data)
    st.divider()

    col1, col2 = st.columns([1, 2])
    with col1:
        _render_ledger_summary(data)
    with col2:
        _render_recent_transactions(data)


def _render_cards(data: DashboardData):
    coverage = data.coverage
    col1, col2, col3, col4 = st.columns(4)
    col1.metric(
        "Total Saldo",
        format_rupiah(data.ledger.balance),
        delta="Surplus" if data.ledger.is_surplus else "Defisit",
        delta_color="normal" if data.ledger.is_surplus else "inverse",
    )
    col2.metric("Total Anggota", coverage.total_members, help="Anggota aktif")
    col3.metric(
        f"Sudah Bayar ({period_label(coverage.month, coverage.year)})",
        coverage.paid_this_month,
        delta=format_rupiah(coverage.total_collected),
    )
    col4.metric("Belum Bayar", coverage.unpaid_this_month, help="Anggota belum bayar kas")

    if coverage.integrity_warning:
        st.warning(
            "Jumlah pembayaran bulan ini melebihi jumlah anggota aktif. "
            "Periksa kemungkinan data pembayaran ganda."
        )
    elif coverage.total_members:
        st.progress(min(coverage.payment_rate / 100, 1.0), text=f"Pembayaran kas: {format_percentage(coverage.payment_rate)}")


def _render_ledger_summary(data: DashboardData):
    st.subheader("📊 Ringkasan Keuangan")
    st.markdown(f"**Total Pemasukan:** :green[{format_rupiah(data.ledger.total_income)}]")
    st.markdown(f"**Total Pengeluaran:** :red[{format_rupiah(data.ledger.total_expense)}]")
    color = "green" if data.ledger.is_surplus else "red"
    st.markdown(f"**Saldo Akhir:** :{color}[{format_rupiah(data.ledger.balance)}]")


def _render_recent_transactions(data: DashboardData):
    st.subheader("🧾 Transaksi Terbaru")
    recent = data.transactions[:RECENT_LIMIT]
    if not recent:
        st.info("Belum ada transaksi. Tambahkan dari halaman Transaksi.")
        return
    df = pd.DataFrame(
        {
            "Tanggal": [format_date(t.date) for t in recent],
            "Jenis": ["Pemasukan" if t.is_income else "Pengeluaran" for t in recent],
            "Kategori": [category_label(t.category) for t in recent],
            "Deskripsi": [t.description for t in recent],
            "Jumlah": [format_rupiah(t.amount) for t in recent],
        }
    )
    st.dataframe(df, use_container_width=True, hide_index=True)


# Streamlit will execute this file directly
main()
