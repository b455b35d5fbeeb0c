"""Plotly visualisation helpers for the Club Finance Dashboard.

Each function takes the result rows produced by
:mod:`club_finance.aggregation` and returns a
`plotly.graph_objects.Figure` that Streamlit renders with
``st.plotly_chart``.  Amounts are plotted raw; only hover text and axis
labels go through the Rupiah formatting.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

try:
    from .aggregation import (
        NEAR_LIMIT,
        OVER_BUDGET,
        BudgetVariance,
        CategoryShare,
        ClassPaymentRate,
        MonthlyTotals,
        to_frame,
    )
    from .formatting import category_label, format_rupiah
except ImportError:
    from aggregation import (  # type: ignore
        NEAR_LIMIT,
        OVER_BUDGET,
        BudgetVariance,
        CategoryShare,
        ClassPaymentRate,
        MonthlyTotals,
        to_frame,
    )
    from formatting import category_label, format_rupiah  # type: ignore

INCOME_COLOR = "#10B981"
EXPENSE_COLOR = "#EF4444"
NET_COLOR = "#3B82F6"
STATUS_COLORS = {
    OVER_BUDGET: "#EF4444",
    NEAR_LIMIT: "#F59E0B",
}
ON_TRACK_COLOR = "#10B981"


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_monthly_trend_chart(monthly: Sequence[MonthlyTotals], title: str | None = None) -> go.Figure:
    """Grouped income/expense bars per month with the net result as a line.

    Parameters
    ----------
    monthly : sequence of MonthlyTotals
        Twelve buckets from :func:`~club_finance.aggregation.monthly_series`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Combined bar and line chart.
    """
    if not monthly:
        return _empty_figure()
    df = to_frame(monthly)
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["label"], y=df["income"], name="Pemasukan", marker_color=INCOME_COLOR,
                         hovertext=[format_rupiah(v) for v in df["income"]], hoverinfo="text+name"))
    fig.add_trace(go.Bar(x=df["label"], y=df["expense"], name="Pengeluaran", marker_color=EXPENSE_COLOR,
                         hovertext=[format_rupiah(v) for v in df["expense"]], hoverinfo="text+name"))
    fig.add_trace(go.Scatter(x=df["label"], y=df["net"], name="Saldo bersih", mode="lines+markers",
                             line=dict(color=NET_COLOR), hovertext=[format_rupiah(v) for v in df["net"]],
                             hoverinfo="text+name"))
    fig.update_layout(
        title=title or "Tren Keuangan Bulanan",
        barmode="group",
        xaxis_title="Bulan",
        yaxis_title="Jumlah (Rp)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def create_category_pie_chart(shares: Sequence[CategoryShare], title: str | None = None) -> go.Figure:
    """Pie chart of expense totals per category.

    Parameters
    ----------
    shares : sequence of CategoryShare
        Output of :func:`~club_finance.aggregation.category_breakdown`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart.
    """
    if not shares:
        return _empty_figure()
    df = to_frame(shares)
    df["Kategori"] = df["category"].map(category_label)
    fig = px.pie(df, names="Kategori", values="amount", hole=0.3)
    fig.update_traces(textinfo="percent+label")
    fig.update_layout(title=title or "Pengeluaran per Kategori")
    return fig


def create_class_payment_chart(rates: Sequence[ClassPaymentRate], title: str | None = None) -> go.Figure:
    """Bar chart of the dues payment rate per class, 0-100%."""
    if not rates:
        return _empty_figure()
    df = to_frame(rates)
    df["label"] = df.apply(lambda r: f"{r['paid']}/{r['total']}", axis=1)
    fig = px.bar(df, x="member_class", y="percentage", text="label")
    fig.update_traces(marker_color=NET_COLOR, textposition="outside")
    fig.update_layout(
        title=title or "Tingkat Pembayaran Kas per Kelas",
        xaxis_title="Kelas",
        yaxis_title="Sudah bayar (%)",
        yaxis_range=[0, 110],
    )
    return fig


def create_budget_chart(variances: Sequence[BudgetVariance], title: str | None = None) -> go.Figure:
    """Budget limit against actual spending, bars coloured by status."""
    if not variances:
        return _empty_figure()
    df = to_frame(variances)
    df = df.groupby("category", as_index=False).agg(
        monthly_limit=("monthly_limit", "sum"),
        actual=("actual", "sum"),
        status=("status", _worst_status),
    )
    df["Kategori"] = df["category"].map(category_label)
    colors = [STATUS_COLORS.get(s, ON_TRACK_COLOR) for s in df["status"]]

    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["Kategori"], y=df["monthly_limit"], name="Budget", marker_color="#CBD5E1"))
    fig.add_trace(go.Bar(x=df["Kategori"], y=df["actual"], name="Terpakai", marker_color=colors))
    fig.update_layout(
        title=title or "Budget vs Realisasi",
        barmode="group",
        xaxis_title="Kategori",
        yaxis_title="Jumlah (Rp)",
    )
    return fig


def _worst_status(statuses: pd.Series) -> str:
    values = set(statuses)
    if OVER_BUDGET in values:
        return OVER_BUDGET
    if NEAR_LIMIT in values:
        return NEAR_LIMIT
    return statuses.iloc[0]
