"""Aggregations over fetched club finance records.

Every function here is pure: it takes records already loaded from the
store and returns summary rows.  The same helpers feed the dashboard
cards, the analytics charts, the budget tracker and the reports, so the
numbers on every page agree.

Amounts stay plain floats throughout; currency formatting happens only
in :mod:`club_finance.formatting`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

try:
    from .config import (
        BUDGET_OVER_THRESHOLD,
        BUDGET_WARNING_THRESHOLD,
        MONTH_SHORT_NAMES,
        OTHER_CATEGORY,
    )
    from .models import EXPENSE, INCOME, Budget, Member, MemberPayment, Transaction
except ImportError:
    from config import (  # type: ignore
        BUDGET_OVER_THRESHOLD,
        BUDGET_WARNING_THRESHOLD,
        MONTH_SHORT_NAMES,
        OTHER_CATEGORY,
    )
    from models import EXPENSE, INCOME, Budget, Member, MemberPayment, Transaction  # type: ignore

logger = logging.getLogger(__name__)

ON_TRACK = 'on_track'
NEAR_LIMIT = 'near_limit'
OVER_BUDGET = 'over_budget'

_TXN_COLUMNS = ['id', 'type', 'amount', 'description', 'date', 'category']


@dataclass(frozen=True)
class MonthlyTotals:
    month: int
    label: str
    income: float
    expense: float

    @property
    def net(self) -> float:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryShare:
    category: str
    amount: float
    percentage: float


@dataclass(frozen=True)
class ClassPaymentRate:
    member_class: str
    paid: int
    total: int
    percentage: float


@dataclass(frozen=True)
class BudgetVariance:
    budget_id: int
    category: str
    month: int
    year: int
    monthly_limit: float
    actual: float
    remaining: float
    percentage: float
    status: str


@dataclass(frozen=True)
class BudgetTotals:
    total_budget: float
    total_spent: float
    total_remaining: float


@dataclass(frozen=True)
class LedgerSummary:
    total_income: float
    total_expense: float
    balance: float

    @property
    def is_surplus(self) -> bool:
        return self.balance >= 0


@dataclass(frozen=True)
class PaymentCoverage:
    month: int
    year: int
    total_members: int
    paid_this_month: int
    unpaid_this_month: int
    total_collected: float

    @property
    def integrity_warning(self) -> bool:
        """True when more payments than active members were recorded."""
        return self.unpaid_this_month < 0

    @property
    def payment_rate(self) -> float:
        if self.total_members == 0:
            return 0.0
        return self.paid_this_month / self.total_members * 100


@dataclass(frozen=True)
class MemberPaymentStatus:
    member_id: int
    name: str
    member_class: str
    paid: bool
    payment_date: Optional[date]
    amount: Optional[float]


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def month_window(month: int, year: int) -> Tuple[date, date]:
    """Return the half-open ``[first day, first day of next month)`` window.

    December rolls over into January of the following year.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def filter_period(transactions: Iterable[Transaction], month: int, year: int) -> List[Transaction]:
    """Keep transactions dated inside the given calendar month."""
    start, end = month_window(month, year)
    return [t for t in transactions if start <= t.date < end]


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Build a DataFrame with ``Year``/``Month`` columns derived from ``date``."""
    rows = [
        {
            'id': t.id,
            'type': t.type,
            'amount': t.amount,
            'description': t.description,
            'date': t.date,
            'category': t.category,
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=_TXN_COLUMNS)
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0).astype(float)
    dates = pd.to_datetime(df['date'])
    df['Year'] = dates.dt.year
    df['Month'] = dates.dt.month
    return df


def to_frame(rows: Sequence[object]) -> pd.DataFrame:
    """Turn a list of result rows into a DataFrame, including derived properties."""
    records = []
    for row in rows:
        if not is_dataclass(row):
            raise TypeError(f"expected a dataclass row, got {type(row).__name__}")
        record = asdict(row)
        for name in ('net', 'is_surplus', 'integrity_warning', 'payment_rate'):
            if hasattr(row, name):
                record[name] = getattr(row, name)
        records.append(record)
    return pd.DataFrame(records)


def _paid_member_ids(payments: Iterable[MemberPayment], month: int, year: int) -> set:
    return {p.member_id for p in payments if p.month == month and p.year == year}


# ----------------------------------------------------------------------
# Monthly series
# ----------------------------------------------------------------------

def monthly_series(transactions: Iterable[Transaction], year: int) -> List[MonthlyTotals]:
    """Income and expense per calendar month of ``year``.

    Always returns twelve buckets, January first, zero-filled where a
    month has no transactions.  Months come from the transaction date,
    not the record creation time.
    """
    df = transactions_frame(transactions)
    df = df[df['Year'] == year]

    income = df[df['type'] == INCOME].groupby('Month')['amount'].sum()
    expense = df[df['type'] == EXPENSE].groupby('Month')['amount'].sum()

    return [
        MonthlyTotals(
            month=month,
            label=MONTH_SHORT_NAMES[month - 1],
            income=float(income.get(month, 0.0)),
            expense=float(expense.get(month, 0.0)),
        )
        for month in range(1, 13)
    ]


# ----------------------------------------------------------------------
# Category breakdown
# ----------------------------------------------------------------------

def category_breakdown(transactions: Iterable[Transaction]) -> List[CategoryShare]:
    """Expense totals per category with their share of all expenses.

    Transactions without a category are counted under ``OTHER_CATEGORY``.
    When there is no expense at all every percentage is zero.
    """
    df = transactions_frame(transactions)
    expense = df[df['type'] == EXPENSE].copy()
    if expense.empty:
        return []

    category = expense['category'].fillna('').astype(str).str.strip()
    expense['bucket'] = np.where(category == '', OTHER_CATEGORY, category)
    totals = expense.groupby('bucket')['amount'].sum().sort_values(ascending=False)
    total_expense = float(totals.sum())

    return [
        CategoryShare(
            category=str(bucket),
            amount=float(amount),
            percentage=(float(amount) / total_expense * 100) if total_expense > 0 else 0.0,
        )
        for bucket, amount in totals.items()
    ]


# ----------------------------------------------------------------------
# Class payment rates
# ----------------------------------------------------------------------

def class_payment_rates(
    members: Iterable[Member],
    payments: Iterable[MemberPayment],
    month: int,
    year: int,
) -> List[ClassPaymentRate]:
    """Share of active members per class who paid for ``month``/``year``.

    A member counts once whether they have one payment or several.
    """
    paid_ids = _paid_member_ids(payments, month, year)
    active = [m for m in members if m.is_active]
    if not active:
        return []

    df = pd.DataFrame(
        {
            'member_class': [m.member_class for m in active],
            'paid': [m.id in paid_ids for m in active],
        }
    )
    stats = df.groupby('member_class', sort=True)['paid'].agg(['sum', 'count'])

    rows = []
    for member_class, record in stats.iterrows():
        paid = int(record['sum'])
        total = int(record['count'])
        rows.append(ClassPaymentRate(
            member_class=str(member_class),
            paid=paid,
            total=total,
            percentage=(paid / total * 100) if total else 0.0,
        ))
    return rows


# ----------------------------------------------------------------------
# Budget variance
# ----------------------------------------------------------------------

def classify_budget(percentage: float) -> str:
    """Map percent-of-limit used onto a budget status.

    Both thresholds are strict: 80% is still on track and 100% is near
    the limit, not over it.
    """
    if percentage > BUDGET_OVER_THRESHOLD:
        return OVER_BUDGET
    if percentage > BUDGET_WARNING_THRESHOLD:
        return NEAR_LIMIT
    return ON_TRACK


def budget_variance(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[BudgetVariance]:
    """Compare each budget's limit with expense spending in its own month.

    ``month``/``year`` restrict which budgets are evaluated; each budget is
    always measured against its own ``[first day, next first day)`` window.
    """
    expenses = [t for t in transactions if t.is_expense]
    spent: Dict[Tuple[str, int, int], float] = {}

    rows = []
    for budget in budgets:
        if month is not None and budget.month != month:
            continue
        if year is not None and budget.year != year:
            continue

        key = (budget.category, budget.month, budget.year)
        if key not in spent:
            in_window = filter_period(expenses, budget.month, budget.year)
            spent[key] = float(sum(t.amount for t in in_window if t.category == budget.category))
        actual = spent[key]

        limit = float(budget.monthly_limit)
        percentage = (actual / limit * 100) if limit > 0 else 0.0
        rows.append(BudgetVariance(
            budget_id=budget.id,
            category=budget.category,
            month=budget.month,
            year=budget.year,
            monthly_limit=limit,
            actual=actual,
            remaining=limit - actual,
            percentage=percentage,
            status=classify_budget(percentage),
        ))
    return rows


def budget_totals(variances: Iterable[BudgetVariance]) -> BudgetTotals:
    variances = list(variances)
    total_budget = float(sum(v.monthly_limit for v in variances))
    total_spent = float(sum(v.actual for v in variances))
    return BudgetTotals(
        total_budget=total_budget,
        total_spent=total_spent,
        total_remaining=total_budget - total_spent,
    )


# ----------------------------------------------------------------------
# Dashboard summary
# ----------------------------------------------------------------------

def ledger_summary(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Total income, total expense and running balance over all given rows."""
    df = transactions_frame(transactions)
    totals = df.groupby('type')['amount'].sum()
    income = float(totals.get(INCOME, 0.0))
    expense = float(totals.get(EXPENSE, 0.0))
    return LedgerSummary(total_income=income, total_expense=expense, balance=income - expense)


def payment_coverage(
    members: Iterable[Member],
    payments: Iterable[MemberPayment],
    month: int,
    year: int,
) -> PaymentCoverage:
    """Dues coverage for one period.

    ``paid_this_month`` counts payment rows, relying on the one payment
    per member and period rule.  The unpaid figure is not clamped; a
    negative value means that rule was broken and is logged.
    """
    total_members = sum(1 for m in members if m.is_active)
    period = [p for p in payments if p.month == month and p.year == year]
    paid = len(period)
    coverage = PaymentCoverage(
        month=month,
        year=year,
        total_members=total_members,
        paid_this_month=paid,
        unpaid_this_month=total_members - paid,
        total_collected=float(sum(p.amount for p in period)),
    )
    if coverage.integrity_warning:
        logger.warning(
            "More payments (%d) than active members (%d) for %02d/%d; "
            "check for duplicate dues records",
            paid, total_members, month, year,
        )
    return coverage


# ----------------------------------------------------------------------
# Member payment status
# ----------------------------------------------------------------------

def unpaid_members(
    members: Iterable[Member],
    payments: Iterable[MemberPayment],
    month: int,
    year: int,
) -> List[Member]:
    """Active members without a payment for ``month``/``year``."""
    paid_ids = _paid_member_ids(payments, month, year)
    return [m for m in members if m.is_active and m.id not in paid_ids]


def membership_status(
    members: Iterable[Member],
    payments: Iterable[MemberPayment],
    month: int,
    year: int,
) -> List[MemberPaymentStatus]:
    """One row per active member with their payment for the period, if any."""
    by_member: Dict[int, MemberPayment] = {}
    for payment in payments:
        if payment.month == month and payment.year == year:
            by_member.setdefault(payment.member_id, payment)

    rows = []
    for member in members:
        if not member.is_active:
            continue
        payment = by_member.get(member.id)
        rows.append(MemberPaymentStatus(
            member_id=member.id,
            name=member.name,
            member_class=member.member_class,
            paid=payment is not None,
            payment_date=payment.payment_date if payment else None,
            amount=payment.amount if payment else None,
        ))
    return rows
