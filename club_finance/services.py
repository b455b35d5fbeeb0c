"""Operations the dashboard pages call.

:class:`ClubFinanceService` wraps an injected :class:`~club_finance.db.ClubStore`.
Writes are validated before the store is touched; reads fetch the rows a
page needs and run them through :mod:`club_finance.aggregation`.

Failures come in three kinds:

* :class:`ValidationError` - a required field is missing or invalid.
  Raised before any store call.
* :class:`DuplicatePaymentError` - the member already paid for that
  month.  Raised after the lookup, before any write.
* :class:`~club_finance.db.StoreError` - the database failed.  Passed
  through untouched; the operation is abandoned without retry.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, List, Optional, Tuple

try:
    from . import aggregation as agg
    from .config import (
        BUDGET_CATEGORIES,
        DEFAULT_DUES_AMOUNT,
        DUES_CATEGORY,
        REMINDER_LEAD_DAYS,
    )
    from .db import ClubStore
    from .formatting import period_label
    from .models import (
        ACTIVE,
        MEMBER_STATUSES,
        PAID,
        PENDING,
        SENT,
        TRANSACTION_TYPES,
        Budget,
        Member,
        MemberPayment,
        Reminder,
        Transaction,
    )
except ImportError:
    import aggregation as agg  # type: ignore
    from config import (  # type: ignore
        BUDGET_CATEGORIES,
        DEFAULT_DUES_AMOUNT,
        DUES_CATEGORY,
        REMINDER_LEAD_DAYS,
    )
    from db import ClubStore  # type: ignore
    from formatting import period_label  # type: ignore
    from models import (  # type: ignore
        ACTIVE,
        MEMBER_STATUSES,
        PAID,
        PENDING,
        SENT,
        TRANSACTION_TYPES,
        Budget,
        Member,
        MemberPayment,
        Reminder,
        Transaction,
    )

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """A required field is missing or holds an unusable value."""


class DuplicatePaymentError(ValidationError):
    """The member already has a dues payment for the requested period."""


@dataclass(frozen=True)
class DashboardData:
    transactions: List[Transaction]
    members: List[Member]
    ledger: agg.LedgerSummary
    coverage: agg.PaymentCoverage


@dataclass(frozen=True)
class AnalyticsData:
    year: int
    month: int
    monthly: List[agg.MonthlyTotals]
    categories: List[agg.CategoryShare]
    class_rates: List[agg.ClassPaymentRate]
    budgets: List[agg.BudgetVariance]


@dataclass(frozen=True)
class PaymentsOverview:
    month: int
    year: int
    payments: List[MemberPayment]
    coverage: agg.PaymentCoverage
    unpaid: List[Member]


@dataclass(frozen=True)
class BudgetOverview:
    month: int
    year: int
    budgets: List[Budget]
    variances: List[agg.BudgetVariance]
    totals: agg.BudgetTotals


def _require_text(value: Any, label: str) -> str:
    text = '' if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{label} harus diisi")
    return text


def _require_amount(value: Any, label: str, *, positive: bool = False) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} harus diisi")
    try:
        amount = float(str(value).replace(',', '.')) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} tidak valid: {value!r}") from exc
    if not math.isfinite(amount):
        raise ValidationError(f"{label} tidak valid: {value!r}")
    if amount < 0 or (positive and amount == 0):
        raise ValidationError(f"{label} harus lebih dari nol" if positive else f"{label} tidak boleh negatif")
    return amount


def _require_period(month: Any, year: Any) -> Tuple[int, int]:
    try:
        month, year = int(month), int(year)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Periode tidak valid: {month!r}/{year!r}") from exc
    if not 1 <= month <= 12:
        raise ValidationError(f"Bulan harus 1-12, bukan {month}")
    return month, year


class ClubFinanceService:
    """Validated writes and aggregated reads over a club store."""

    def __init__(self, store: ClubStore, *, dues_amount: float = DEFAULT_DUES_AMOUNT):
        self.store = store
        self.dues_amount = dues_amount

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def add_transaction(
        self,
        txn_type: Optional[str],
        amount: Any,
        description: Optional[str],
        txn_date: Optional[date] = None,
        category: Optional[str] = None,
    ) -> int:
        txn_type = _require_text(txn_type, "Jenis transaksi").lower()
        if txn_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Jenis transaksi tidak dikenal: {txn_type}")
        amount = _require_amount(amount, "Jumlah")
        description = _require_text(description, "Deskripsi")
        txn_date = txn_date or date.today()

        transaction_id = self.store.insert_transaction(
            txn_type, amount, description, txn_date, (category or '').strip() or None
        )
        logger.info("Recorded %s transaction #%d (%.0f)", txn_type, transaction_id, amount)
        return transaction_id

    def delete_transaction(self, transaction_id: int) -> bool:
        return self.store.delete_transaction(transaction_id)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------
    def save_member(
        self,
        name: Optional[str],
        member_class: Optional[str],
        phone: Optional[str] = None,
        status: str = ACTIVE,
        member_id: Optional[int] = None,
    ) -> int:
        """Create a member, or update one when ``member_id`` is given."""
        name = _require_text(name, "Nama")
        member_class = _require_text(member_class, "Kelas")
        status = (status or ACTIVE).strip().lower()
        if status not in MEMBER_STATUSES:
            raise ValidationError(f"Status anggota tidak dikenal: {status}")
        phone = (phone or '').strip() or None

        if member_id is None:
            member_id = self.store.insert_member(name, member_class, phone, status)
            logger.info("Added member #%d %s", member_id, name)
        else:
            self.store.update_member(member_id, name, member_class, phone, status)
            logger.info("Updated member #%d", member_id)
        return member_id

    def delete_member(self, member_id: int) -> bool:
        return self.store.delete_member(member_id)

    # ------------------------------------------------------------------
    # Dues payments
    # ------------------------------------------------------------------
    def record_payment(
        self,
        member_id: Optional[int],
        amount: Any,
        month: int,
        year: int,
        payment_date: Optional[date] = None,
        notes: str = '',
        member_name: Optional[str] = None,
    ) -> int:
        """Record a member's dues for a month together with its income entry.

        Raises:
            ValidationError: member or amount missing.
            DuplicatePaymentError: the member already paid for that month.
            StoreError: the write failed; neither row is kept.
        """
        if member_id is None or member_id == '':
            raise ValidationError("Mohon pilih anggota dan masukkan jumlah pembayaran")
        try:
            member_id = int(member_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Mohon pilih anggota dan masukkan jumlah pembayaran") from exc
        amount = _require_amount(amount, "Jumlah pembayaran")
        month, year = _require_period(month, year)
        payment_date = payment_date or date.today()

        existing = self.store.find_payment(member_id, month, year)
        if existing is not None:
            logger.warning(
                "Rejected duplicate dues for member #%d in %02d/%d (payment #%d exists)",
                member_id, month, year, existing.id,
            )
            raise DuplicatePaymentError("Anggota sudah membayar kas untuk bulan ini")

        if member_name is None:
            member_name = next((m.name for m in self.store.fetch_members() if m.id == member_id), '')
        description = f"Kas {period_label(month, year)} - {member_name}".rstrip(' -')

        payment_id, _ = self.store.record_payment_with_income(
            member_id, amount, month, year, payment_date, notes, description, DUES_CATEGORY
        )
        logger.info("Recorded dues payment #%d for member #%d (%02d/%d)", payment_id, member_id, month, year)
        return payment_id

    def payments_overview(self, month: int, year: int) -> PaymentsOverview:
        month, year = _require_period(month, year)
        members = self.store.fetch_members()
        payments = self.store.fetch_payments(month, year)
        return PaymentsOverview(
            month=month,
            year=year,
            payments=payments,
            coverage=agg.payment_coverage(members, payments, month, year),
            unpaid=agg.unpaid_members(members, payments, month, year),
        )

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------
    def save_budget(
        self,
        category: Optional[str],
        monthly_limit: Any,
        year: int,
        month: int,
        description: str = '',
        budget_id: Optional[int] = None,
    ) -> int:
        category = _require_text(category, "Kategori")
        if category not in BUDGET_CATEGORIES:
            logger.info("Budget uses free-form category %r", category)
        monthly_limit = _require_amount(monthly_limit, "Limit budget", positive=True)
        month, year = _require_period(month, year)
        description = (description or '').strip()

        if budget_id is None:
            budget_id = self.store.insert_budget(category, monthly_limit, year, month, description)
            logger.info("Added budget #%d for %s %02d/%d", budget_id, category, month, year)
        else:
            self.store.update_budget(budget_id, category, monthly_limit, year, month, description)
            logger.info("Updated budget #%d", budget_id)
        return budget_id

    def delete_budget(self, budget_id: int) -> bool:
        return self.store.delete_budget(budget_id)

    def budget_overview(self, month: int, year: int) -> BudgetOverview:
        month, year = _require_period(month, year)
        start, end = agg.month_window(month, year)
        budgets = self.store.fetch_budgets(year=year, month=month)
        expenses = self.store.fetch_transactions(start=start, end=end, txn_type='expense')
        variances = agg.budget_variance(budgets, expenses, month=month, year=year)
        return BudgetOverview(
            month=month,
            year=year,
            budgets=budgets,
            variances=variances,
            totals=agg.budget_totals(variances),
        )

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------
    def generate_reminders(self, today: Optional[date] = None) -> int:
        """Create pending reminders for active members who have not paid this month.

        Re-running for the same month refreshes the existing reminders
        instead of adding new ones.  Returns how many were written.
        """
        today = today or date.today()
        month, year = today.month, today.year
        members = self.store.fetch_members(status=ACTIVE)
        payments = self.store.fetch_payments(month, year)
        unpaid = agg.unpaid_members(members, payments, month, year)
        if not unpaid:
            logger.info("All active members have paid for %02d/%d", month, year)
            return 0

        reminder_date = today + timedelta(days=REMINDER_LEAD_DAYS)
        message = f"Reminder: Pembayaran kas bulan {period_label(month, year)} belum dilakukan"
        written = self.store.upsert_reminders([
            {
                'member_id': member.id,
                'month': month,
                'year': year,
                'reminder_date': reminder_date,
                'status': PENDING,
                'message': message,
            }
            for member in unpaid
        ])
        logger.info("Generated %d reminders for %02d/%d", written, month, year)
        return written

    def reminders(self) -> List[Reminder]:
        return self.store.fetch_reminders()

    def mark_reminder_sent(self, reminder_id: int) -> bool:
        return self.store.update_reminder_status(reminder_id, SENT)

    def mark_reminder_paid(self, reminder_id: int) -> bool:
        return self.store.update_reminder_status(reminder_id, PAID)

    def delete_reminder(self, reminder_id: int) -> bool:
        return self.store.delete_reminder(reminder_id)

    # ------------------------------------------------------------------
    # Aggregated reads
    # ------------------------------------------------------------------
    def dashboard(self, today: Optional[date] = None) -> DashboardData:
        """All-time ledger totals plus dues coverage for the current month."""
        today = today or date.today()
        transactions = self.store.fetch_transactions()
        members = self.store.fetch_members()
        payments = self.store.fetch_payments(today.month, today.year)
        return DashboardData(
            transactions=transactions,
            members=members,
            ledger=agg.ledger_summary(transactions),
            coverage=agg.payment_coverage(members, payments, today.month, today.year),
        )

    def analytics(self, year: int, month: Optional[int] = None) -> AnalyticsData:
        """Yearly series and breakdowns; class rates use ``month`` (default: current)."""
        month = month if month is not None else date.today().month
        month, year = _require_period(month, year)
        transactions = self.store.fetch_transactions(start=date(year, 1, 1), end=date(year + 1, 1, 1))
        budgets = self.store.fetch_budgets(year=year)
        members = self.store.fetch_members(status=ACTIVE)
        payments = self.store.fetch_payments(month, year)
        return AnalyticsData(
            year=year,
            month=month,
            monthly=agg.monthly_series(transactions, year),
            categories=agg.category_breakdown(transactions),
            class_rates=agg.class_payment_rates(members, payments, month, year),
            budgets=agg.budget_variance(budgets, transactions, year=year),
        )
