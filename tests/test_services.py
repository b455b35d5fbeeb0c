"""Tests for the service layer: validation, dues guard, reminders and read bundles."""

from __future__ import annotations

import types
from datetime import date

import pytest

from club_finance import aggregation as agg
from club_finance.db import ClubStore, StoreError
from club_finance.services import ClubFinanceService, DuplicatePaymentError, ValidationError


@pytest.fixture
def store(tmp_path):
    store = ClubStore(tmp_path / "club.db")
    store.init_db()
    return store


@pytest.fixture
def service(store):
    return ClubFinanceService(store)


class RecordingStore:
    """Fails the test if anything writes."""

    def __init__(self, existing=None):
        self.existing = existing
        self.calls = []

    def find_payment(self, member_id, month, year):
        self.calls.append(("find_payment", member_id, month, year))
        return self.existing

    def __getattr__(self, name):
        raise AssertionError(f"unexpected store call: {name}")


def test_add_transaction_validates_before_store_call() -> None:
    service = ClubFinanceService(RecordingStore())
    with pytest.raises(ValidationError):
        service.add_transaction("income", "", "Iuran")
    with pytest.raises(ValidationError):
        service.add_transaction("income", 1000, "  ")
    with pytest.raises(ValidationError):
        service.add_transaction("transfer", 1000, "x")
    with pytest.raises(ValidationError):
        service.add_transaction("expense", -5, "x")
    with pytest.raises(ValidationError):
        service.add_transaction(None, 5, "x")


def test_add_transaction_persists(service, store) -> None:
    txn_id = service.add_transaction("expense", "15000", "Shuttlecock", date(2025, 1, 3), "peralatan")
    [txn] = store.fetch_transactions()
    assert txn.id == txn_id
    assert txn.amount == 15000
    assert txn.category == "peralatan"


def test_record_payment_writes_payment_and_income(service, store) -> None:
    member_id = service.save_member("Budi", "XI IPA 1")
    service.record_payment(member_id, 25000, 1, 2025, payment_date=date(2025, 1, 5))

    [payment] = store.fetch_payments(1, 2025)
    assert payment.member_id == member_id
    [txn] = store.fetch_transactions()
    assert txn.is_income
    assert txn.amount == 25000
    assert txn.category == "kas-anggota"
    assert txn.description == "Kas Januari 2025 - Budi"


def test_duplicate_payment_rejected_before_any_mutation(service, store) -> None:
    member_id = service.save_member("Budi", "XI IPA 1")
    service.record_payment(member_id, 25000, 1, 2025)

    with pytest.raises(DuplicatePaymentError, match="sudah membayar"):
        service.record_payment(member_id, 25000, 1, 2025)

    assert len(store.fetch_payments()) == 1
    assert len(store.fetch_transactions()) == 1


def test_duplicate_check_happens_before_write() -> None:
    existing = types.SimpleNamespace(id=9)
    fake = RecordingStore(existing=existing)
    with pytest.raises(DuplicatePaymentError):
        ClubFinanceService(fake).record_payment(1, 25000, 1, 2025, member_name="Budi")
    assert fake.calls == [("find_payment", 1, 1, 2025)]


def test_record_payment_requires_member_and_amount() -> None:
    service = ClubFinanceService(RecordingStore())
    with pytest.raises(ValidationError, match="Mohon pilih anggota"):
        service.record_payment(None, 25000, 1, 2025)
    with pytest.raises(ValidationError):
        service.record_payment(1, None, 1, 2025)
    with pytest.raises(ValidationError):
        service.record_payment(1, 25000, 13, 2025)


def test_store_error_passes_through(service, store, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise StoreError("database is locked")

    monkeypatch.setattr(store, "fetch_members", boom)
    with pytest.raises(StoreError):
        service.dashboard()


def test_save_member_create_and_update(service, store) -> None:
    with pytest.raises(ValidationError):
        service.save_member("", "X-1")
    with pytest.raises(ValidationError):
        service.save_member("Budi", None)

    member_id = service.save_member(" Budi ", "X-1", phone="")
    assert service.save_member("Budi", "X-2", status="inactive", member_id=member_id) == member_id
    [member] = store.fetch_members()
    assert member.member_class == "X-2"
    assert not member.is_active
    assert member.phone is None


def test_save_budget_requires_positive_limit(service, store) -> None:
    with pytest.raises(ValidationError):
        service.save_budget("", 1000, 2025, 1)
    with pytest.raises(ValidationError):
        service.save_budget("konsumsi", 0, 2025, 1)

    budget_id = service.save_budget("konsumsi", 150000, 2025, 1, "snack")
    service.save_budget("konsumsi", 175000, 2025, 1, budget_id=budget_id)
    [budget] = store.fetch_budgets()
    assert budget.monthly_limit == 175000
    assert service.delete_budget(budget_id)


def test_budget_overview_scenario(service) -> None:
    service.add_transaction("income", 500000, "Iuran", date(2025, 1, 5))
    service.add_transaction("expense", 200000, "Konsumsi latihan", date(2025, 1, 10), "konsumsi")
    service.add_transaction("expense", 90000, "Konsumsi Februari", date(2025, 2, 1), "konsumsi")
    service.save_budget("konsumsi", 150000, 2025, 1)

    overview = service.budget_overview(1, 2025)

    [variance] = overview.variances
    assert variance.actual == 200000
    assert variance.remaining == -50000
    assert variance.status == agg.OVER_BUDGET
    assert overview.totals.total_remaining == -50000


def test_dashboard_bundle(service) -> None:
    today = date(2025, 3, 15)
    member_ids = [service.save_member(f"M{i}", "X-1") for i in range(10)]
    for member_id in member_ids[:6]:
        service.record_payment(member_id, 25000, 3, 2025, payment_date=today)
    service.add_transaction("expense", 50000, "Sewa", date(2025, 3, 2), "sewa-lapangan")

    data = service.dashboard(today=today)

    assert data.coverage.paid_this_month == 6
    assert data.coverage.unpaid_this_month == 4
    assert data.ledger.total_income == 150000
    assert data.ledger.balance == 100000


def test_payments_overview_lists_unpaid(service) -> None:
    paid = service.save_member("Ani", "X-1")
    unpaid = service.save_member("Budi", "X-1")
    service.save_member("Cici", "X-1", status="inactive")
    service.record_payment(paid, 25000, 4, 2025)

    overview = service.payments_overview(4, 2025)
    assert [p.member_id for p in overview.payments] == [paid]
    assert [m.id for m in overview.unpaid] == [unpaid]
    assert overview.coverage.total_members == 2


def test_generate_reminders_for_unpaid_members(service, store) -> None:
    paid = service.save_member("Ani", "X-1")
    unpaid = service.save_member("Budi", "X-1", phone="0812")
    service.save_member("Cici", "X-1", status="inactive")
    today = date(2025, 3, 10)
    service.record_payment(paid, 25000, 3, 2025, payment_date=today)

    assert service.generate_reminders(today=today) == 1
    assert service.generate_reminders(today=today) == 1

    [reminder] = store.fetch_reminders()
    assert reminder.member_id == unpaid
    assert reminder.reminder_date == date(2025, 3, 13)
    assert reminder.status == "pending"
    assert reminder.message == "Reminder: Pembayaran kas bulan Maret 2025 belum dilakukan"

    assert service.mark_reminder_sent(reminder.id)
    assert service.reminders()[0].status == "sent"
    assert service.mark_reminder_paid(reminder.id)
    assert service.reminders()[0].status == "paid"


def test_generate_reminders_when_everyone_paid(service) -> None:
    member_id = service.save_member("Ani", "X-1")
    service.record_payment(member_id, 25000, 5, 2025)
    assert service.generate_reminders(today=date(2025, 5, 20)) == 0


def test_analytics_bundle(service) -> None:
    a = service.save_member("Ani", "X-1")
    service.save_member("Budi", "X-2")
    service.record_payment(a, 25000, 2, 2025, payment_date=date(2025, 2, 3))
    service.add_transaction("expense", 40000, "Bensin", date(2025, 2, 4), "transport")
    service.add_transaction("expense", 10000, "Lain", date(2024, 12, 4))
    service.save_budget("transport", 50000, 2025, 2)

    data = service.analytics(2025, month=2)

    assert len(data.monthly) == 12
    assert data.monthly[1].income == 25000
    assert data.monthly[1].expense == 40000
    assert [c.category for c in data.categories] == ["transport"]
    assert {r.member_class: r.percentage for r in data.class_rates} == {"X-1": 100.0, "X-2": 0.0}
    assert data.budgets[0].status == agg.ON_TRACK


def test_delete_reminder(service, store) -> None:
    service.save_member("Budi", "X-1")
    service.generate_reminders(today=date(2025, 6, 2))
    [reminder] = service.reminders()
    assert service.delete_reminder(reminder.id)
    assert store.fetch_reminders() == []


@pytest.mark.parametrize("amount", ["inf", "nan", "-inf", float("inf"), float("nan")])
def test_non_finite_amounts_rejected_before_store_call(amount) -> None:
    service = ClubFinanceService(RecordingStore())
    with pytest.raises(ValidationError, match="tidak valid"):
        service.add_transaction("income", amount, "Iuran", date(2025, 1, 1))
    with pytest.raises(ValidationError, match="tidak valid"):
        service.save_budget("konsumsi", amount, 2025, 1)
    with pytest.raises(ValidationError, match="tidak valid"):
        service.record_payment(1, amount, 1, 2025)


def test_dashboard_still_loads_after_rejected_infinite_amount(service) -> None:
    with pytest.raises(ValidationError):
        service.add_transaction("income", "inf", "x", date(2025, 1, 1))
    data = service.dashboard(today=date(2025, 1, 2))
    assert data.ledger.balance == 0


def test_record_payment_rejects_non_numeric_member_id() -> None:
    service = ClubFinanceService(RecordingStore())
    with pytest.raises(ValidationError, match="Mohon pilih anggota"):
        service.record_payment("budi", 25000, 1, 2025)


def test_analytics_rejects_explicit_zero_month(service) -> None:
    with pytest.raises(ValidationError):
        service.analytics(2025, month=0)
