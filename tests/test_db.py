"""Tests for club_finance.db against a temporary SQLite database."""

from __future__ import annotations

import sqlite3
from datetime import date

import pytest

from club_finance.db import ClubStore, StoreError


@pytest.fixture
def store(tmp_path):
    store = ClubStore(tmp_path / "club.db")
    store.init_db()
    return store


def test_init_db_is_idempotent(store) -> None:
    store.init_db()
    assert store.fetch_transactions() == []


def test_fetch_transactions_half_open_range_newest_first(store) -> None:
    store.insert_transaction("income", 100, "a", date(2025, 1, 1))
    store.insert_transaction("expense", 50, "b", date(2025, 1, 31), "konsumsi")
    store.insert_transaction("income", 70, "c", date(2025, 2, 1))

    january = store.fetch_transactions(start=date(2025, 1, 1), end=date(2025, 2, 1))
    assert [t.description for t in january] == ["b", "a"]
    assert january[0].category == "konsumsi"

    expenses = store.fetch_transactions(txn_type="expense")
    assert [t.amount for t in expenses] == [50]


def test_malformed_rows_are_skipped(store, caplog) -> None:
    store.insert_transaction("income", 100, "good", date(2025, 1, 1))
    with store.connect() as conn:
        conn.execute(
            "INSERT INTO transactions (type, amount, description, date, created_at) VALUES (?, ?, ?, ?, ?)",
            ("income", 10, "bad date", "someday", "2025-01-01"),
        )
    with caplog.at_level("WARNING"):
        rows = store.fetch_transactions()
    assert [t.description for t in rows] == ["good"]
    assert "Skipping malformed row" in caplog.text


def test_members_filtered_and_ordered_by_name(store) -> None:
    store.insert_member("citra", "X-1", None, "active")
    store.insert_member("Budi", "X-2", "0812", "active")
    store.insert_member("Andi", "X-1", None, "inactive")

    assert [m.name for m in store.fetch_members()] == ["Andi", "Budi", "citra"]
    assert [m.name for m in store.fetch_members(status="active")] == ["Budi", "citra"]


def test_update_and_delete_member(store) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")
    assert store.update_member(member_id, "Budi S", "XI-2", "0812", "inactive")
    [member] = store.fetch_members()
    assert (member.name, member.member_class, member.phone, member.status) == ("Budi S", "XI-2", "0812", "inactive")
    assert store.delete_member(member_id)
    assert not store.delete_member(member_id)


def test_record_payment_with_income_writes_both_rows(store) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")
    payment_id, txn_id = store.record_payment_with_income(
        member_id, 25000, 1, 2025, date(2025, 1, 5), "", "Kas Januari 2025 - Budi", "kas-anggota"
    )

    [payment] = store.fetch_payments(1, 2025)
    assert payment.id == payment_id
    assert payment.member_name == "Budi"
    [txn] = store.fetch_transactions()
    assert txn.id == txn_id
    assert txn.is_income
    assert txn.category == "kas-anggota"
    assert store.find_payment(member_id, 1, 2025).id == payment_id
    assert store.find_payment(member_id, 2, 2025) is None


def test_record_payment_rolls_back_when_income_insert_fails(store, monkeypatch) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")

    def boom(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(store, "_insert_transaction", boom)
    with pytest.raises(StoreError):
        store.record_payment_with_income(
            member_id, 25000, 1, 2025, date(2025, 1, 5), "", "Kas", "kas-anggota"
        )

    assert store.fetch_payments() == []
    assert store.fetch_transactions() == []


def test_unique_index_blocks_second_payment(store) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")
    store.record_payment_with_income(member_id, 25000, 1, 2025, date(2025, 1, 5), "", "Kas", None)
    with pytest.raises(StoreError):
        store.record_payment_with_income(member_id, 25000, 1, 2025, date(2025, 1, 6), "", "Kas", None)
    assert len(store.fetch_transactions()) == 1


def test_deleting_member_cascades_payments(store) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")
    store.record_payment_with_income(member_id, 25000, 1, 2025, date(2025, 1, 5), "", "Kas", None)
    store.delete_member(member_id)
    assert store.fetch_payments() == []


def test_budgets_crud_and_period_filter(store) -> None:
    jan = store.insert_budget("konsumsi", 150000, 2025, 1, "snack")
    store.insert_budget("transport", 50000, 2025, 2, "")

    assert [b.id for b in store.fetch_budgets(year=2025, month=1)] == [jan]
    assert store.update_budget(jan, "peralatan", 200000, 2025, 1, "")
    [budget] = store.fetch_budgets(year=2025, month=1)
    assert budget.category == "peralatan"
    assert budget.monthly_limit == 200000
    assert store.delete_budget(jan)
    assert len(store.fetch_budgets()) == 1


def test_upsert_reminders_does_not_duplicate(store) -> None:
    member_id = store.insert_member("Budi", "X-2", "0812", "active")
    reminder = {
        "member_id": member_id, "month": 3, "year": 2025,
        "reminder_date": date(2025, 3, 8), "status": "pending", "message": "first",
    }
    assert store.upsert_reminders([reminder]) == 1
    assert store.upsert_reminders([dict(reminder, reminder_date=date(2025, 3, 9), message="second")]) == 1

    [stored] = store.fetch_reminders()
    assert stored.message == "second"
    assert stored.reminder_date == date(2025, 3, 9)
    assert stored.member_phone == "0812"

    assert store.update_reminder_status(stored.id, "sent")
    assert store.fetch_reminders()[0].status == "sent"
    assert store.delete_reminder(stored.id)
    assert store.upsert_reminders([]) == 0


def test_invalid_reminder_status_raises_store_error(store) -> None:
    member_id = store.insert_member("Budi", "X-2", None, "active")
    store.upsert_reminders([{"member_id": member_id, "month": 1, "year": 2025, "reminder_date": date(2025, 1, 4)}])
    [reminder] = store.fetch_reminders()
    with pytest.raises(StoreError):
        store.update_reminder_status(reminder.id, "lost")


def test_unreachable_database_raises_store_error(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(StoreError):
        ClubStore(blocker / "club.db").fetch_members()
