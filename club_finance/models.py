"""Typed records for rows read from the club finance store.

Rows coming back from the database are loosely shaped (optional columns,
joined member fields).  Each record exposes a ``from_row`` constructor
that validates a mapping at the store boundary and raises
:class:`RecordError` for anything the aggregation code should never see.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

import pandas as pd

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = {INCOME, EXPENSE}

ACTIVE = 'active'
INACTIVE = 'inactive'
MEMBER_STATUSES = {ACTIVE, INACTIVE}

PENDING = 'pending'
SENT = 'sent'
PAID = 'paid'
REMINDER_STATUSES = {PENDING, SENT, PAID}


class RecordError(ValueError):
    """Raised when a stored row cannot be turned into a typed record."""


def _required(row: Mapping[str, Any], key: str) -> Any:
    value = row.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RecordError(f"missing required field '{key}'")
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_date(value: Any, key: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value, errors='coerce')
    if pd.isna(ts):
        raise RecordError(f"invalid date for '{key}': {value!r}")
    return ts.date()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    ts = pd.to_datetime(value, errors='coerce')
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _parse_amount(value: Any, key: str) -> float:
    number = pd.to_numeric(pd.Series([value]), errors='coerce').iloc[0]
    if pd.isna(number) or not math.isfinite(float(number)):
        raise RecordError(f"invalid amount for '{key}': {value!r}")
    return float(number)


def _parse_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise RecordError(f"invalid integer for '{key}': {value!r}") from exc


def _parse_month(value: Any) -> int:
    month = _parse_int(value, 'month')
    if not 1 <= month <= 12:
        raise RecordError(f"month out of range: {month}")
    return month


def _parse_choice(value: Any, key: str, choices: set) -> str:
    text = str(value).strip().lower()
    if text not in choices:
        raise RecordError(f"unknown {key} {value!r}; expected one of {sorted(choices)}")
    return text


@dataclass(frozen=True)
class Transaction:
    """A single ledger entry.  ``amount`` is always non-negative."""

    id: int
    type: str
    amount: float
    description: str
    date: date
    category: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Transaction':
        amount = _parse_amount(_required(row, 'amount'), 'amount')
        if amount < 0:
            raise RecordError(f"negative amount: {amount}")
        return cls(
            id=_parse_int(_required(row, 'id'), 'id'),
            type=_parse_choice(_required(row, 'type'), 'type', TRANSACTION_TYPES),
            amount=amount,
            description=str(_required(row, 'description')).strip(),
            date=_parse_date(_required(row, 'date'), 'date'),
            category=_optional_text(row.get('category')),
            created_at=_parse_timestamp(row.get('created_at')),
        )


@dataclass(frozen=True)
class Member:
    id: int
    name: str
    member_class: str
    phone: Optional[str] = None
    status: str = ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Member':
        return cls(
            id=_parse_int(_required(row, 'id'), 'id'),
            name=str(_required(row, 'name')).strip(),
            member_class=str(_required(row, 'class')).strip(),
            phone=_optional_text(row.get('phone')),
            status=_parse_choice(row.get('status') or ACTIVE, 'status', MEMBER_STATUSES),
        )


@dataclass(frozen=True)
class MemberPayment:
    """Monthly dues payment, optionally carrying the joined member fields."""

    id: int
    member_id: int
    amount: float
    month: int
    year: int
    payment_date: date
    notes: str = ''
    member_name: Optional[str] = None
    member_class: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'MemberPayment':
        return cls(
            id=_parse_int(_required(row, 'id'), 'id'),
            member_id=_parse_int(_required(row, 'member_id'), 'member_id'),
            amount=_parse_amount(_required(row, 'amount'), 'amount'),
            month=_parse_month(_required(row, 'month')),
            year=_parse_int(_required(row, 'year'), 'year'),
            payment_date=_parse_date(_required(row, 'payment_date'), 'payment_date'),
            notes=_optional_text(row.get('notes')) or '',
            member_name=_optional_text(row.get('member_name')),
            member_class=_optional_text(row.get('member_class')),
        )


@dataclass(frozen=True)
class Budget:
    id: int
    category: str
    monthly_limit: float
    year: int
    month: int
    description: str = ''

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Budget':
        # zero is tolerated on read; aggregation reports 0% for it
        monthly_limit = _parse_amount(_required(row, 'monthly_limit'), 'monthly_limit')
        if monthly_limit < 0:
            raise RecordError(f"negative monthly_limit: {monthly_limit}")
        return cls(
            id=_parse_int(_required(row, 'id'), 'id'),
            category=str(_required(row, 'category')).strip(),
            monthly_limit=monthly_limit,
            year=_parse_int(_required(row, 'year'), 'year'),
            month=_parse_month(_required(row, 'month')),
            description=_optional_text(row.get('description')) or '',
        )


@dataclass(frozen=True)
class Reminder:
    id: int
    member_id: int
    month: int
    year: int
    reminder_date: date
    status: str = PENDING
    message: str = ''
    member_name: Optional[str] = None
    member_class: Optional[str] = None
    member_phone: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Reminder':
        return cls(
            id=_parse_int(_required(row, 'id'), 'id'),
            member_id=_parse_int(_required(row, 'member_id'), 'member_id'),
            month=_parse_month(_required(row, 'month')),
            year=_parse_int(_required(row, 'year'), 'year'),
            reminder_date=_parse_date(_required(row, 'reminder_date'), 'reminder_date'),
            status=_parse_choice(row.get('status') or PENDING, 'status', REMINDER_STATUSES),
            message=_optional_text(row.get('message')) or '',
            member_name=_optional_text(row.get('member_name')),
            member_class=_optional_text(row.get('member_class')),
            member_phone=_optional_text(row.get('member_phone')),
        )
