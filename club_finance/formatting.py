"""Formatting utilities for Rupiah amounts, periods and category labels.

These helpers are display-only.  Aggregations always work on the raw
numeric values and only the rendered output goes through here.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

try:
    from .config import CATEGORIES, MONTH_NAMES
except ImportError:
    from config import CATEGORIES, MONTH_NAMES  # type: ignore


def format_rupiah(amount: Union[float, int], include_symbol: bool = True) -> str:
    """Format an amount as Indonesian Rupiah with no fractional digits.

    Indonesian formatting uses ``.`` as the thousands separator.

    Args:
        amount: The amount to format
        include_symbol: Whether to prefix the ``Rp`` symbol

    Returns:
        Formatted currency string

    Example:
        >>> format_rupiah(1250000)
        'Rp 1.250.000'
        >>> format_rupiah(-50000)
        '-Rp 50.000'
        >>> format_rupiah(25000, include_symbol=False)
        '25.000'
    """
    rounded = int(round(float(amount)))
    digits = f"{abs(rounded):,}".replace(",", ".")
    body = f"Rp {digits}" if include_symbol else digits
    return f"-{body}" if rounded < 0 else body


def format_percentage(value: float) -> str:
    """Format a percentage with one decimal, e.g. ``'133.3%'``."""
    return f"{value:.1f}%"


def month_name(month: int) -> str:
    """Full Indonesian month name for a 1-based month number."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    return MONTH_NAMES[month - 1]


def period_label(month: int, year: int) -> str:
    """E.g. ``period_label(1, 2025) == 'Januari 2025'``."""
    return f"{month_name(month)} {year}"


def format_date(value: Optional[date], long: bool = False) -> str:
    """Render a date as ``dd/mm/yyyy`` or, with ``long``, ``5 Januari 2025``."""
    if value is None:
        return "-"
    if long:
        return f"{value.day} {month_name(value.month)} {value.year}"
    return value.strftime("%d/%m/%Y")


def category_label(category: Optional[str]) -> str:
    """Human label for a category slug, falling back to a title-cased slug."""
    if not category:
        return CATEGORIES["lainnya"]
    if category in CATEGORIES:
        return CATEGORIES[category]
    return category.replace("-", " ").title()
