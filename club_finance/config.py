"""Configuration management for the club finance dashboard.

This module centralizes all configuration values including paths,
policy constants, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Base project root - assumes this file is in club_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("CLUBFIN_DATA_DIR", _PROJECT_ROOT / "data"))
REPORTS_DIR = DATA_DIR / "reports"

# Database
DB_PATH = Path(
    os.getenv("CLUBFIN_DB_PATH", DATA_DIR / "club_finance.db")
).resolve()

# Club identity and dues
CLUB_NAME = os.getenv("CLUBFIN_CLUB_NAME", "Ekstrakurikuler Badminton")
DEFAULT_DUES_AMOUNT = float(os.getenv("CLUBFIN_DUES_AMOUNT", "25000"))

# Reminders are scheduled this many days after generation
REMINDER_LEAD_DAYS = 3

# Budget status thresholds (percent of monthly limit used).
# Strictly greater-than: exactly 80 is on track, exactly 100 is near limit.
BUDGET_WARNING_THRESHOLD = 80.0
BUDGET_OVER_THRESHOLD = 100.0

# Expense bucket for transactions without a category
OTHER_CATEGORY = "lainnya"
DUES_CATEGORY = "kas-anggota"

CATEGORIES = {
    "kas-anggota": "Kas Anggota",
    "peralatan": "Peralatan",
    "transport": "Transport",
    "konsumsi": "Konsumsi",
    "sewa-lapangan": "Sewa Lapangan",
    "lainnya": "Lainnya",
}

# Budgets are never set against member dues
BUDGET_CATEGORIES = {k: v for k, v in CATEGORIES.items() if k != DUES_CATEGORY}

MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]
MONTH_SHORT_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
]

LOG_LEVEL = os.getenv("CLUBFIN_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, REPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the app process."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)
