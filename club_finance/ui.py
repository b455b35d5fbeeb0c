"""Streamlit helpers shared by the home page and every page under ``pages/``."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Iterator, Optional, Tuple

import streamlit as st

try:
    from .config import CLUB_NAME, DEFAULT_DUES_AMOUNT, MONTH_NAMES, configure_logging, ensure_data_directories, get_db_path
    from .db import ClubStore, StoreError
    from .refresh import RequestTracker
    from .services import ClubFinanceService, DuplicatePaymentError, ValidationError
except ImportError:
    from config import CLUB_NAME, DEFAULT_DUES_AMOUNT, MONTH_NAMES, configure_logging, ensure_data_directories, get_db_path  # type: ignore
    from db import ClubStore, StoreError  # type: ignore
    from refresh import RequestTracker  # type: ignore
    from services import ClubFinanceService, DuplicatePaymentError, ValidationError  # type: ignore

logger = logging.getLogger(__name__)


@st.cache_resource
def get_store() -> ClubStore:
    """Build the store once per Streamlit process and make sure its schema exists."""
    configure_logging()
    ensure_data_directories()
    store = ClubStore(get_db_path())
    store.init_db()
    return store


def get_service() -> ClubFinanceService:
    return ClubFinanceService(get_store(), dues_amount=DEFAULT_DUES_AMOUNT)


def get_tracker() -> RequestTracker:
    if "request_tracker" not in st.session_state:
        st.session_state["request_tracker"] = RequestTracker()
    return st.session_state["request_tracker"]


def load(key: str, fetch: Callable[[], Any]) -> Any:
    """Fetch data for ``key``, keeping it only if no newer fetch started meanwhile.

    Returns whatever is current for ``key`` after the fetch, which is the
    newer result when this one turned out to be stale.
    """
    state_key = f"data_{key}"
    get_tracker().run(key, fetch, lambda result: st.session_state.__setitem__(state_key, result))
    return st.session_state.get(state_key)


@contextmanager
def notify_errors(action: str) -> Iterator[None]:
    """Turn service failures into a Streamlit notification instead of a crash."""
    try:
        yield
    except DuplicatePaymentError as exc:
        st.warning(str(exc))
    except ValidationError as exc:
        st.warning(f"{action}: {exc}")
    except StoreError as exc:
        logger.error("%s failed: %s", action, exc)
        st.error(f"{action} gagal: {exc}")


def render_sidebar() -> None:
    st.sidebar.title(f"🏸 {CLUB_NAME}")
    st.sidebar.caption("Manajemen keuangan ekstrakurikuler")
    st.sidebar.caption(f"Database: `{get_db_path()}`")


def month_year_selector(key: str, default: Optional[date] = None, container: Any = None) -> Tuple[int, int]:
    """Month and year pickers; returns ``(month, year)``."""
    default = default or date.today()
    target = container or st
    col1, col2 = target.columns(2)
    month = col1.selectbox(
        "Bulan",
        options=list(range(1, 13)),
        index=default.month - 1,
        format_func=lambda m: MONTH_NAMES[m - 1],
        key=f"{key}_month",
    )
    years = year_options(default.year)
    year = col2.selectbox("Tahun", options=years, index=years.index(default.year), key=f"{key}_year")
    return int(month), int(year)


def year_options(current: Optional[int] = None, span: int = 2):
    current = current or date.today().year
    return list(range(current - span, current + span + 1))
