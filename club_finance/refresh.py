"""Coordinate page refreshes so that a superseded fetch never wins.

Each data key (``"dashboard"``, ``"payments"``...) gets a generation
counter.  Starting a fetch bumps the counter and hands back a token; the
result is only applied while that token is still the newest one for the
key.  Independent reads can be run side by side with :func:`fetch_all`.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

Token = Tuple[str, int]


class RequestTracker:
    """Hands out per-key generation tokens."""

    def __init__(self) -> None:
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    def begin(self, key: str) -> Token:
        with self._lock:
            generation = self._generations.get(key, 0) + 1
            self._generations[key] = generation
        return key, generation

    def is_current(self, token: Token) -> bool:
        key, generation = token
        with self._lock:
            return self._generations.get(key) == generation

    def apply(self, token: Token, result: Any, apply_fn: Callable[[Any], None]) -> bool:
        """Call ``apply_fn(result)`` only if ``token`` is still current.

        Returns True when the result was applied, False when it was
        discarded as stale.
        """
        if not self.is_current(token):
            logger.debug("Discarding stale result for %s (generation %d)", *token)
            return False
        apply_fn(result)
        return True

    def run(self, key: str, fetch: Callable[[], Any], apply_fn: Callable[[Any], None]) -> bool:
        """Begin a request for ``key``, fetch, and apply the result if still current."""
        token = self.begin(key)
        return self.apply(token, fetch(), apply_fn)


def fetch_all(
    fetchers: Mapping[str, Callable[[], Any]],
    max_workers: Optional[int] = None,
) -> Dict[str, Any]:
    """Run independent fetches concurrently and collect their results by key.

    Any exception raised by a fetcher propagates after every fetch has
    finished, so no worker is left running against the store.

    Example:
        >>> fetch_all({'a': lambda: 1, 'b': lambda: 2})
        {'a': 1, 'b': 2}
    """
    if not fetchers:
        return {}
    workers = max_workers or min(len(fetchers), 4)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {key: pool.submit(fn) for key, fn in fetchers.items()}
    results: Dict[str, Any] = {}
    for key, future in futures.items():
        exc = future.exception()
        if exc is not None:
            logger.error("Fetch %r failed: %s", key, exc)
            raise exc
        results[key] = future.result()
    return results
