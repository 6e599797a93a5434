"""
Last-write-wins bookkeeping for view queries.

Each fetch for a view is tagged with a generation number when it is issued.
When the response arrives it is applied only if no newer fetch for the same
view has been issued since, so a slow stale response can never overwrite a
newer one.
"""

import logging
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class RequestGenerations:
    """Monotonic generation counter and latest accepted result per view key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued: Dict[str, int] = {}
        self._results: Dict[str, Any] = {}

    def issue(self, view_key: str) -> int:
        """Tag a new request for `view_key`; supersedes every earlier one."""
        with self._lock:
            generation = self._issued.get(view_key, 0) + 1
            self._issued[view_key] = generation
            return generation

    def is_current(self, view_key: str, generation: int) -> bool:
        with self._lock:
            return self._issued.get(view_key, 0) == generation

    def apply(self, view_key: str, generation: int, result: Any) -> bool:
        """
        Store `result` as the view's state if `generation` is still the latest.

        Returns False (and leaves the stored result alone) for stale results.
        """
        with self._lock:
            if self._issued.get(view_key, 0) != generation:
                logger.debug(
                    f"Discarding stale result for {view_key}: generation {generation}, "
                    f"latest {self._issued.get(view_key, 0)}"
                )
                return False
            self._results[view_key] = result
            return True

    def result(self, view_key: str) -> Optional[Any]:
        with self._lock:
            return self._results.get(view_key)
