"""Per-session busy flags for the dashboard and parent page actions."""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator, List, Set, Tuple

from feedesk.services.exceptions import ActionInProgressError


class ActionGuard:
    """Rejects a second run of an action while the first one has not settled.

    Flags are keyed by the caller's session, so one administrator's reminder
    run neither blocks nor shows up for another.
    """

    def __init__(self) -> None:
        self._busy: Set[Tuple[str, str]] = set()
        self._lock = Lock()

    @contextmanager
    def hold(self, action: str, *, session: str) -> Iterator[None]:
        key = (session, action)
        with self._lock:
            if key in self._busy:
                raise ActionInProgressError(action)
            self._busy.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(key)

    def is_busy(self, action: str, *, session: str) -> bool:
        with self._lock:
            return (session, action) in self._busy

    def busy_actions(self, session: str) -> List[str]:
        with self._lock:
            return sorted(action for owner, action in self._busy if owner == session)

    def clear(self) -> None:
        """Forget every busy flag. Intended for tests only."""

        with self._lock:
            self._busy.clear()


action_guard = ActionGuard()
"""Module-level guard used by the dashboard and parent page endpoints."""
