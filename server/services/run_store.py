"""Run store - the persistence seam the executor reports through.

The executor never touches storage. Callers wire a store in as the run
observer with ``store_observer``; the realtime layer subscribes to it.
"""

import threading
from typing import Callable, Dict, List, Optional, Protocol

from core.logging import get_logger
from services.execution.models import RunLog

logger = get_logger(__name__)

RunChangeListener = Callable[[RunLog], None]
Unsubscribe = Callable[[], None]


class RunStoreProtocol(Protocol):
    """Protocol for run stores (enables duck typing)."""

    def save(self, run: RunLog) -> None:
        """Insert or overwrite a run snapshot."""
        ...

    def load(self, workflow_id: str) -> List[RunLog]:
        """Runs of a workflow, newest first."""
        ...

    def subscribe(self, on_change: RunChangeListener) -> Unsubscribe:
        """Register a change listener; returns a function that removes it."""
        ...


class InMemoryRunStore:
    """Process-local run store.

    Keeps the latest snapshot of every run and notifies listeners on save.
    """

    def __init__(self):
        self._runs: Dict[str, RunLog] = {}
        self._order: List[str] = []
        self._listeners: List[RunChangeListener] = []
        self._lock = threading.Lock()

    def save(self, run: RunLog) -> None:
        with self._lock:
            if run.id not in self._runs:
                self._order.append(run.id)
            self._runs[run.id] = run
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(run)
            except Exception as e:
                logger.warning("Run store listener failed", run_id=run.id, error=str(e))

    def load(self, workflow_id: str) -> List[RunLog]:
        with self._lock:
            return [
                self._runs[run_id] for run_id in reversed(self._order)
                if self._runs[run_id].workflow_id == workflow_id
            ]

    def get(self, run_id: str) -> Optional[RunLog]:
        with self._lock:
            return self._runs.get(run_id)

    def subscribe(self, on_change: RunChangeListener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(on_change)

        def unsubscribe() -> None:
            with self._lock:
                if on_change in self._listeners:
                    self._listeners.remove(on_change)

        return unsubscribe


def store_observer(store: RunStoreProtocol,
                   forward: Optional[RunChangeListener] = None) -> RunChangeListener:
    """Adapt a store (plus an optional extra observer) into a run observer."""
    def observe(run: RunLog) -> None:
        store.save(run)
        if forward is not None:
            forward(run)
    return observe
