"""
Progress tracker — turns session callbacks into a pollable snapshot.

The HTTP status endpoint cannot receive callbacks, so the tracker records
them: per-epoch history (for the loss / accuracy charts), the latest
batch, elapsed time and a remaining-time estimate, and the outcome.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from .events import BatchEvent, Outcome, ProgressEvent, TrainingCallbacks


class ProgressTracker:
    """Thread-safe recorder of one session's progress at a time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self.reset()

    def reset(self, epochs: int = 0) -> None:
        with self._lock:
            self._epochs = epochs
            self._history: List[ProgressEvent] = []
            self._batch: Optional[BatchEvent] = None
            self._started: Optional[float] = None
            self._finished: Optional[float] = None
            self._outcome: Optional[Dict[str, Any]] = None

    def begin(self, epochs: int) -> None:
        """Clear previous results and start the clock."""
        self.reset(epochs)
        with self._lock:
            self._started = self._clock()

    # ── Callback targets ────────────────────────────────────────────────

    def on_epoch_end(self, event: ProgressEvent) -> None:
        with self._lock:
            self._history.append(event)
            self._epochs = event.epochs

    def on_batch_end(self, event: BatchEvent) -> None:
        with self._lock:
            self._batch = event

    def on_training_end(self, outcome: Outcome) -> None:
        with self._lock:
            self._finished = self._clock()
            self._outcome = outcome.to_dict()

    def on_training_error(self, error: BaseException) -> None:
        with self._lock:
            self._finished = self._clock()
            self._outcome = {
                "status": "failed",
                "epochs_completed": len(self._history),
                "reason": str(error),
            }

    def callbacks(self) -> TrainingCallbacks:
        return TrainingCallbacks(
            on_epoch_end=self.on_epoch_end,
            on_batch_end=self.on_batch_end,
            on_training_end=self.on_training_end,
            on_training_error=self.on_training_error,
        )

    # ── Derived values ──────────────────────────────────────────────────

    def _elapsed(self) -> Optional[float]:
        if self._started is None:
            return None
        end = self._finished if self._finished is not None else self._clock()
        return end - self._started

    def _remaining(self, elapsed: Optional[float]) -> Optional[float]:
        # Average epoch time so far × epochs left; unknown before the first epoch.
        if self._finished is not None:
            return 0.0
        if elapsed is None or not self._history:
            return None
        done = self._history[-1].epoch + 1
        return elapsed / done * max(0, self._epochs - done)

    @property
    def final_accuracy(self) -> Optional[float]:
        with self._lock:
            if self._outcome and self._outcome["status"] == "completed" and self._history:
                return self._history[-1].accuracy
            return None

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            elapsed = self._elapsed()
            batch = self._batch
            return {
                "epochs": self._epochs,
                "epochs_completed": len(self._history),
                "progress": (len(self._history) / self._epochs) if self._epochs else 0.0,
                "history": [event.to_dict() for event in self._history],
                "batch": (
                    {"epoch": batch.epoch, "batch": batch.batch + 1, "batches": batch.batches}
                    if batch else None
                ),
                "elapsed_seconds": elapsed,
                "remaining_seconds": self._remaining(elapsed),
                "outcome": self._outcome,
            }
