"""
Training session controller — one pausable, stoppable run at a time.

Lifecycle of a session::

    running ⇄ paused
       ↘        ↘
        stopping → stopped
       ↘
        completed | failed

``start`` validates the request and launches the epoch loop on a
background thread.  The loop checks for cancellation before every epoch
and parks on a condition variable while paused; ``resume`` and ``stop``
wake it up.  Cancellation always wins over pause.  An epoch already
handed to the runtime is never interrupted, so ``stop`` takes effect
within at most one epoch.

The tensors a session allocates are released exactly once, on its
terminal transition, whichever way the loop ends.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from typing import Any, Dict, Optional

from .config import TrainingRequest, class_labels_for
from .events import (
    BatchEvent,
    Outcome,
    OutcomeStatus,
    ProgressEvent,
    TrainingCallbacks,
)
from .exceptions import SessionAlreadyActiveError

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


ACTIVE_STATES = frozenset({SessionState.RUNNING, SessionState.PAUSED, SessionState.STOPPING})

_TERMINAL_STATE = {
    OutcomeStatus.COMPLETED: SessionState.COMPLETED,
    OutcomeStatus.STOPPED: SessionState.STOPPED,
    OutcomeStatus.FAILED: SessionState.FAILED,
}


# ═══════════════════════════════════════════════════════════════════════════
# One run
# ═══════════════════════════════════════════════════════════════════════════

class TrainingSession:
    """Mutable state of a single training run.

    Created by :meth:`TrainingSessionController.start`; all flag changes
    happen under the controller's lock, which ``_changed`` wraps.
    """

    def __init__(
        self,
        request: TrainingRequest,
        callbacks: TrainingCallbacks,
        runtime: Any,
        lock: threading.Lock,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.request = request
        self.callbacks = callbacks
        self.runtime = runtime
        self.class_labels = class_labels_for(request.training_classes())

        self.state = SessionState.RUNNING
        self.epoch = 0
        self.epochs_completed = 0
        self.paused = False
        self.cancelled = False
        self.tensors = None
        self.outcome: Optional[Outcome] = None
        self.started_at = time.time()
        self.finished_at: Optional[float] = None

        self._changed = threading.Condition(lock)
        self._done = threading.Event()

    @property
    def epochs(self) -> int:
        return self.request.hyperparameters.epochs

    @property
    def active(self) -> bool:
        return self.state in ACTIVE_STATES

    def wait(self, timeout: Optional[float] = None) -> Optional[Outcome]:
        """Block until the outcome has been delivered; ``None`` on timeout."""
        if self._done.wait(timeout):
            return self.outcome
        return None

    # ── Epoch loop ──────────────────────────────────────────────────────

    def run(self) -> None:
        """Thread body: train, release tensors, report the outcome."""
        model = None
        error: Optional[BaseException] = None
        try:
            model = self._train()
        except Exception as exc:
            error = exc
            logger.exception(
                "Training session %s failed after %d epoch(s)",
                self.id, self.epochs_completed,
            )
        finally:
            self._release_tensors()

        self._finish(model, error)

    def _train(self):
        params = self.request.hyperparameters
        self.tensors = self.runtime.prepare_data(self.request.training_classes())

        model = self.runtime.build_model(params.architecture, len(self.class_labels))
        self.runtime.compile(model, params.learning_rate)

        for epoch in range(params.epochs):
            if not self._begin_epoch(epoch):
                break

            result = self.runtime.fit_one_epoch(
                model,
                self.tensors.inputs,
                self.tensors.labels,
                params.batch_size,
                lambda batch, batches, _epoch=epoch: self._on_batch(_epoch, batch, batches),
                validation_data=getattr(self.tensors, "validation", None),
            )
            self.epochs_completed = epoch + 1

            if self.callbacks.on_epoch_end:
                self.callbacks.on_epoch_end(ProgressEvent(
                    epoch=epoch,
                    epochs=params.epochs,
                    loss=result.loss,
                    accuracy=result.accuracy,
                    val_loss=result.val_loss,
                    val_accuracy=result.val_accuracy,
                ))
            logger.info(
                "Session %s epoch %d/%d — loss=%.4f accuracy=%.4f",
                self.id, epoch + 1, params.epochs, result.loss, result.accuracy,
            )

        return model

    def _begin_epoch(self, epoch: int) -> bool:
        """Park while paused; return False once cancellation is requested."""
        with self._changed:
            if self.cancelled:
                return False
            while self.paused and not self.cancelled:
                self._changed.wait()
            if self.cancelled:
                return False
            self.epoch = epoch
            return True

    def _on_batch(self, epoch: int, batch: int, batches: int) -> None:
        if self.callbacks.on_batch_end:
            self.callbacks.on_batch_end(BatchEvent(epoch=epoch, batch=batch, batches=batches))

    def _release_tensors(self) -> None:
        tensors, self.tensors = self.tensors, None
        if tensors is not None:
            tensors.dispose()

    def _finish(self, model, error: Optional[BaseException]) -> None:
        if error is not None:
            outcome = Outcome(OutcomeStatus.FAILED, self.epochs_completed, error=error)
        else:
            status = OutcomeStatus.STOPPED if self.cancelled else OutcomeStatus.COMPLETED
            outcome = Outcome(
                status,
                self.epochs_completed,
                model=model,
                class_labels=self.class_labels,
            )

        with self._changed:
            self.outcome = outcome
            self.state = _TERMINAL_STATE[outcome.status]
            self.paused = False
            self.finished_at = time.time()

        logger.info(
            "Training session %s %s after %d/%d epoch(s)",
            self.id, outcome.status.value, outcome.epochs_completed, self.epochs,
        )

        try:
            if outcome.status is OutcomeStatus.FAILED:
                if self.callbacks.on_training_error:
                    self.callbacks.on_training_error(error)
            elif self.callbacks.on_training_end:
                self.callbacks.on_training_end(outcome)
        except Exception:
            logger.exception("Outcome callback of session %s raised", self.id)
        finally:
            self._done.set()

    def to_dict(self) -> Dict[str, Any]:
        params = self.request.hyperparameters
        return {
            "id": self.id,
            "state": self.state.value,
            "active": self.active,
            "epoch": self.epoch,
            "epochs": params.epochs,
            "epochs_completed": self.epochs_completed,
            "hyperparameters": params.to_dict(),
            "num_classes": len(self.class_labels),
            "total_images": self.request.total_images,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Controller
# ═══════════════════════════════════════════════════════════════════════════

class TrainingSessionController:
    """Owns the lifecycle of at most one active training session.

    Parameters
    ----------
    runtime
        Object implementing the ML runtime contract (see
        :mod:`training.runtime`).
    """

    def __init__(self, runtime: Any):
        self.runtime = runtime
        self._lock = threading.Lock()
        self._session: Optional[TrainingSession] = None

    @property
    def session(self) -> Optional[TrainingSession]:
        """The active session, or the last finished one."""
        return self._session

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session else SessionState.IDLE

    @property
    def is_active(self) -> bool:
        session = self._session
        return session is not None and session.active

    def start(
        self,
        request: TrainingRequest,
        callbacks: Optional[TrainingCallbacks] = None,
    ) -> TrainingSession:
        """Validate *request* and launch a session in the background.

        Raises
        ------
        SessionAlreadyActiveError
            A session is running, paused or stopping.
        ValidationError
            Too few classes / images, or invalid hyperparameters.
        """
        with self._lock:
            if self._session is not None and self._session.active:
                raise SessionAlreadyActiveError(
                    f"Training session {self._session.id} is already {self._session.state.value}."
                )
            request.validate()
            session = TrainingSession(request, callbacks or TrainingCallbacks(), self.runtime, self._lock)
            self._session = session

        thread = threading.Thread(
            target=session.run, name=f"training-{session.id}", daemon=True,
        )
        thread.start()
        logger.info(
            "Training session %s started: %d classes, %d images, %s",
            session.id, request.num_classes, request.total_images,
            request.hyperparameters.to_dict(),
        )
        return session

    def pause(self) -> None:
        """Hold the next epoch back; no-op unless running."""
        with self._lock:
            session = self._session
            if session is None or session.state is not SessionState.RUNNING:
                return
            session.paused = True
            session.state = SessionState.PAUSED
        logger.info("Training session %s paused", session.id)

    def resume(self) -> None:
        """Let a paused session continue; no-op unless paused."""
        with self._lock:
            session = self._session
            if session is None or session.state is not SessionState.PAUSED:
                return
            session.paused = False
            session.state = SessionState.RUNNING
            session._changed.notify_all()
        logger.info("Training session %s resumed", session.id)

    def stop(self) -> None:
        """Request cancellation; no further epoch starts after this call."""
        with self._lock:
            session = self._session
            if session is None or session.state not in (SessionState.RUNNING, SessionState.PAUSED):
                return
            session.cancelled = True
            session.paused = False
            session.state = SessionState.STOPPING
            session._changed.notify_all()
        logger.info("Training session %s stop requested", session.id)

    def wait(self, timeout: Optional[float] = None) -> Optional[Outcome]:
        """Wait for the current session's outcome (``None`` if none or timed out)."""
        session = self._session
        if session is None:
            return None
        return session.wait(timeout)

    def status(self) -> Dict[str, Any]:
        session = self._session
        if session is None:
            return {"state": SessionState.IDLE.value, "active": False, "session": None}
        with self._lock:
            snapshot = session.to_dict()
        return {"state": snapshot["state"], "active": snapshot["active"], "session": snapshot}
