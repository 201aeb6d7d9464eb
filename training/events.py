"""
Progress and outcome events delivered by a training session.

Delivery guarantees
-------------------
* ``on_epoch_end``       – at most once per epoch, epochs strictly in order.
* ``on_batch_end``       – any number of times inside an epoch.
* ``on_training_end``    – exactly once, for ``completed`` or ``stopped``.
* ``on_training_error``  – exactly once, for ``failed``; receives the
  exception raised by the runtime, unmodified.

Every progress event of a session is delivered before its outcome.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class ProgressEvent:
    """Metrics of one completed epoch (``epoch`` is zero-based)."""

    epoch: int
    epochs: int
    loss: float
    accuracy: float
    val_loss: Optional[float] = None
    val_accuracy: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "epoch": self.epoch,
            "epochs": self.epochs,
            "loss": self.loss,
            "accuracy": self.accuracy,
            "val_loss": self.val_loss,
            "val_accuracy": self.val_accuracy,
        }


@dataclass(frozen=True)
class BatchEvent:
    """A finished mini-batch inside the running epoch (``batch`` is zero-based)."""

    epoch: int
    batch: int
    batches: int


class OutcomeStatus(str, enum.Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a session.

    ``model`` and ``class_labels`` carry the trained classifier for
    completed and stopped sessions; a failed session only carries
    ``error``.
    """

    status: OutcomeStatus
    epochs_completed: int = 0
    error: Optional[BaseException] = None
    model: Any = field(default=None, repr=False, compare=False)
    class_labels: tuple = ()

    @property
    def completed(self) -> bool:
        return self.status is OutcomeStatus.COMPLETED

    @property
    def reason(self) -> str:
        return str(self.error) if self.error is not None else ""

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "epochs_completed": self.epochs_completed,
            "reason": self.reason,
        }


@dataclass
class TrainingCallbacks:
    """Callback bundle handed to ``TrainingSessionController.start``.

    All callbacks are optional and run on the training thread.
    """

    on_epoch_end: Optional[Callable[[ProgressEvent], None]] = None
    on_batch_end: Optional[Callable[[BatchEvent], None]] = None
    on_training_end: Optional[Callable[[Outcome], None]] = None
    on_training_error: Optional[Callable[[BaseException], None]] = None

    @classmethod
    def combine(cls, *bundles: "TrainingCallbacks") -> "TrainingCallbacks":
        """Fan one event out to several consumers, in argument order."""

        def _fan(name: str):
            targets = [getattr(b, name) for b in bundles if getattr(b, name)]
            if not targets:
                return None

            def _call(arg):
                for target in targets:
                    target(arg)

            return _call

        return cls(
            on_epoch_end=_fan("on_epoch_end"),
            on_batch_end=_fan("on_batch_end"),
            on_training_end=_fan("on_training_end"),
            on_training_error=_fan("on_training_error"),
        )
