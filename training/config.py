"""
Training configuration, request types and paths.

All tuneable settings live here so they are easy to find, review,
and override without touching training logic.

Directory conventions
---------------------
::

    pixelclass/
    ├── models/
    │   └── classifier.keras      ← Saved model (model/save endpoint)
    ├── db.sqlite3                ← Classes, images, model info, settings
    │
    └── training/                 ← This package
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Tuple

from django.conf import settings

from .exceptions import ValidationError

# ── Paths ───────────────────────────────────────────────────────────────────

BASE_DIR: Path = Path(settings.BASE_DIR)
MODELS_ROOT: Path = Path(getattr(settings, "MODELS_ROOT", BASE_DIR / "models"))
SAVED_MODEL_PATH: Path = MODELS_ROOT / "classifier.keras"

# ── Constants ───────────────────────────────────────────────────────────────

IMAGE_SIZE: int = int(getattr(settings, "TRAINING_IMAGE_SIZE", 224))
TRANSFER_BASE_WEIGHTS = getattr(settings, "TRANSFER_BASE_WEIGHTS", "imagenet")

MIN_CLASSES: int = 2
MIN_IMAGES: int = 4
VALIDATION_SPLIT: float = 0.2


class Architecture(str, enum.Enum):
    """Classifier topologies the runtime knows how to build."""

    SIMPLE = "simple"        # three conv blocks, trained from scratch
    TRANSFER = "transfer"    # frozen MobileNet base + small dense head


@dataclass(frozen=True)
class Hyperparameters:
    """Knobs exposed on the training form.

    Attributes
    ----------
    learning_rate : float
        Adam learning rate, must be positive (default 1e-3).
    batch_size : int
        Mini-batch size (default 16).
    epochs : int
        Number of epochs to run (default 20).
    architecture : Architecture
        ``simple`` CNN or ``transfer`` learning on MobileNet.
    """

    learning_rate: float = 1e-3
    batch_size: int = 16
    epochs: int = 20
    architecture: Architecture = Architecture.SIMPLE

    @classmethod
    def from_dict(cls, data: Mapping) -> "Hyperparameters":
        """Build from form / JSON values, coercing types.

        Raises
        ------
        ValidationError
            If a value cannot be coerced or is out of range.
        """
        defaults = cls()
        try:
            params = cls(
                learning_rate=float(data.get("learning_rate", defaults.learning_rate)),
                batch_size=_strict_int(data.get("batch_size", defaults.batch_size)),
                epochs=_strict_int(data.get("epochs", defaults.epochs)),
                architecture=Architecture(data.get("architecture", defaults.architecture)),
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid training parameters: {exc}") from exc
        params.validate()
        return params

    def validate(self) -> None:
        if not (isinstance(self.learning_rate, (int, float))
                and math.isfinite(self.learning_rate) and self.learning_rate > 0):
            raise ValidationError("learning_rate must be a positive number")
        if not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ValidationError("batch_size must be a positive integer")
        if not isinstance(self.epochs, int) or self.epochs < 1:
            raise ValidationError("epochs must be a positive integer")
        if not isinstance(self.architecture, Architecture):
            raise ValidationError(f"Unknown architecture: {self.architecture!r}")

    def to_dict(self) -> dict:
        """Serialise to a JSON-safe dict (stored as the last-used setting)."""
        return {
            "learning_rate": self.learning_rate,
            "batch_size": self.batch_size,
            "epochs": self.epochs,
            "architecture": self.architecture.value,
        }


@dataclass(frozen=True)
class ClassSamples:
    """The encoded images collected for one class."""

    name: str
    images: Tuple[bytes, ...] = ()


@dataclass(frozen=True)
class TrainingRequest:
    """Everything one training session needs, frozen at start time.

    ``classes`` maps the store's class id to its samples.  Iteration order
    of the mapping decides the label index of each class.
    """

    classes: Mapping[int, ClassSamples]
    hyperparameters: Hyperparameters = field(default_factory=Hyperparameters)

    @property
    def num_classes(self) -> int:
        """Classes that contribute at least one image."""
        return sum(1 for samples in self.classes.values() if samples.images)

    @property
    def total_images(self) -> int:
        return sum(len(samples.images) for samples in self.classes.values())

    def validate(self) -> None:
        """Reject requests that cannot produce a meaningful classifier.

        Raises
        ------
        ValidationError
            Fewer than ``MIN_CLASSES`` non-empty classes, fewer than
            ``MIN_IMAGES`` images, or invalid hyperparameters.
        """
        if self.num_classes < MIN_CLASSES:
            raise ValidationError(
                f"You need at least {MIN_CLASSES} classes with images to train "
                f"(got {self.num_classes})."
            )
        if self.total_images < MIN_IMAGES:
            raise ValidationError(
                f"You need at least {MIN_IMAGES} images to train "
                f"(got {self.total_images})."
            )
        self.hyperparameters.validate()

    def training_classes(self) -> dict[int, ClassSamples]:
        """The non-empty classes, in label order."""
        return {cid: s for cid, s in self.classes.items() if s.images}


def class_labels_for(classes: Mapping[int, ClassSamples]) -> Tuple[dict, ...]:
    """Label table ``({"id", "name", "index"}, …)`` in mapping order."""
    return tuple(
        {"id": int(class_id), "name": samples.name, "index": index}
        for index, (class_id, samples) in enumerate(classes.items())
    )


def _strict_int(value) -> int:
    """Coerce to int without silently truncating ``2.5`` or ``True``."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    return int(value)
