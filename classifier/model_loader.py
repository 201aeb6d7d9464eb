"""
Active model — the classifier currently used to validate test images.

Holds the Keras model produced by the last completed session (or loaded
from disk) together with its class labels, and provides prediction and
save / load.

Status    : ``not_trained`` → ``trained`` (after a completed session)
            or ``loaded`` (after ``load``).
Saved to  : ``MODELS_ROOT/classifier.keras`` + a ``ModelInfo`` row.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from training.config import SAVED_MODEL_PATH
from training.exceptions import ModelNotReadyError

logger = logging.getLogger(__name__)

NOT_TRAINED = "not_trained"
TRAINED = "trained"
LOADED = "loaded"


class ActiveModel:
    """Thread-safe holder of the model used for prediction.

    Parameters
    ----------
    runtime
        ML runtime used for predict / save / load.
    store : PersistentStore
        Where the saved-model metadata lives.
    model_path : Path
        File the model is saved to.
    """

    def __init__(self, runtime: Any, store: Any, model_path: Path = SAVED_MODEL_PATH):
        self.runtime = runtime
        self.store = store
        self.model_path = Path(model_path)
        self._lock = threading.Lock()
        self._model = None
        self._class_labels: tuple = ()
        self._architecture: Optional[str] = None
        self.status = NOT_TRAINED

    @property
    def ready(self) -> bool:
        return self._model is not None

    @property
    def class_labels(self) -> tuple:
        return self._class_labels

    def activate(
        self,
        model,
        class_labels: Sequence[Dict[str, Any]],
        architecture: Optional[str] = None,
        status: str = TRAINED,
    ) -> None:
        with self._lock:
            self._model = model
            self._class_labels = tuple(dict(label) for label in class_labels)
            self._architecture = architecture
            self.status = status
        logger.info(
            "Activated %s model with %d classes", status, len(self._class_labels),
        )

    def predict(self, image: bytes) -> List[Dict[str, Any]]:
        """Sorted class probabilities for one encoded image.

        Raises
        ------
        ModelNotReadyError
            Nothing has been trained or loaded yet.
        """
        with self._lock:
            model, labels = self._model, self._class_labels
        if model is None:
            raise ModelNotReadyError("Train or load a model before predicting.")
        return self.runtime.predict(model, image, labels)

    # ── Persistence ─────────────────────────────────────────────────────

    def save(self) -> Dict[str, Any]:
        with self._lock:
            model, labels, architecture = self._model, self._class_labels, self._architecture
        if model is None:
            raise ModelNotReadyError("There is no model to save.")

        token = self.runtime.save(model, self.model_path)
        self.store.save_model_info({
            "class_labels": list(labels),
            "architecture": architecture or "",
            "model_path": token,
        })
        return self.store.get_model_info()

    def has_saved_model(self) -> bool:
        info = self.store.get_model_info()
        return bool(info and info["model_path"] and Path(info["model_path"]).exists())

    def load(self) -> Dict[str, Any]:
        """Restore the saved model and make it active."""
        info = self.store.get_model_info()
        if not info or not info["model_path"] or not Path(info["model_path"]).exists():
            raise ModelNotReadyError("No saved model found.")

        model = self.runtime.load(info["model_path"])
        self.activate(model, info["class_labels"], info["architecture"] or None, status=LOADED)
        return info

    def delete(self) -> None:
        """Forget the active model and remove the saved file."""
        with self._lock:
            self._model = None
            self._class_labels = ()
            self._architecture = None
            self.status = NOT_TRAINED
        if self.model_path.exists():
            self.model_path.unlink()
            logger.info("Deleted saved model %s", self.model_path)

    # ── Introspection ───────────────────────────────────────────────────

    def summary(self) -> Optional[Dict[str, Any]]:
        model = self._model
        if model is None:
            return None
        return self.runtime.summarize(model)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "ready": self.ready,
            "architecture": self._architecture,
            "class_labels": list(self._class_labels),
        }
