"""
TensorFlow / Keras implementation of the ML runtime contract.

The session controller only talks to the runtime through these methods,
so tests can swap in any object with the same shape:

    prepare_data(classes)                         -> TrainingData
    build_model(architecture, num_classes)        -> model
    compile(model, learning_rate)
    fit_one_epoch(model, inputs, labels, batch_size,
                  on_batch_progress, validation_data=None) -> EpochResult
    predict(model, image_bytes, class_labels)     -> [prediction, …]
    save(model, path)                             -> token
    load(token)                                   -> model
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import tensorflow as tf

from .config import (
    IMAGE_SIZE,
    TRANSFER_BASE_WEIGHTS,
    VALIDATION_SPLIT,
    Architecture,
    ClassSamples,
)
from .data import TrainingData, decode_image, prepare_training_data
from .train import (
    EpochResult,
    build_simple_cnn,
    build_transfer_model,
    compile_model,
    fit_one_epoch,
    load_transfer_base,
)

logger = logging.getLogger(__name__)


class KerasRuntime:
    """Keras-backed runtime.

    The transfer-learning base network is loaded once and shared by every
    transfer model this runtime builds.
    """

    def __init__(
        self,
        image_size: int = IMAGE_SIZE,
        base_weights: Optional[str] = TRANSFER_BASE_WEIGHTS,
        validation_split: float = VALIDATION_SPLIT,
    ):
        self.image_size = image_size
        self.base_weights = base_weights
        self.validation_split = validation_split
        self._base: Optional[tf.keras.Model] = None
        self._base_lock = threading.Lock()

    # ── Training ────────────────────────────────────────────────────────

    def prepare_data(self, classes: Mapping[int, ClassSamples]) -> TrainingData:
        return prepare_training_data(
            classes,
            image_size=self.image_size,
            validation_split=self.validation_split,
        )

    def transfer_base(self) -> tf.keras.Model:
        with self._base_lock:
            if self._base is None:
                self._base = load_transfer_base(self.image_size, self.base_weights)
            return self._base

    def build_model(self, architecture: Architecture, num_classes: int) -> tf.keras.Model:
        architecture = Architecture(architecture)
        if architecture is Architecture.TRANSFER:
            return build_transfer_model(num_classes, self.transfer_base(), self.image_size)
        return build_simple_cnn(num_classes, self.image_size)

    def compile(self, model: tf.keras.Model, learning_rate: float) -> None:
        compile_model(model, learning_rate)

    def fit_one_epoch(
        self,
        model: tf.keras.Model,
        inputs,
        labels,
        batch_size: int,
        on_batch_progress=None,
        validation_data=None,
    ) -> EpochResult:
        return fit_one_epoch(
            model, inputs, labels, batch_size,
            on_batch_progress=on_batch_progress,
            validation_data=validation_data,
        )

    # ── Inference ───────────────────────────────────────────────────────

    def predict(
        self,
        model: tf.keras.Model,
        image: bytes,
        class_labels: Sequence[Mapping[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Class probabilities for one encoded image, highest first."""
        batch = np.expand_dims(decode_image(image, self.image_size), axis=0)
        probs = model.predict(batch, verbose=0)[0]

        predictions = [
            {
                "class_id": label["id"],
                "class_name": label["name"],
                "probability": float(probs[label["index"]]),
            }
            for label in class_labels
        ]
        predictions.sort(key=lambda p: p["probability"], reverse=True)
        return predictions

    # ── Persistence ─────────────────────────────────────────────────────

    def save(self, model: tf.keras.Model, path: Path) -> str:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        model.save(str(path))
        logger.info("Saved model to %s", path)
        return str(path)

    def load(self, token: str) -> tf.keras.Model:
        model = tf.keras.models.load_model(str(token), compile=False)
        logger.info("Loaded model from %s", token)
        return model

    def summarize(self, model: tf.keras.Model) -> Dict[str, Any]:
        """Parameter count and per-layer output shapes."""
        layers = []
        for layer in model.layers:
            try:
                shape = list(layer.output.shape)
            except (AttributeError, ValueError):
                shape = None
            layers.append({
                "name": layer.name,
                "type": layer.__class__.__name__,
                "output_shape": shape,
            })
        return {"total_params": int(model.count_params()), "layers": layers}
