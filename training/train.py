"""
Classifier topologies and single-epoch fitting.

Simple CNN — trained from scratch
    Three Conv2D(3×3, relu, same) + MaxPool(2) blocks with 32 / 64 / 128
    filters → Flatten → Dropout(0.5) → Dense(256, relu) → Dropout(0.3)
    → Dense(N, softmax).

Transfer — MobileNet feature extractor
    MobileNet (alpha 0.25, no top, frozen) → GlobalAveragePooling2D
    → Dropout(0.5) → Dense(128, relu) → Dropout(0.3) → Dense(N, softmax).

Both are compiled with Adam + categorical cross-entropy and trained one
epoch per ``fit`` call so the session controller can pause or stop
between epochs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

import tensorflow as tf
from tensorflow.keras.applications import MobileNet
from tensorflow.keras.layers import (
    Conv2D,
    Dense,
    Dropout,
    Flatten,
    GlobalAveragePooling2D,
    Input,
    MaxPooling2D,
)
from tensorflow.keras.models import Sequential
from tensorflow.keras.optimizers import Adam

from .config import IMAGE_SIZE, TRANSFER_BASE_WEIGHTS

logger = logging.getLogger(__name__)

BatchProgressFn = Callable[[int, int], None]


# ═══════════════════════════════════════════════════════════════════════════
# Model building
# ═══════════════════════════════════════════════════════════════════════════

def build_simple_cnn(num_classes: int, image_size: int = IMAGE_SIZE) -> tf.keras.Model:
    """Build the from-scratch convolutional classifier.

    Parameters
    ----------
    num_classes : int
        Number of output classes.
    image_size : int
        Square input size in pixels.

    Returns
    -------
    tf.keras.Model
        Uncompiled model with a softmax head.
    """
    model = Sequential(
        [
            Input(shape=(image_size, image_size, 3)),
            Conv2D(32, 3, activation="relu", padding="same"),
            MaxPooling2D(pool_size=2),
            Conv2D(64, 3, activation="relu", padding="same"),
            MaxPooling2D(pool_size=2),
            Conv2D(128, 3, activation="relu", padding="same"),
            MaxPooling2D(pool_size=2),
            Flatten(),
            Dropout(0.5),
            Dense(256, activation="relu"),
            Dropout(0.3),
            Dense(num_classes, activation="softmax"),
        ],
        name="simple_cnn",
    )
    logger.info("Built simple CNN: %d classes, input %dx%d", num_classes, image_size, image_size)
    return model


def load_transfer_base(
    image_size: int = IMAGE_SIZE,
    weights: Optional[str] = TRANSFER_BASE_WEIGHTS,
) -> tf.keras.Model:
    """Load the MobileNet feature extractor with all weights frozen.

    ``weights="imagenet"`` downloads the pretrained weights through Keras
    on first use; ``None`` gives a randomly initialised base.
    """
    base = MobileNet(
        input_shape=(image_size, image_size, 3),
        alpha=0.25,
        include_top=False,
        weights=weights,
    )
    base.trainable = False
    logger.info("Loaded MobileNet base (%s weights, %d layers, frozen)", weights, len(base.layers))
    return base


def build_transfer_model(
    num_classes: int,
    base: tf.keras.Model,
    image_size: int = IMAGE_SIZE,
) -> tf.keras.Model:
    """Stack a small trainable head on a frozen feature extractor.

    Architecture::

        Input(size, size, 3)
          → base (frozen)
          → GlobalAveragePooling2D
          → Dropout(0.5)
          → Dense(128, relu)
          → Dropout(0.3)
          → Dense(num_classes, softmax)
    """
    inputs = Input(shape=(image_size, image_size, 3))
    x = base(inputs, training=False)
    x = GlobalAveragePooling2D()(x)
    x = Dropout(0.5)(x)
    x = Dense(128, activation="relu")(x)
    x = Dropout(0.3)(x)
    outputs = Dense(num_classes, activation="softmax")(x)

    model = tf.keras.Model(inputs, outputs, name="transfer_mobilenet")
    logger.info("Built transfer model: %d classes on a frozen MobileNet base", num_classes)
    return model


def compile_model(model: tf.keras.Model, learning_rate: float) -> None:
    """Compile with Adam(learning_rate) and categorical cross-entropy."""
    model.compile(
        optimizer=Adam(learning_rate=learning_rate),
        loss="categorical_crossentropy",
        metrics=["accuracy"],
    )


# ═══════════════════════════════════════════════════════════════════════════
# One epoch
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EpochResult:
    loss: float
    accuracy: float
    val_loss: Optional[float] = None
    val_accuracy: Optional[float] = None


class BatchProgress(tf.keras.callbacks.Callback):
    """Forward Keras batch ends as ``(batch_index, batch_count)``."""

    def __init__(self, on_batch: BatchProgressFn, batches: int):
        super().__init__()
        self._on_batch = on_batch
        self._batches = batches

    def on_train_batch_end(self, batch, logs=None):
        batches = (self.params or {}).get("steps") or self._batches
        self._on_batch(int(batch), int(batches))


def _last(history: dict, *keys: str) -> Optional[float]:
    for key in keys:
        values = history.get(key)
        if values:
            return float(values[-1])
    return None


def fit_one_epoch(
    model: tf.keras.Model,
    inputs,
    labels,
    batch_size: int,
    on_batch_progress: Optional[BatchProgressFn] = None,
    validation_data=None,
) -> EpochResult:
    """Run exactly one epoch of ``model.fit``.

    The tensors are only borrowed for the duration of the call.

    Returns
    -------
    EpochResult
        Training loss / accuracy, plus validation metrics when
        ``validation_data`` was given.
    """
    callbacks = []
    if on_batch_progress is not None:
        batches = max(1, math.ceil(int(inputs.shape[0]) / batch_size))
        callbacks.append(BatchProgress(on_batch_progress, batches))

    history = model.fit(
        inputs,
        labels,
        batch_size=batch_size,
        epochs=1,
        shuffle=True,
        validation_data=validation_data,
        callbacks=callbacks,
        verbose=0,
    )
    logs = history.history

    return EpochResult(
        loss=_last(logs, "loss"),
        accuracy=_last(logs, "accuracy", "acc"),
        val_loss=_last(logs, "val_loss"),
        val_accuracy=_last(logs, "val_accuracy", "val_acc"),
    )
