"""
Training data preparation from the image bytes held in a request.

Each image is decoded with Pillow, converted to RGB, resized to the
model input size and normalised to ``[0, 1]``.  Labels are one-hot.
Samples are shuffled once and a validation split is held out, so the
validation set is never a single class.

Public API
----------
decode_image           – Encoded bytes → ``(size, size, 3)`` float32 array.
prepare_training_data  – ``{class_id: ClassSamples}`` → ``TrainingData``.

Usage::

    from training.data import prepare_training_data

    data = prepare_training_data(request.training_classes(), image_size=224)
    try:
        model.fit(data.inputs, data.labels, validation_data=data.validation)
    finally:
        data.dispose()
"""

from __future__ import annotations

import io
import logging
from typing import Mapping, Optional, Tuple

import numpy as np
import tensorflow as tf
from PIL import Image

from .config import IMAGE_SIZE, VALIDATION_SPLIT, ClassSamples, class_labels_for

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Decoding
# ═══════════════════════════════════════════════════════════════════════════

def decode_image(data: bytes, image_size: int = IMAGE_SIZE) -> np.ndarray:
    """Decode one encoded image into a normalised float32 array.

    Parameters
    ----------
    data : bytes
        PNG / JPEG / … file contents.
    image_size : int
        Target width and height in pixels.

    Returns
    -------
    np.ndarray
        Shape ``(image_size, image_size, 3)``, values in ``[0, 1]``.
    """
    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB").resize((image_size, image_size), Image.Resampling.BILINEAR)
        arr = np.asarray(img, dtype=np.float32) / 255.0
    return arr


# ═══════════════════════════════════════════════════════════════════════════
# Tensors owned by a session
# ═══════════════════════════════════════════════════════════════════════════

class TrainingData:
    """Input / label tensors for one training session.

    Owned exclusively by the session that allocated them; the runtime only
    borrows them for the duration of a ``fit`` call.  ``dispose`` drops
    every reference so the tensor memory can be reclaimed.
    """

    def __init__(
        self,
        inputs: tf.Tensor,
        labels: tf.Tensor,
        validation: Optional[Tuple[tf.Tensor, tf.Tensor]],
        class_labels: Tuple[dict, ...],
    ):
        self.inputs = inputs
        self.labels = labels
        self.validation = validation
        self.class_labels = class_labels
        self.disposed = False

    @property
    def num_classes(self) -> int:
        return len(self.class_labels)

    @property
    def num_samples(self) -> int:
        return 0 if self.inputs is None else int(self.inputs.shape[0])

    def dispose(self) -> None:
        """Release the tensors."""
        self.inputs = None
        self.labels = None
        self.validation = None
        self.disposed = True
        logger.debug("Training tensors released")


# ═══════════════════════════════════════════════════════════════════════════
# Preparation
# ═══════════════════════════════════════════════════════════════════════════

def prepare_training_data(
    classes: Mapping[int, ClassSamples],
    *,
    image_size: int = IMAGE_SIZE,
    validation_split: float = VALIDATION_SPLIT,
    seed: int = 42,
) -> TrainingData:
    """Decode every image and build the one-hot training tensors.

    Parameters
    ----------
    classes : Mapping[int, ClassSamples]
        Class id → samples.  Mapping order decides label indices.
    image_size : int
        Model input size.
    validation_split : float
        Fraction of samples held out for validation; at least one sample
        is held out whenever the split is positive.
    seed : int
        Shuffle seed.

    Returns
    -------
    TrainingData
        Tensors plus ``class_labels`` as ``({"id", "name", "index"}, …)``.

    Raises
    ------
    ValueError
        If there are no images at all.
    """
    images: list[np.ndarray] = []
    label_idx: list[int] = []
    class_labels = class_labels_for(classes)

    for index, samples in enumerate(classes.values()):
        for raw in samples.images:
            images.append(decode_image(raw, image_size))
            label_idx.append(index)

    total = len(images)
    if total == 0:
        raise ValueError("No images to train on.")

    num_classes = len(class_labels)
    x = np.stack(images)
    y = tf.keras.utils.to_categorical(np.asarray(label_idx), num_classes=num_classes)

    order = np.random.default_rng(seed).permutation(total)
    x, y = x[order], y[order]

    n_val = 0
    if validation_split > 0 and total > 1:
        n_val = min(total - 1, max(1, int(total * validation_split)))

    validation = None
    if n_val:
        validation = (
            tf.convert_to_tensor(x[-n_val:]),
            tf.convert_to_tensor(y[-n_val:]),
        )
        x, y = x[:-n_val], y[:-n_val]

    logger.info(
        "Prepared %d images (%d train, %d validation) across %d classes",
        total, total - n_val, n_val, num_classes,
    )

    return TrainingData(
        inputs=tf.convert_to_tensor(x),
        labels=tf.convert_to_tensor(y),
        validation=validation,
        class_labels=class_labels,
    )
