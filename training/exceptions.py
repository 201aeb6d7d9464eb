"""
Exceptions raised by the training package.

Runtime errors coming out of TensorFlow are **not** wrapped: they reach
``on_training_error`` and ``Outcome.error`` exactly as they were raised.
"""

from __future__ import annotations


class TrainingError(Exception):
    """Base class for training lifecycle errors."""


class SessionAlreadyActiveError(TrainingError):
    """A session is running or paused; a second one cannot start."""


class ValidationError(TrainingError, ValueError):
    """The training request cannot be trained on (too little data, bad params)."""


class ModelNotReadyError(TrainingError):
    """No trained or loaded model is available for the requested operation."""
