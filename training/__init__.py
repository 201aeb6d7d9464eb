"""
PixelClass Training Package
===========================

Browser-style "teach a classifier" training, run server-side:

1. The API collects labelled images per class and builds a ``TrainingRequest``.
2. ``TrainingSessionController.start`` validates it and launches one session.
3. The session decodes the images into tensors, builds a simple CNN or a
   MobileNet transfer model, and fits it one epoch at a time.
4. Between epochs the session honours pause / resume / stop.
5. Progress and the terminal outcome are delivered through callbacks.

Package layout
--------------
config.py     – ``Hyperparameters``, ``TrainingRequest``, paths and constants.
exceptions.py – ``SessionAlreadyActiveError``, ``ValidationError``, ….
events.py     – ``ProgressEvent``, ``BatchEvent``, ``Outcome``, ``TrainingCallbacks``.
data.py       – Image bytes → normalised input / one-hot label tensors.
train.py      – Model topologies, compile, single-epoch fit.
runtime.py    – ``KerasRuntime``: the ML runtime the controller drives.
session.py    – ``TrainingSessionController`` and the epoch loop.
progress.py   – ``ProgressTracker``: pollable snapshot of a session.
"""
