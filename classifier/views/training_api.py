"""
Training API endpoints.

GET  /api/training/defaults/  – Last used (or default) hyperparameters.
POST /api/training/start/     – Start a session on the stored images (background).
POST /api/training/pause/     – Hold the next epoch back.
POST /api/training/resume/    – Continue a paused session.
POST /api/training/stop/      – Stop after the running epoch.
GET  /api/training/status/    – Controller state, progress history and timing.
"""

from __future__ import annotations

import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from classifier.store import StoreError
from training.config import Hyperparameters, TrainingRequest
from training.events import Outcome, TrainingCallbacks
from training.exceptions import SessionAlreadyActiveError, ValidationError
from training.progress import ProgressTracker

from .helpers import HYPERPARAMETERS_SETTING, error, parse_json_body, workbench

logger = logging.getLogger(__name__)


@require_GET
def api_training_defaults(request):
    stored = workbench().store.get_setting(HYPERPARAMETERS_SETTING)
    try:
        params = Hyperparameters.from_dict(stored or {})
    except ValidationError:
        logger.warning("Ignoring invalid stored hyperparameters: %r", stored)
        params = Hyperparameters()
    return JsonResponse({"hyperparameters": params.to_dict()})


@csrf_exempt
@require_POST
def api_training_start(request):
    """Start a training session.

    Accepts an optional JSON body overriding the hyperparameters
    (``learning_rate``, ``batch_size``, ``epochs``, ``architecture``).
    Returns 202 once the session is launched, 400 if the data or the
    parameters are not trainable, 409 if a session is already active.
    """
    wb = workbench()
    if wb.trainer.is_active:
        return error("A training session is already in progress.", 409)

    body = parse_json_body(request)
    if body is None:
        return error("Invalid JSON body.", 400)

    try:
        params = Hyperparameters.from_dict(body)
        training_request = TrainingRequest(
            classes=wb.store.get_training_classes(),
            hyperparameters=params,
        )
    except ValidationError as exc:
        return error(str(exc), 400)
    except StoreError as exc:
        return error(str(exc), 500)

    def _activate(outcome: Outcome) -> None:
        if outcome.completed:
            wb.active_model.activate(
                outcome.model, outcome.class_labels, params.architecture.value,
            )

    tracker = ProgressTracker()
    tracker.begin(params.epochs)
    callbacks = TrainingCallbacks.combine(
        tracker.callbacks(),
        TrainingCallbacks(on_training_end=_activate),
    )

    try:
        session = wb.trainer.start(training_request, callbacks)
    except SessionAlreadyActiveError as exc:
        return error(str(exc), 409)
    except ValidationError as exc:
        return error(str(exc), 400)
    wb.tracker = tracker

    try:
        wb.store.save_setting(HYPERPARAMETERS_SETTING, params.to_dict())
    except StoreError:
        logger.exception("Could not remember the hyperparameters of session %s", session.id)

    return JsonResponse({"status": "started", "session": session.to_dict()}, status=202)


# Pause / resume / stop are no-ops in states where they do not apply, so
# each simply reports the resulting controller status.

@csrf_exempt
@require_POST
def api_training_pause(request):
    trainer = workbench().trainer
    trainer.pause()
    return JsonResponse(trainer.status())


@csrf_exempt
@require_POST
def api_training_resume(request):
    trainer = workbench().trainer
    trainer.resume()
    return JsonResponse(trainer.status())


@csrf_exempt
@require_POST
def api_training_stop(request):
    trainer = workbench().trainer
    trainer.stop()
    return JsonResponse(trainer.status())


@require_GET
def api_training_status(request):
    """Controller state plus the tracker's history, batch and timing."""
    wb = workbench()
    return JsonResponse({
        "training": wb.trainer.status(),
        "progress": wb.tracker.snapshot(),
        "model": wb.active_model.to_dict(),
    })
