"""
Model APIs — inspect, save and restore the active classifier.

GET  /api/model/        – Status, saved-model availability, layer summary.
POST /api/model/save/   – Save the active model to disk.
POST /api/model/load/   – Restore the saved model and make it active.
"""

from __future__ import annotations

import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from classifier.store import StoreError
from training.exceptions import ModelNotReadyError

from .helpers import error, workbench

logger = logging.getLogger(__name__)


@require_GET
def api_model(request):
    wb = workbench()
    try:
        saved_info = wb.store.get_model_info()
        has_saved = wb.active_model.has_saved_model()
    except StoreError as exc:
        return error(str(exc), 500)

    return JsonResponse({
        "model": wb.active_model.to_dict(),
        "has_saved_model": has_saved,
        "saved_info": saved_info,
        "summary": wb.active_model.summary(),
        "final_accuracy": wb.tracker.final_accuracy,
    })


@csrf_exempt
@require_POST
def api_model_save(request):
    """Save the active model; 409 when nothing has been trained or loaded."""
    try:
        info = workbench().active_model.save()
    except ModelNotReadyError as exc:
        return error(str(exc), 409)
    except StoreError as exc:
        return error(str(exc), 500)
    except Exception:
        logger.exception("Saving the model failed")
        return error("Saving the model failed.", 500)

    return JsonResponse({"status": "saved", "info": info})


@csrf_exempt
@require_POST
def api_model_load(request):
    """Load the saved model; 404 when there is none."""
    wb = workbench()
    try:
        info = wb.active_model.load()
    except ModelNotReadyError as exc:
        return error(str(exc), 404)
    except StoreError as exc:
        return error(str(exc), 500)
    except Exception:
        logger.exception("Loading the saved model failed")
        return error("Loading the saved model failed.", 500)

    return JsonResponse({"status": "loaded", "info": info, "model": wb.active_model.to_dict()})
