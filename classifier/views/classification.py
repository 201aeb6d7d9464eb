"""
Image classification endpoint — accept an upload, run the active model, return results.
"""

from __future__ import annotations

import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from PIL import UnidentifiedImageError

from training.exceptions import ModelNotReadyError

from .helpers import check_upload, error, workbench

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def api_predict(request):
    """Classify one uploaded test image with the active model.

    Workflow
    -------
    1. Validate the upload (presence, size, content-type).
    2. Run the active model on the image bytes.
    3. Return every class with its probability, highest first.
    """
    if "image" not in request.FILES:
        return error("No image file provided.", 400)

    image_file = request.FILES["image"]
    problem = check_upload(image_file)
    if problem:
        return error(problem, 400)

    try:
        predictions = workbench().active_model.predict(image_file.read())
    except ModelNotReadyError as exc:
        return error(str(exc), 409)
    except UnidentifiedImageError:
        return error("The file is not a readable image.", 400)
    except Exception:
        logger.exception("Prediction failed for file %s", image_file.name)
        return error("Classification failed.", 500)

    top = predictions[0] if predictions else None
    if top:
        logger.info(
            "Predicted %s → %s (%.3f)",
            image_file.name, top["class_name"], top["probability"],
        )

    return JsonResponse({"predictions": predictions, "top": top})
