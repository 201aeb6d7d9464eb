"""
Shared constants, utilities, and helper functions used across views.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from django.apps import apps
from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_UPLOAD_SIZE: int = getattr(settings, "MAX_UPLOAD_SIZE", 10 * 1024 * 1024)  # 10 MB

ALLOWED_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/bmp",
    "image/webp",
})

HYPERPARAMETERS_SETTING = "training.hyperparameters"


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------

def workbench():
    """The classifier app config holding store, trainer, tracker and model."""
    return apps.get_app_config("classifier")


def parse_json_body(request) -> Optional[Dict[str, Any]]:
    """Parse a JSON object body; ``{}`` when empty, ``None`` when malformed."""
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (json.JSONDecodeError, ValueError):
        return None
    return body if isinstance(body, dict) else None


def error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


def check_upload(upload) -> Optional[str]:
    """Return an error message if *upload* is not an acceptable image."""
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        return f"Unsupported file type: {upload.content_type}"
    if upload.size > MAX_UPLOAD_SIZE:
        return f"File too large ({upload.size:,} bytes). Max {MAX_UPLOAD_SIZE:,}."
    return None
