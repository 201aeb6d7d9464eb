"""
Class and image management APIs — the data-collection side of the workspace.

GET/POST /api/classes/                 – List classes / add a class.
POST     /api/classes/<id>/rename/     – Rename a class.
POST     /api/classes/<id>/delete/     – Delete a class with its images.
GET/POST /api/classes/<id>/images/     – List / upload a class's images.
GET      /api/images/<id>/             – Raw image bytes.
POST     /api/images/<id>/delete/      – Delete one image.
GET      /api/stats/                   – Data summary and model status.
POST     /api/data/clear/              – Wipe the workspace.
"""

from __future__ import annotations

import logging

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from classifier.store import RecordNotFound, StoreError

from .helpers import check_upload, error, parse_json_body, workbench

logger = logging.getLogger(__name__)


def _clean_name(body) -> str:
    name = body.get("name") if body else None
    return name.strip() if isinstance(name, str) else ""


def _name_taken(store, name: str, exclude_id: int | None = None) -> bool:
    return any(
        c["name"].lower() == name.lower() and c["id"] != exclude_id
        for c in store.get_classes()
    )


# ---------------------------------------------------------------------------
# Classes
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "POST"])
def api_classes(request):
    """List classes with their image counts, or add one.

    POST expects JSON: ``{"name": "..."}``.  Names are unique,
    case-insensitively.
    """
    store = workbench().store

    if request.method == "GET":
        try:
            classes = store.get_classes()
        except StoreError as exc:
            return error(str(exc), 500)
        return JsonResponse({"classes": classes, "total": len(classes)})

    body = parse_json_body(request)
    if body is None:
        return error("Invalid JSON.", 400)
    name = _clean_name(body)
    if not name:
        return error("Class name is required.", 400)

    try:
        if _name_taken(store, name):
            return error(f"A class named '{name}' already exists.", 409)
        class_id = store.add_class(name)
        created = store.get_class(class_id)
    except StoreError as exc:
        return error(str(exc), 500)

    return JsonResponse({"class": created}, status=201)


@csrf_exempt
@require_POST
def api_rename_class(request, class_id: int):
    """Rename a class.  Expects JSON: ``{"name": "..."}``."""
    store = workbench().store
    body = parse_json_body(request)
    if body is None:
        return error("Invalid JSON.", 400)
    name = _clean_name(body)
    if not name:
        return error("Class name is required.", 400)

    try:
        if _name_taken(store, name, exclude_id=class_id):
            return error(f"A class named '{name}' already exists.", 409)
        store.update_class_name(class_id, name)
        renamed = store.get_class(class_id)
    except RecordNotFound as exc:
        return error(str(exc), 404)
    except StoreError as exc:
        return error(str(exc), 500)

    return JsonResponse({"class": renamed})


@csrf_exempt
@require_POST
def api_delete_class(request, class_id: int):
    try:
        workbench().store.delete_class(class_id)
    except StoreError as exc:
        return error(str(exc), 500)
    return JsonResponse({"status": "deleted", "id": class_id})


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "POST"])
def api_class_images(request, class_id: int):
    """List a class's images (metadata only), or upload new ones.

    POST expects multipart form data with one or more ``images`` files.
    Files are checked for content type and size; rejected files are
    reported individually and do not stop the others.
    """
    store = workbench().store

    try:
        store.get_class(class_id)
    except RecordNotFound as exc:
        return error(str(exc), 404)
    except StoreError as exc:
        return error(str(exc), 500)

    if request.method == "GET":
        try:
            images = store.get_images_by_class(class_id, include_data=False)
        except StoreError as exc:
            return error(str(exc), 500)
        return JsonResponse({"class_id": class_id, "images": images, "total": len(images)})

    uploads = request.FILES.getlist("images")
    if not uploads:
        return error("No image files provided.", 400)

    added, rejected = [], []
    for upload in uploads:
        problem = check_upload(upload)
        if problem:
            rejected.append({"filename": upload.name, "error": problem})
            continue
        try:
            image_id = store.add_image(
                class_id, upload.read(), upload.content_type, upload.name,
            )
        except StoreError as exc:
            return error(str(exc), 500)
        added.append(image_id)

    logger.info(
        "Uploaded %d image(s) to class %d (%d rejected)",
        len(added), class_id, len(rejected),
    )
    status = 201 if added else 400
    return JsonResponse({"added": added, "rejected": rejected}, status=status)


@require_GET
def api_image(request, image_id: int):
    try:
        image = workbench().store.get_image(image_id)
    except RecordNotFound as exc:
        return error(str(exc), 404)
    except StoreError as exc:
        return error(str(exc), 500)
    return HttpResponse(image["data"], content_type=image["content_type"])


@csrf_exempt
@require_POST
def api_delete_image(request, image_id: int):
    try:
        workbench().store.delete_image(image_id)
    except StoreError as exc:
        return error(str(exc), 500)
    return JsonResponse({"status": "deleted", "id": image_id})


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------

@require_GET
def api_stats(request):
    """Class / image counts plus the active model's status."""
    wb = workbench()
    try:
        summary = wb.store.get_data_summary()
    except StoreError as exc:
        return error(str(exc), 500)
    return JsonResponse({
        **summary,
        "model": wb.active_model.to_dict(),
        "final_accuracy": wb.tracker.final_accuracy,
    })


@csrf_exempt
@require_POST
def api_clear_data(request):
    """Delete all classes, images, settings and the saved model.

    Refused with 409 while a training session is active.
    """
    wb = workbench()
    if wb.trainer.is_active:
        return error("Stop training before clearing the data.", 409)

    try:
        wb.store.clear_all()
    except StoreError as exc:
        return error(str(exc), 500)
    wb.active_model.delete()
    wb.tracker.reset()

    return JsonResponse({"status": "cleared"})
