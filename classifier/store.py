"""
Persistent store — CRUD over classes, images, model metadata and settings.

Every method returns plain dicts / ids rather than model instances, so
callers on the training thread never hold ORM objects.  Database failures
surface as :class:`StoreError`; a missing record raises
:class:`RecordNotFound`.

Usage::

    store = PersistentStore()
    cat = store.add_class("cat")
    store.add_image(cat, png_bytes, "image/png")
    request = TrainingRequest(classes=store.get_training_classes())
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from classifier.models import ImageClass, ModelInfo, Setting, TrainingImage
from training.config import ClassSamples

logger = logging.getLogger(__name__)

MODEL_INFO_KEY = "current"


class StoreError(Exception):
    """A store operation failed."""


class RecordNotFound(StoreError):
    """The referenced class / image does not exist."""


@contextmanager
def _database(action: str):
    try:
        yield
    except DatabaseError as exc:
        logger.exception("Store failed to %s", action)
        raise StoreError(f"Failed to {action}: {exc}") from exc


def _class_dict(obj: ImageClass, image_count: int = 0) -> Dict[str, Any]:
    return {
        "id": obj.id,
        "name": obj.name,
        "image_count": image_count,
        "created_at": obj.created_at.isoformat(),
    }


def _image_dict(obj: TrainingImage, include_data: bool) -> Dict[str, Any]:
    record = {
        "id": obj.id,
        "class_id": obj.image_class_id,
        "content_type": obj.content_type,
        "filename": obj.filename,
        "file_size": obj.file_size,
        "created_at": obj.created_at.isoformat(),
    }
    if include_data:
        # BinaryField may come back as memoryview depending on the backend.
        record["data"] = bytes(obj.data)
    return record


class PersistentStore:
    """Django-ORM backed store of the classifier workspace."""

    # ── Classes ─────────────────────────────────────────────────────────

    def add_class(self, name: str) -> int:
        with _database("add class"):
            obj = ImageClass.objects.create(name=name)
        logger.info("Added class %d (%s)", obj.id, name)
        return obj.id

    def get_classes(self) -> List[Dict[str, Any]]:
        with _database("list classes"):
            rows = ImageClass.objects.annotate(n_images=Count("images")).order_by("id")
            return [_class_dict(c, c.n_images) for c in rows]

    def get_class(self, class_id: int) -> Dict[str, Any]:
        with _database("get class"):
            obj = ImageClass.objects.filter(pk=class_id).annotate(
                n_images=Count("images")
            ).first()
        if obj is None:
            raise RecordNotFound(f"Class {class_id} not found")
        return _class_dict(obj, obj.n_images)

    def update_class_name(self, class_id: int, name: str) -> bool:
        with _database("rename class"):
            updated = ImageClass.objects.filter(pk=class_id).update(name=name)
        if not updated:
            raise RecordNotFound(f"Class {class_id} not found")
        return True

    def delete_class(self, class_id: int) -> bool:
        """Delete a class and all of its images, atomically."""
        with _database("delete class"), transaction.atomic():
            n_images, _ = TrainingImage.objects.filter(image_class_id=class_id).delete()
            ImageClass.objects.filter(pk=class_id).delete()
        logger.info("Deleted class %s with %d image(s)", class_id, n_images)
        return True

    # ── Images ──────────────────────────────────────────────────────────

    def add_image(
        self,
        class_id: int,
        data: bytes,
        content_type: str = "image/png",
        filename: str = "",
    ) -> int:
        with _database("add image"):
            if not ImageClass.objects.filter(pk=class_id).exists():
                raise RecordNotFound(f"Class {class_id} not found")
            obj = TrainingImage.objects.create(
                image_class_id=class_id,
                data=data,
                content_type=content_type,
                filename=filename,
                file_size=len(data),
            )
        return obj.id

    def get_image(self, image_id: int) -> Dict[str, Any]:
        with _database("get image"):
            obj = TrainingImage.objects.filter(pk=image_id).first()
        if obj is None:
            raise RecordNotFound(f"Image {image_id} not found")
        return _image_dict(obj, include_data=True)

    def get_images_by_class(self, class_id: int, include_data: bool = True) -> List[Dict[str, Any]]:
        with _database("list images"):
            qs = TrainingImage.objects.filter(image_class_id=class_id).order_by("id")
            if not include_data:
                qs = qs.defer("data")
            return [_image_dict(img, include_data) for img in qs]

    def get_all_images(self, include_data: bool = False) -> List[Dict[str, Any]]:
        with _database("list images"):
            qs = TrainingImage.objects.order_by("image_class_id", "id")
            if not include_data:
                qs = qs.defer("data")
            return [_image_dict(img, include_data) for img in qs]

    def delete_image(self, image_id: int) -> bool:
        with _database("delete image"):
            TrainingImage.objects.filter(pk=image_id).delete()
        return True

    def delete_images_by_class(self, class_id: int) -> int:
        with _database("delete images"):
            deleted, _ = TrainingImage.objects.filter(image_class_id=class_id).delete()
        return deleted

    # ── Model metadata ──────────────────────────────────────────────────

    def save_model_info(self, info: Dict[str, Any]) -> None:
        """Overwrite the saved-model metadata.

        ``class_labels``, ``architecture``, ``model_path`` and ``saved_at``
        get their own columns; any other key is kept in ``extra``.
        """
        info = dict(info)
        fields = {
            "class_labels": list(info.pop("class_labels", [])),
            "architecture": info.pop("architecture", "") or "",
            "model_path": str(info.pop("model_path", "") or ""),
            "saved_at": info.pop("saved_at", None) or timezone.now(),
        }
        fields["extra"] = info
        with _database("save model info"):
            ModelInfo.objects.update_or_create(key=MODEL_INFO_KEY, defaults=fields)

    def get_model_info(self) -> Optional[Dict[str, Any]]:
        with _database("get model info"):
            obj = ModelInfo.objects.filter(key=MODEL_INFO_KEY).first()
        if obj is None:
            return None
        return {
            **obj.extra,
            "class_labels": obj.class_labels,
            "architecture": obj.architecture,
            "model_path": obj.model_path,
            "saved_at": obj.saved_at.isoformat(),
        }

    def delete_model_info(self) -> None:
        with _database("delete model info"):
            ModelInfo.objects.filter(key=MODEL_INFO_KEY).delete()

    # ── Settings ────────────────────────────────────────────────────────

    def save_setting(self, key: str, value: Any) -> None:
        with _database("save setting"):
            Setting.objects.update_or_create(key=key, defaults={"value": value})

    def get_setting(self, key: str, default: Any = None) -> Any:
        with _database("get setting"):
            obj = Setting.objects.filter(key=key).first()
        return default if obj is None else obj.value

    # ── Aggregates ──────────────────────────────────────────────────────

    def get_data_summary(self) -> Dict[str, Any]:
        classes = self.get_classes()
        return {
            "num_classes": len(classes),
            "total_images": sum(c["image_count"] for c in classes),
            "class_counts": {c["name"]: c["image_count"] for c in classes},
            "classes": classes,
        }

    def get_training_classes(self) -> Dict[int, ClassSamples]:
        """Classes with at least one image, with their bytes, in id order."""
        with _database("load training data"):
            images: Dict[int, List[bytes]] = {}
            for class_id, data in (
                TrainingImage.objects.order_by("image_class_id", "id")
                .values_list("image_class_id", "data")
            ):
                images.setdefault(class_id, []).append(bytes(data))
            names = dict(
                ImageClass.objects.filter(pk__in=list(images)).values_list("id", "name")
            )
        return {
            class_id: ClassSamples(name=names[class_id], images=tuple(images[class_id]))
            for class_id in sorted(images)
        }

    def clear_all(self) -> None:
        """Delete every class, image, model record and setting."""
        with _database("clear data"), transaction.atomic():
            TrainingImage.objects.all().delete()
            ImageClass.objects.all().delete()
            ModelInfo.objects.all().delete()
            Setting.objects.all().delete()
        logger.warning("Cleared all stored data")
