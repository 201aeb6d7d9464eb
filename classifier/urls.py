"""
URL configuration for the classifier app (mounted under ``/api/``).

Route groups
------------
- Classes & images : add / rename / delete classes, upload and browse images.
- Training         : start, pause, resume, stop, status, last parameters.
- Prediction       : classify a test image with the active model.
- Model            : status, save, load.
- Workspace        : statistics and clear-all.
"""

from django.urls import path

from . import views

urlpatterns = [
    # ── Classes & images ────────────────────────────────────────────────
    path("classes/", views.api_classes, name="api_classes"),
    path("classes/<int:class_id>/rename/", views.api_rename_class, name="api_rename_class"),
    path("classes/<int:class_id>/delete/", views.api_delete_class, name="api_delete_class"),
    path("classes/<int:class_id>/images/", views.api_class_images, name="api_class_images"),
    path("images/<int:image_id>/", views.api_image, name="api_image"),
    path("images/<int:image_id>/delete/", views.api_delete_image, name="api_delete_image"),

    # ── Training ────────────────────────────────────────────────────────
    path("training/defaults/", views.api_training_defaults, name="api_training_defaults"),
    path("training/start/", views.api_training_start, name="api_training_start"),
    path("training/pause/", views.api_training_pause, name="api_training_pause"),
    path("training/resume/", views.api_training_resume, name="api_training_resume"),
    path("training/stop/", views.api_training_stop, name="api_training_stop"),
    path("training/status/", views.api_training_status, name="api_training_status"),

    # ── Prediction ──────────────────────────────────────────────────────
    path("predict/", views.api_predict, name="api_predict"),

    # ── Model ───────────────────────────────────────────────────────────
    path("model/", views.api_model, name="api_model"),
    path("model/save/", views.api_model_save, name="api_model_save"),
    path("model/load/", views.api_model_load, name="api_model_load"),

    # ── Workspace ───────────────────────────────────────────────────────
    path("stats/", views.api_stats, name="api_stats"),
    path("data/clear/", views.api_clear_data, name="api_clear_data"),
]
