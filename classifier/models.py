"""
Database models for the PixelClass image classifier.

Models
------
ImageClass     – A user-defined label ("cat", "mug", …).
TrainingImage  – One example image (encoded bytes) belonging to a class.
ModelInfo      – Metadata of the saved model (class labels, path, time).
Setting        – Free-form key/value preferences (e.g. last hyperparameters).

Image bytes are kept in the database rather than on disk so that the
whole workspace is one SQLite file, like the browser store it mirrors.
"""

from django.core.validators import MinLengthValidator
from django.db import models
from django.utils import timezone


# ── Classes and images ──────────────────────────────────────────────────────

class ImageClass(models.Model):
    """A label the classifier learns to recognise.

    Label indices are assigned in ``id`` order at training time, so the
    ordering below is significant.
    """

    name = models.CharField(
        max_length=150,
        validators=[MinLengthValidator(1)],
        help_text='Display name, e.g. "cat".',
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'image_classes'
        ordering = ['id']
        verbose_name = 'Image class'
        verbose_name_plural = 'Image classes'

    def __str__(self) -> str:
        return self.name


class TrainingImage(models.Model):
    """One labelled example image."""

    image_class = models.ForeignKey(
        ImageClass,
        on_delete=models.CASCADE,
        related_name='images',
    )
    data = models.BinaryField(help_text='Encoded image file contents.')
    content_type = models.CharField(max_length=50, default='image/png')
    filename = models.CharField(max_length=255, blank=True, default='')
    file_size = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'training_images'
        ordering = ['id']
        verbose_name = 'Training image'
        verbose_name_plural = 'Training images'

    def __str__(self) -> str:
        return f"{self.image_class_id}/{self.filename or self.pk}"


# ── Model metadata and settings ─────────────────────────────────────────────

class ModelInfo(models.Model):
    """Metadata of the saved classifier.

    A single row keyed ``"current"`` is kept; saving again overwrites it.
    """

    key = models.CharField(max_length=50, primary_key=True, default='current')
    class_labels = models.JSONField(
        default=list, blank=True,
        help_text='[{"id", "name", "index"}, …] in output-unit order.',
    )
    architecture = models.CharField(max_length=20, blank=True, default='')
    model_path = models.CharField(max_length=500, blank=True, default='')
    extra = models.JSONField(default=dict, blank=True)
    saved_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'model_info'
        verbose_name = 'Model info'
        verbose_name_plural = 'Model info'

    def __str__(self) -> str:
        return f"{self.key} ({self.architecture or 'unknown'}, {len(self.class_labels)} classes)"


class Setting(models.Model):
    key = models.CharField(max_length=100, primary_key=True)
    value = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'settings'

    def __str__(self) -> str:
        return self.key
