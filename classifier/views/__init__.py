"""
View package for the PixelClass classifier app.

Modules
-------
helpers.py        – Shared constants, utilities, and helper functions.
class_api.py      – Class / image management, statistics, clear-all.
training_api.py   – Training session lifecycle (start, pause, resume, stop, status).
classification.py – Test-image prediction with the active model.
model_api.py      – Active model status, save and load.
"""

# Re-export all views so urls.py can do: from .views import api_classes, …
from .class_api import (                                              # noqa: F401
    api_classes,
    api_rename_class,
    api_delete_class,
    api_class_images,
    api_image,
    api_delete_image,
    api_stats,
    api_clear_data,
)
from .training_api import (                                           # noqa: F401
    api_training_defaults,
    api_training_start,
    api_training_pause,
    api_training_resume,
    api_training_stop,
    api_training_status,
)
from .classification import api_predict                              # noqa: F401
from .model_api import api_model, api_model_save, api_model_load      # noqa: F401
