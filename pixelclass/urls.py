"""
Root URL configuration for the PixelClass project.

All classifier functionality is a JSON API under ``/api/``.
"""

from django.urls import include, path

urlpatterns = [
    path("api/", include("classifier.urls")),
]
