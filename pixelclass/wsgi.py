"""
WSGI config for the PixelClass project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "pixelclass.settings")

application = get_wsgi_application()
