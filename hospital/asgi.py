"""
ASGI config for the hospital scheduling backend.

The scheduler serves plain HTTP only; run it with any ASGI server
(``uvicorn hospital.asgi:application``).
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hospital.settings")

application = get_asgi_application()
