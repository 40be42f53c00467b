"""
ASGI config for the gestion360 project.

It exposes the ASGI callable as a module-level variable named ``application``.
Realtime change feeds are delivered through Django signals, so plain HTTP
is all this entry point serves.
"""

import os
import sys
from pathlib import Path

from django.core.asgi import get_asgi_application

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Add the project directory to Python path
sys.path.append(str(BASE_DIR))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gestion360.settings')

application = get_asgi_application()
