"""
WSGI config for the gestion360 project.

It exposes the WSGI callable as a module-level variable named ``application``.
Production start command:

    gunicorn gestion360.wsgi:application
"""

import os
import sys
from pathlib import Path

from django.core.wsgi import get_wsgi_application

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Add the project directory to Python path
sys.path.append(str(BASE_DIR))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gestion360.settings')

application = get_wsgi_application()
