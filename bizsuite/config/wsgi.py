"""
WSGI config for the bizsuite project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bizsuite.config.settings')

application = get_wsgi_application()
