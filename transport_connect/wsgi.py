"""
WSGI config for transport_connect project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'transport_connect.settings')

application = get_wsgi_application()
