"""
WSGI config for educonnect_ams.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "educonnect_ams.settings")

application = get_wsgi_application()
