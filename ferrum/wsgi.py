"""
WSGI config for the ferrum project.

It exposes the WSGI callable as a module-level variable named ``application``
for running under an external WSGI server.  ``manage.py serve`` does not use
it: the serve command owns its own listener and shutdown sequence.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

# Set the default settings module for the 'django' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ferrum.settings')

# Obtain the WSGI application for use by the server
application = get_wsgi_application()
