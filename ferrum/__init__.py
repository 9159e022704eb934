"""Ferrum patients service.

Django project package: settings, URL configuration and the WSGI entry
point.  The API itself lives in the ``clinic`` app.
"""

__version__ = "0.1.0"
