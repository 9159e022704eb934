"""
Request stages wrapped around the API views.

Each stage has the shape of a Django middleware (built with the next
callable, called with the request) and forwards the URL keyword arguments
unchanged.  :class:`clinic.router.Router` composes them per route in a fixed
order: content type, then CORS, then bearer token authentication.
"""
from __future__ import annotations

import logging

from django.http import HttpResponse

from .exceptions import AuthError
from .views.errors import status_response

logger = logging.getLogger(__name__)


class ContentTypeMiddleware:
    """Answer JSON unless the view chose another content type."""
    content_type = 'application/json'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request, *args, **kwargs):
        response = self.get_response(request, *args, **kwargs)
        # Django's default for responses that never picked a type
        if response.get('Content-Type', '').startswith('text/html'):
            response['Content-Type'] = self.content_type
        return response


class CorsMiddleware:
    """Allow cross-origin POSTs and answer preflights without the view.

    An ``OPTIONS`` request gets an empty 200 that echoes the requested
    headers back as allowed headers.  It is not authenticated.
    """
    allow_methods = 'POST, OPTIONS'

    def __init__(self, get_response, allow_methods=None):
        self.get_response = get_response
        if allow_methods is not None:
            self.allow_methods = allow_methods

    def __call__(self, request, *args, **kwargs):
        if request.method == 'OPTIONS':
            response = HttpResponse()
            requested = request.headers.get('Access-Control-Request-Headers')
            if requested:
                response['Access-Control-Allow-Headers'] = requested
        else:
            response = self.get_response(request, *args, **kwargs)
        response['Access-Control-Allow-Origin'] = '*'
        response['Access-Control-Allow-Methods'] = self.allow_methods
        return response


class BearerTokenMiddleware:
    """Reject requests without a valid bearer token with a bare 401."""

    def __init__(self, get_response, authenticator):
        self.get_response = get_response
        self.authenticator = authenticator

    def __call__(self, request, *args, **kwargs):
        try:
            self.authenticator.authenticate(request.headers.get('Authorization'))
        except AuthError as exc:
            logger.debug('Rejected %s %s: %s', request.method, request.path, exc)
            response = status_response(401)
            response['WWW-Authenticate'] = 'Bearer'
            return response
        return self.get_response(request, *args, **kwargs)
