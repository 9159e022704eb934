"""
Error taxonomy of the patients service and the DRF exception handler.

Request-scoped errors are turned into a plain-text status phrase at the view
boundary by :func:`api_exception_handler`; nothing about the cause reaches the
client.  Startup and shutdown errors propagate to the ``serve`` command.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ImproperlyConfigured
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import set_rollback

from .views.errors import status_response

logger = logging.getLogger(__name__)


class FerrumError(Exception):
    """Base class for the service's own errors."""


class ConfigError(ImproperlyConfigured):
    """Configuration is missing or invalid; the process cannot start."""


class ConnectError(FerrumError):
    """The database could not be reached before the retry policy gave up."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class ConnectionCancelled(ConnectError):
    """Shutdown was requested before the database became reachable."""


class ListenError(FerrumError):
    """The HTTP listener could not be bound."""


class AuthError(FerrumError):
    """A request carried no usable bearer token.  Always answered with 401."""


class TokenError(FerrumError):
    """A token could not be signed."""


class NotFoundError(FerrumError):
    """The requested record does not exist."""


class PatientNotFound(NotFoundError):
    def __init__(self, patient_id: int):
        super().__init__(f"patient {patient_id} not found")
        self.patient_id = patient_id


class StoreError(FerrumError):
    """The database failed to answer a query."""


class StoreTimeout(StoreError):
    """The caller's deadline passed before the database answered."""


class ShutdownError(FerrumError):
    """Draining the listener or closing the database did not finish cleanly."""


class ValidationError(exceptions.ValidationError):
    default_detail = 'Bad Request'


class PayloadTooLarge(exceptions.APIException):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = 'Request Entity Too Large'
    default_code = 'payload_too_large'


def api_exception_handler(exc, context):
    view = context.get('view')
    name = type(view).__name__ if view is not None else 'view'

    if isinstance(exc, NotFoundError):
        logger.debug('%s: %s', name, exc)
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, StoreError):
        logger.warning('%s failed to reach the database: %s', name, exc)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    elif isinstance(exc, (exceptions.ParseError, exceptions.UnsupportedMediaType)):
        logger.warning('%s failed to decode the request body: %s', name, exc)
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, exceptions.APIException):
        logger.debug('%s rejected the request: %s', name, exc)
        code = exc.status_code
    elif isinstance(exc, Http404):
        code = status.HTTP_404_NOT_FOUND
    else:
        logger.exception('%s raised an unexpected error', name)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR

    set_rollback()
    return status_response(code)
