"""Liveness endpoint.  Always answers JSON, even when the database is down."""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from ..exceptions import StoreError

logger = logging.getLogger(__name__)


class HealthView(APIView):
    config = None
    store = None

    def get(self, request):
        payload = {
            'version': self.config.version,
            'build_date': self.config.build_date,
        }
        try:
            self.store.ping()
        except StoreError as exc:
            logger.warning('Health check failed: %s', exc)
            payload['message'] = 'Error'
            return Response(payload, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        payload['message'] = 'OK'
        return Response(payload)
