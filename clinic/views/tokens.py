import logging

from rest_framework.response import Response
from rest_framework.views import APIView

from ..exceptions import TokenError
from .errors import status_response

logger = logging.getLogger(__name__)


class TokenView(APIView):
    """Hand out an admin bearer token.  No authentication."""
    issuer = None

    def get(self, request):
        try:
            token = self.issuer.issue()
        except TokenError as exc:
            logger.warning('Failed to sign the JWT token: %s', exc)
            return status_response(500)
        return Response({'token': token})
