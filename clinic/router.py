"""
Routes of the patients API.

A :class:`Router` is built from explicit collaborators (config, store, token
issuer and authenticator) rather than from module globals.  It is a URLconf
object (``urlpatterns``, ``handler404``, ``handler500``) and can hand out a
WSGI application that resolves against it, which is how the lifecycle serves
a router it built itself.

Stage order per route::

    /health, /generate-token   ContentType -> view
    /api/v1/...                ContentType -> CORS -> bearer token -> view
"""
from __future__ import annotations

from functools import partial

from django.core.handlers.wsgi import WSGIHandler
from django.urls import path

from .config import ServiceConfig
from .middleware import BearerTokenMiddleware, ContentTypeMiddleware, CorsMiddleware
from .store import PatientStore
from .tokens import TokenAuthenticator, TokenIssuer
from .views import errors
from .views.health import HealthView
from .views.patients import PatientDetailView, PatientListView
from .views.tokens import TokenView


def compose(view, stages):
    """Wrap ``view`` so that ``stages[0]`` runs first."""
    handler = view
    for stage in reversed(stages):
        handler = stage(handler)
    return handler


class Router:

    def __init__(self, config: ServiceConfig, store, issuer: TokenIssuer, authenticator: TokenAuthenticator):
        self.config = config
        self.store = store
        self.issuer = issuer
        self.authenticator = authenticator

        public = [ContentTypeMiddleware]

        def api(methods):
            return [
                ContentTypeMiddleware,
                partial(CorsMiddleware, allow_methods=methods),
                partial(BearerTokenMiddleware, authenticator=authenticator),
            ]

        self.urlpatterns = [
            path('health', compose(HealthView.as_view(config=config, store=store), public)),
            path('generate-token', compose(TokenView.as_view(issuer=issuer), public)),
            path(
                'api/v1/patients',
                compose(PatientListView.as_view(config=config, store=store), api('POST, OPTIONS')),
            ),
            path(
                'api/v1/patients/<str:patient_id>',
                compose(PatientDetailView.as_view(config=config, store=store), api('GET, OPTIONS')),
            ),
        ]
        self.handler404 = errors.not_found
        self.handler500 = errors.server_error

    @classmethod
    def from_config(cls, config: ServiceConfig, store) -> "Router":
        issuer = TokenIssuer(config.signing_key, config.claim_name, config.token_lifetime_delta)
        authenticator = TokenAuthenticator(config.signing_key)
        return cls(config, store, issuer, authenticator)

    @classmethod
    def from_settings(cls) -> "Router":
        config = ServiceConfig.from_settings()
        return cls.from_config(config, PatientStore(config.database_alias))

    def wsgi_application(self) -> WSGIHandler:
        return RouterHandler(self)


class RouterHandler(WSGIHandler):
    """Django's WSGI handler, resolving URLs against one router."""

    def __init__(self, router: Router):
        super().__init__()
        self.router = router

    def get_response(self, request):
        request.urlconf = self.router
        return super().get_response(request)
