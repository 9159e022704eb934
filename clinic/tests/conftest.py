"""
Shared fixtures for the clinic test-suite.

Most API tests run against a :class:`~clinic.router.Router` built from the
fixtures below and installed as ``ROOT_URLCONF``, so that the store, the
clock and the signing key are under the test's control.
"""
from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from clinic.config import ServiceConfig
from clinic.router import Router
from clinic.tokens import TokenAuthenticator, TokenIssuer

SIGNING_KEY = "ferrum-test-signing-key-0123456789abcdef"
NOW = datetime(2020, 4, 17, tzinfo=timezone.utc)


class FrozenClock:
    """A ``timezone.now`` replacement that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeStore:
    """Store double.  ``ping_error`` fails pings, ``error`` fails queries."""

    def __init__(self, ping_error=None, error=None, patients=None):
        self.ping_error = ping_error
        self.error = error
        self.patients = list(patients or [])
        self.pings = 0
        self.close_calls = 0

    def ping(self):
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error

    def close(self):
        self.close_calls += 1

    def create_patient(self, deadline, data):
        raise self.error

    def fetch_patient(self, deadline, patient_id):
        raise self.error

    def fetch_all_patients(self, deadline):
        if self.error is not None:
            raise self.error
        return self.patients


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def config():
    return ServiceConfig(
        port=0,
        request_timeout=2.0,
        shutdown_timeout=2.0,
        max_post_size=1024,
        signing_key=SIGNING_KEY,
        claim_name="test",
        token_lifetime=3600.0,
        version="1.2.3",
        build_date="2020-04-17T00:00:00Z",
    )


@pytest.fixture
def issuer(config, clock):
    return TokenIssuer(config.signing_key, config.claim_name, config.token_lifetime_delta, clock)


@pytest.fixture
def authenticator(config, clock):
    return TokenAuthenticator(config.signing_key, clock)


@pytest.fixture
def use_router(settings, config, issuer, authenticator):
    """Return a function that installs a router around the given store."""

    def install(store, **overrides):
        parts = {"config": config, "issuer": issuer, "authenticator": authenticator}
        parts.update(overrides)
        router = Router(store=store, **parts)
        settings.ROOT_URLCONF = router
        return router

    return install


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authorized_client(issuer):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issuer.issue()}")
    return client
