"""
HTTP-level tests of the patients API.

``PatientFlowTests`` walks the documented client flow (token, create, read)
against the project URLconf and the real database.  The remaining tests
install a router around a fake store to reach the error paths.

To run the tests:

```
pytest -q clinic/tests
```
"""
import json

import pytest
from rest_framework import status
from rest_framework.test import APITestCase

from clinic.exceptions import PatientNotFound, StoreError, StoreTimeout, TokenError
from clinic.router import compose

from .conftest import FakeStore

BILBO = {
    "first_name": "Bilbo",
    "last_name": "Baggins",
    "address": "Bag End, Hobbiton",
    "phone": "+44 000 000",
    "email": "bilbo@shire.example",
}


class PatientFlowTests(APITestCase):
    def authorize(self) -> None:
        response = self.client.get("/generate-token")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.json()['token']}")

    def test_create_then_read_back(self):
        self.authorize()

        response = self.client.post("/api/v1/patients", BILBO, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        created = response.json()
        self.assertEqual(response["Location"], f"http://testserver/api/v1/patients/{created['id']}")
        for field, value in BILBO.items():
            self.assertEqual(created[field], value)
        self.assertTrue(created["created_at"])

        response = self.client.get(f"/api/v1/patients/{created['id']}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), created)

        response = self.client.get("/api/v1/patients")
        self.assertEqual(response.json(), [created])

    def test_location_follows_the_host_the_client_used(self):
        self.authorize()
        response = self.client.post("/api/v1/patients", BILBO, format="json", HTTP_HOST="api.example.com:8080")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        patient_id = response.json()["id"]
        self.assertEqual(response["Location"], f"http://api.example.com:8080/api/v1/patients/{patient_id}")

        self.assertEqual(self.client.get("/api/v1/patients").json(), [response.json()])

    def test_empty_list_is_a_json_array(self):
        self.authorize()
        response = self.client.get("/api/v1/patients")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertEqual(response.content, b"[]")

    def test_missing_fields_and_nulls_are_stored_empty(self):
        self.authorize()
        response = self.client.post("/api/v1/patients", {"first_name": "Frodo", "email": None}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["first_name"], "Frodo")
        self.assertEqual(body["email"], "")
        self.assertEqual(body["last_name"], "")

    def test_unknown_patient_is_404(self):
        self.authorize()
        response = self.client.get("/api/v1/patients/2147483647")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.content, b"Not Found\n")
        self.assertTrue(response["Content-Type"].startswith("text/plain"))

    def test_without_token_nothing_is_created(self):
        response = self.client.post("/api/v1/patients", BILBO, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.authorize()
        self.assertEqual(self.client.get("/api/v1/patients").json(), [])


# ---------------------------------------------------------------------------
# Public routes
# ---------------------------------------------------------------------------
def test_health_ok(use_router, api_client):
    use_router(FakeStore())
    response = api_client.get("/health")
    assert response.status_code == 200
    assert response["Content-Type"] == "application/json"
    assert response.json() == {"version": "1.2.3", "build_date": "2020-04-17T00:00:00Z", "message": "OK"}


def test_health_reports_unreachable_store(use_router, api_client):
    use_router(FakeStore(ping_error=StoreError("connection refused")))
    response = api_client.get("/health")
    assert response.status_code == 500
    assert response["Content-Type"] == "application/json"
    assert response.json()["message"] == "Error"


def test_generate_token(use_router, api_client, authenticator):
    use_router(FakeStore())
    response = api_client.get("/generate-token")
    assert response.status_code == 200
    claims = authenticator.authenticate(f"Bearer {response.json()['token']}")
    assert claims["admin"] is True
    assert claims["name"] == "test"


class BrokenIssuer:
    def issue(self, now=None):
        raise TokenError("signing failed")


def test_generate_token_signing_failure(use_router, api_client):
    use_router(FakeStore(), issuer=BrokenIssuer())
    response = api_client.get("/generate-token")
    assert response.status_code == 500
    assert response.content == b"Internal Server Error\n"


def test_wrong_method_is_405(use_router, api_client):
    use_router(FakeStore())
    response = api_client.post("/health", {}, format="json")
    assert response.status_code == 405
    assert response.content == b"Method Not Allowed\n"


@pytest.mark.parametrize("path", ["/nope", "/api/v1", "/api/v1/patients/1/extra", "/health/"])
def test_unknown_paths_are_plain_404(use_router, authorized_client, path):
    use_router(FakeStore())
    response = authorized_client.get(path)
    assert response.status_code == 404
    assert response.content == b"Not Found\n"
    assert response["Content-Type"].startswith("text/plain")


# ---------------------------------------------------------------------------
# Authentication and CORS
# ---------------------------------------------------------------------------
def test_missing_token_is_401(use_router, api_client):
    store = FakeStore()
    use_router(store)
    response = api_client.get("/api/v1/patients")
    assert response.status_code == 401
    assert response.content == b"Unauthorized\n"
    assert response["WWW-Authenticate"] == "Bearer"
    assert response["Access-Control-Allow-Origin"] == "*"


def test_expired_token_is_401(use_router, authorized_client, clock):
    use_router(FakeStore())
    clock.advance(hours=1, seconds=1)
    response = authorized_client.get("/api/v1/patients")
    assert response.status_code == 401


def test_preflight_needs_no_token(use_router, api_client):
    store = FakeStore(error=AssertionError("view must not run"))
    use_router(store)
    response = api_client.options(
        "/api/v1/patients",
        HTTP_ORIGIN="https://example.org",
        HTTP_ACCESS_CONTROL_REQUEST_HEADERS="authorization,content-type",
    )
    assert response.status_code == 200
    assert response.content == b""
    assert response["Access-Control-Allow-Origin"] == "*"
    assert response["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert response["Access-Control-Allow-Headers"] == "authorization,content-type"


def test_authorized_responses_carry_cors_headers(use_router, authorized_client):
    use_router(FakeStore())
    response = authorized_client.get("/api/v1/patients")
    assert response.status_code == 200
    assert response["Access-Control-Allow-Origin"] == "*"
    assert response["Access-Control-Allow-Methods"] == "POST, OPTIONS"


def test_detail_route_preflight_advertises_get(use_router, api_client):
    use_router(FakeStore(error=AssertionError("view must not run")))
    response = api_client.options("/api/v1/patients/1", HTTP_ORIGIN="https://example.org")
    assert response.status_code == 200
    assert response["Access-Control-Allow-Methods"] == "GET, OPTIONS"


def test_detail_responses_advertise_get(use_router, authorized_client):
    use_router(FakeStore(error=PatientNotFound(1)))
    response = authorized_client.get("/api/v1/patients/1")
    assert response.status_code == 404
    assert response["Access-Control-Allow-Methods"] == "GET, OPTIONS"


def test_public_routes_have_no_cors_headers(use_router, api_client):
    use_router(FakeStore())
    response = api_client.get("/health")
    assert "Access-Control-Allow-Origin" not in response


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------
def test_oversized_body_is_rejected_before_reading(use_router, authorized_client):
    use_router(FakeStore(error=AssertionError("store must not be reached")))
    response = authorized_client.post(
        "/api/v1/patients",
        data=json.dumps(BILBO),
        content_type="application/json",
        CONTENT_LENGTH="1025",
    )
    assert response.status_code == 413
    assert response.content == b"Request Entity Too Large\n"


def test_body_is_read_only_up_to_the_declared_length(use_router, authorized_client):
    use_router(FakeStore(error=AssertionError("store must not be reached")))
    response = authorized_client.post(
        "/api/v1/patients",
        data=json.dumps({**BILBO, "address": "x" * 4096}),
        content_type="application/json",
        CONTENT_LENGTH="16",
    )
    assert response.status_code == 400
    assert response.content == b"Bad Request\n"


@pytest.mark.parametrize(
    "body",
    ["", "{not json", "[]", '"Bilbo"', '{"first_name": 7}', '{"email": ["a", "b"]}'],
)
def test_malformed_bodies_are_400(use_router, authorized_client, body):
    use_router(FakeStore(error=AssertionError("store must not be reached")))
    response = authorized_client.post("/api/v1/patients", data=body, content_type="application/json")
    assert response.status_code == 400
    assert response.content == b"Bad Request\n"


@pytest.mark.parametrize("patient_id", ["abc", "1.5", "0x10", "99999999999", "-2147483649"])
def test_invalid_ids_are_400(use_router, authorized_client, patient_id):
    use_router(FakeStore(error=AssertionError("store must not be reached")))
    response = authorized_client.get(f"/api/v1/patients/{patient_id}")
    assert response.status_code == 400


@pytest.mark.parametrize("error", [StoreError("relation does not exist"), StoreTimeout("deadline exceeded")])
def test_store_failures_are_500(use_router, authorized_client, error):
    use_router(FakeStore(error=error))
    for response in (
        authorized_client.get("/api/v1/patients"),
        authorized_client.get("/api/v1/patients/1"),
        authorized_client.post("/api/v1/patients", BILBO, format="json"),
    ):
        assert response.status_code == 500
        assert response.content == b"Internal Server Error\n"


# ---------------------------------------------------------------------------
# Stage composition
# ---------------------------------------------------------------------------
def test_compose_runs_stages_in_order():
    calls = []

    def stage(name):
        def build(get_response):
            def handle(request, *args, **kwargs):
                calls.append(name)
                return get_response(request, *args, **kwargs)

            return handle

        return build

    def view(request, patient_id):
        calls.append(f"view:{patient_id}")
        return "response"

    handler = compose(view, [stage("content-type"), stage("cors"), stage("auth")])
    assert handler(object(), patient_id="7") == "response"
    assert calls == ["content-type", "cors", "auth", "view:7"]
