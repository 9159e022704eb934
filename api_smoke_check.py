#!/usr/bin/env python3
"""
End-to-end check of a running ferrum server.

Walks the client flow (health, token, create, read, list) plus the main
rejection paths and reports every mismatch.  Point it at a server with
``FERRUM_BASE_URL`` (default ``http://127.0.0.1:80``)::

    FERRUM_BASE_URL=http://127.0.0.1:8080 python api_smoke_check.py

Exits non-zero when any check fails.
"""
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

BASE_URL = os.getenv("FERRUM_BASE_URL", "http://127.0.0.1:80").rstrip("/")

SAMPLE_PATIENT = {
    "first_name": "Bilbo",
    "last_name": "Baggins",
    "address": "Bag End, Hobbiton",
    "phone": "",
    "email": "bilbo@shire.example",
}


@dataclass
class CheckResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    description: str = ""
    error_message: str = ""


class SmokeChecker:
    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.session = requests.Session()
        self.token: Optional[str] = None
        self.results: List[CheckResult] = []

    @property
    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if not r.success]

    def check(self, method: str, endpoint: str, expected_status: int, description: str,
              json: Any = None, headers: Optional[Dict[str, str]] = None,
              authorized: bool = True) -> Optional[requests.Response]:
        """Send one request and record whether it got ``expected_status``."""
        request_headers = dict(headers or {})
        if authorized and self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"

        start_time = time.time()
        try:
            response = self.session.request(
                method, f"{self.base_url}{endpoint}", json=json, headers=request_headers, timeout=10
            )
        except requests.RequestException as exc:
            self.record(CheckResult(False, endpoint, method, 0, time.time() - start_time, description, str(exc)))
            return None

        response_time = time.time() - start_time
        success = response.status_code == expected_status
        self.record(CheckResult(
            success=success,
            endpoint=endpoint,
            method=method,
            status_code=response.status_code,
            response_time=response_time,
            description=description,
            error_message="" if success else response.text[:200],
        ))
        return response

    def record(self, result: CheckResult) -> None:
        self.results.append(result)
        mark = "✅" if result.success else "❌"
        print(f"{mark} {result.method} {result.endpoint} - {result.description} "
              f"[{result.status_code}] ({result.response_time:.2f}s)")

    def run(self) -> bool:
        print(f"Checking {self.base_url}")

        self.check("GET", "/health", 200, "health check", authorized=False)

        response = self.check("GET", "/generate-token", 200, "issue token", authorized=False)
        if response is None or response.status_code != 200:
            return False
        self.token = response.json().get("token")

        self.check("GET", "/api/v1/patients", 401, "list without token", authorized=False)
        self.check("OPTIONS", "/api/v1/patients", 200, "CORS preflight", authorized=False,
                   headers={"Access-Control-Request-Headers": "authorization,content-type"})

        response = self.check("POST", "/api/v1/patients", 201, "create patient", json=SAMPLE_PATIENT)
        if response is not None and response.status_code == 201:
            patient_id = response.json()["id"]
            location = response.headers.get("Location", "")
            if not location.endswith(f"/api/v1/patients/{patient_id}"):
                self.record(CheckResult(False, "/api/v1/patients", "POST", 201, 0.0,
                                        "Location header", f"unexpected Location {location!r}"))
            self.check("GET", f"/api/v1/patients/{patient_id}", 200, "read back patient")

        self.check("GET", "/api/v1/patients", 200, "list patients")
        self.check("GET", "/api/v1/patients/not-a-number", 400, "invalid id")
        self.check("GET", "/api/v1/patients/2147483647", 404, "unknown patient")
        self.check("POST", "/api/v1/patients", 400, "body of the wrong shape", json=["not", "an", "object"])

        return not self.failures

    def report(self) -> None:
        total = len(self.results)
        passed = total - len(self.failures)
        print("\nSummary:")
        print(f"  checks: {total}")
        print(f"  passed: {passed}")
        print(f"  failed: {len(self.failures)}")
        for i, failure in enumerate(self.failures, 1):
            print(f"{i}. {failure.method} {failure.endpoint} ({failure.description})")
            print(f"   status: {failure.status_code}")
            print(f"   error: {failure.error_message}")


def main() -> None:
    checker = SmokeChecker()
    ok = checker.run()
    checker.report()
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
