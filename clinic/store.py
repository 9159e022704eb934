"""
Store gateway: the only code that talks to the patients table.

:class:`PatientStore` owns the Django connections for one database alias.
Every data operation is a single round trip bounded by the caller's
:class:`Deadline`.  Failures surface as the service's own error types so
views never see driver exceptions:

- a missing row is :class:`~clinic.exceptions.PatientNotFound`;
- a query attempted, interrupted or finishing after the deadline is
  :class:`~clinic.exceptions.StoreTimeout`;
- anything else the database raises is :class:`~clinic.exceptions.StoreError`.

Django keeps one connection per thread, so the store can be shared by every
request thread without locking around queries.  The store remembers each
per-thread connection it hands out so that :meth:`PatientStore.close` can
close all of them, not only the caller's.
"""
from __future__ import annotations

import logging
import threading
import time
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Dict, List

from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections

from .exceptions import PatientNotFound, StoreError, StoreTimeout
from .models import Patient

logger = logging.getLogger(__name__)

# SQLite virtual machine steps between deadline checks
SQLITE_PROGRESS_STEPS = 1000


class Deadline:
    """A point in time after which a store operation must not succeed."""

    def __init__(self, expires_at: float, clock: Callable[[], float] = time.monotonic):
        self.expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> "Deadline":
        return cls(clock() + seconds, clock)

    def remaining(self) -> float:
        return self.expires_at - self._clock()

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


class PatientStore:
    def __init__(self, alias: str = DEFAULT_DB_ALIAS):
        self.alias = alias
        self._closed = False
        self._lock = threading.Lock()
        self._handles = weakref.WeakSet()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connection(self):
        """The calling thread's connection.  Raises once the store is closed."""
        with self._lock:
            if self._closed:
                raise StoreError("database connection is closed")
            conn = connections[self.alias]
            self._handles.add(conn)
        return conn

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------
    def ping(self) -> None:
        """Run ``SELECT 1``.  On failure the connection is dropped so the
        next ping opens a fresh one."""
        conn = self.connection
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as exc:
            self._discard(conn)
            raise StoreError(f"ping failed: {exc}") from exc

    def close(self) -> None:
        """Close every connection handed out, on whichever thread holds it.

        Only the first call does anything.  Later operations raise
        :class:`StoreError`.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            handles = list(self._handles)
            self._handles.clear()

        failures = []
        for conn in handles:
            # connections belong to the thread that opened them
            conn.inc_thread_sharing()
            try:
                conn.close()
            except DatabaseError as exc:
                failures.append(exc)
            finally:
                conn.dec_thread_sharing()
        if failures:
            raise StoreError(f"failed to close database connection: {failures[0]}") from failures[0]
        logger.info("Closed %d database connection(s) for %r", len(handles), self.alias)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------
    def create_patient(self, deadline: Deadline, data: Dict[str, Any]) -> Patient:
        with self._round_trip(deadline, "create patient"):
            return Patient.objects.using(self.alias).create(**data)

    def fetch_patient(self, deadline: Deadline, patient_id: int) -> Patient:
        with self._round_trip(deadline, f"fetch patient {patient_id}"):
            try:
                return Patient.objects.using(self.alias).get(pk=patient_id)
            except Patient.DoesNotExist:
                raise PatientNotFound(patient_id) from None

    def fetch_all_patients(self, deadline: Deadline) -> List[Patient]:
        with self._round_trip(deadline, "fetch patients"):
            return list(Patient.objects.using(self.alias).order_by("id"))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @contextmanager
    def _round_trip(self, deadline: Deadline, operation: str):
        if deadline.expired:
            raise StoreTimeout(f"{operation}: deadline exceeded")
        conn = self.connection

        def guard(execute, sql, params, many, context):
            if self._closed:
                raise StoreError(f"{operation}: database connection is closed")
            if deadline.expired:
                raise StoreTimeout(f"{operation}: deadline exceeded")
            with _statement_limit(context, deadline):
                result = execute(sql, params, many, context)
            if deadline.expired:
                raise StoreTimeout(f"{operation}: deadline exceeded while the query ran")
            return result

        try:
            with conn.execute_wrapper(guard):
                yield
        except DatabaseError as exc:
            if deadline.expired:
                raise StoreTimeout(f"{operation}: deadline exceeded: {exc}") from exc
            raise StoreError(f"{operation}: {exc}") from exc

    def _discard(self, conn) -> None:
        try:
            conn.close()
        except DatabaseError as exc:
            logger.debug("Ignoring error while dropping a broken connection: %s", exc)


@contextmanager
def _statement_limit(context, deadline: Deadline):
    """Have the driver abort the statement once ``deadline`` passes.

    SQLite is interrupted from its progress handler, PostgreSQL through
    ``statement_timeout``.  Other backends rely on the checks around the
    query.
    """
    wrapper = context["connection"]
    if wrapper.vendor == "sqlite":
        raw = wrapper.connection
        raw.set_progress_handler(lambda: int(deadline.expired), SQLITE_PROGRESS_STEPS)
        try:
            yield
        finally:
            raw.set_progress_handler(None, SQLITE_PROGRESS_STEPS)
    elif wrapper.vendor == "postgresql":
        cursor = context["cursor"].cursor
        millis = max(1, int(deadline.remaining() * 1000))
        cursor.execute(f"SET statement_timeout = {millis}")
        yield
        cursor.execute("SET statement_timeout = 0")
    else:
        yield
