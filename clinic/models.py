"""
Database models for the patients API.

A single table holds patient contact records.  Records are created through
the API and only ever read afterwards; the service has no update or delete
operation.
"""
from __future__ import annotations

from django.db import models


class Patient(models.Model):
    """A patient contact record.

    The primary key and ``created_at`` are assigned by the database on
    insert.  Every text field is optional and defaults to an empty string,
    mirroring what a client may leave out of the create request.
    """
    first_name = models.TextField(blank=True, default="")
    last_name = models.TextField(blank=True, default="")
    address = models.TextField(blank=True, default="")
    phone = models.TextField(blank=True, default="")
    email = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "patients"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name} ({self.id})".strip()
