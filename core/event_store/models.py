"""
Front Desk Event Store: Operational Record Model
==================================================
Django-backed storage for the append-only operational log and the
room master list.

RULES (NON-NEGOTIABLE):
- Records are INSERT-only through save()
- Edits are new rows in the same lineage (lineage_root_id, version_no + 1)
- The only in-place transitions are store-level: approval (status) and
  soft deletion (deleted_at), issued as queryset updates by the repository
- (lineage_root_id, version_no) is unique: two writers racing to append
  the same version lose at the database, not in Python

This file contains NO business logic.
"""

import uuid

from django.db import models
from django.utils import timezone


class RecordStatusChoices(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"
    CONVERTED = "converted", "Converted"


class OperationalRecord(models.Model):
    """
    One operational record (booking, payment, housekeeping report, ...).

    Field groups:
        Identity & Lineage
        Classification
        Payload & Money
        Actor
        Temporal
    """

    # ── Identity & Lineage ────────────────────────────────────
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    lineage_root_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Id of the first version. Null on the first version itself.",
    )

    version_no = models.PositiveIntegerField(
        default=1,
        help_text="1-based version counter inside the lineage.",
    )

    # ── Classification ────────────────────────────────────────
    entity_kind = models.CharField(
        max_length=50,
        help_text="Log partition, e.g. front_desk or storekeeper.",
    )

    status = models.CharField(
        max_length=20,
        choices=RecordStatusChoices.choices,
        default=RecordStatusChoices.PENDING,
    )

    # ── Payload & Money ───────────────────────────────────────
    payload = models.JSONField(
        default=dict,
        help_text="Tagged payload; payload['type'] discriminates the record.",
    )

    financial_amount = models.BigIntegerField(default=0)

    # ── Actor ─────────────────────────────────────────────────
    submitted_by = models.CharField(max_length=255, null=True, blank=True)

    # ── Temporal ──────────────────────────────────────────────
    created_at = models.DateTimeField(default=timezone.now)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "frontdesk_operational_record"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["entity_kind", "status"],
                name="idx_rec_kind_status",
            ),
            models.Index(
                fields=["lineage_root_id"],
                name="idx_rec_lineage_root",
            ),
            models.Index(
                fields=["created_at"],
                name="idx_rec_created",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=("lineage_root_id", "version_no"),
                name="uq_rec_lineage_version",
            ),
        ]

    def save(self, *args, **kwargs):
        """GUARD: INSERT only. Edits must append a new version."""
        if not self._state.adding:
            raise PermissionError(
                "Operational records are immutable. "
                "Append a new version instead of updating."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """GUARD: single-row deletes are refused; use the privileged wipe."""
        raise PermissionError(
            "Operational records are not deleted row by row. "
            "Use soft_delete, or the privileged hard_delete wipe."
        )

    def __str__(self):
        return f"[{self.payload.get('type', '?')}] {self.id} v{self.version_no} ({self.status})"


class Room(models.Model):
    """Room master row."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_number = models.CharField(max_length=20)
    room_name = models.CharField(max_length=100, blank=True, default="")
    room_type = models.CharField(max_length=50, blank=True, default="")
    price_per_night = models.BigIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "frontdesk_room"
        ordering = ["room_number"]

    def __str__(self):
        return f"Room {self.room_number}"
