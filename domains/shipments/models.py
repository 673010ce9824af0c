from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models

from .types import TrackingStatus


class ShipmentQuerySet(models.QuerySet):
    def in_flight(self):
        """운송장이 있고 아직 배송완료 전인 건"""
        return (
            self.filter(delivered=False)
            .exclude(tracking_number__isnull=True)
            .exclude(tracking_number="")
        )


class Shipment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="shipments"
    )
    # 애그리게이터 쪽에 표시될 이름 (부품명 등)
    reference = models.CharField(max_length=200, blank=True)
    tracking_number = models.CharField(max_length=255, blank=True)
    tracker_id = models.CharField(max_length=64, null=True, blank=True)

    delivered = models.BooleanField(default=False)

    tracking_status = models.CharField(
        max_length=24,
        choices=TrackingStatus.choices,
        null=True,
        blank=True,
    )
    tracking_substatus = models.CharField(max_length=64, null=True, blank=True)
    tracking_location = models.CharField(max_length=200, null=True, blank=True)
    tracking_eta = models.DateField(null=True, blank=True)
    tracking_updated_at = models.DateTimeField(null=True, blank=True)
    tracking_checkpoints = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShipmentQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "delivered"], name="shipments_owner_deliv_idx"),
            models.Index(fields=["tracking_number"], name="shipments_tracking_no_idx"),
            models.Index(fields=["tracker_id"], name="shipments_tracker_id_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.reference or self.id}:{self.tracking_number}"
