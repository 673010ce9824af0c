from __future__ import annotations

import json

from django.contrib import admin, messages
from django.utils.html import format_html

from . import carriers, models
from .errors import TrackingError
from .services import sync_shipment
from .types import Skipped


@admin.register(models.Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "owner_display",
        "reference",
        "tracking_number",
        "carrier_display",
        "tracking_status",
        "delivered",
        "tracking_updated_at",
        "created_at",
    )
    list_filter = ("tracking_status", "delivered")
    search_fields = ("id", "tracking_number", "tracker_id", "reference")
    readonly_fields = (
        "id",
        "tracker_id",
        "tracking_status",
        "tracking_substatus",
        "tracking_location",
        "tracking_eta",
        "tracking_updated_at",
        "checkpoints_display",
        "created_at",
        "updated_at",
    )
    exclude = ("tracking_checkpoints",)
    ordering = ("-created_at",)
    actions = ["refresh_tracking"]

    def owner_display(self, obj):
        u = obj.owner
        return getattr(u, "email", None) or getattr(u, "username", None) or str(u)
    owner_display.short_description = "Owner"

    def carrier_display(self, obj):
        return carriers.carrier_name(obj.tracking_number) or "-"
    carrier_display.short_description = "Carrier"

    def checkpoints_display(self, obj):
        if not obj.tracking_checkpoints:
            return "-"
        return format_html(
            "<pre style='white-space:pre-wrap'>{}</pre>",
            json.dumps(obj.tracking_checkpoints, ensure_ascii=False, indent=2),
        )
    checkpoints_display.short_description = "Checkpoints"

    @admin.action(description="Refresh tracking from Ship24")
    def refresh_tracking(self, request, queryset):
        ok = skipped = failed = 0
        for shipment in queryset:
            try:
                result = sync_shipment(shipment.id)
            except TrackingError as e:
                failed += 1
                self.message_user(request, f"{shipment}: {e}", level=messages.WARNING)
                continue
            if isinstance(result, Skipped):
                skipped += 1
            else:
                ok += 1
        self.message_user(request, f"refreshed={ok} skipped={skipped} failed={failed}")
