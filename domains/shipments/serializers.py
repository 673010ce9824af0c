from __future__ import annotations

from rest_framework import serializers

from . import carriers
from .models import Shipment
from .skip_rules import SkipRules


# ---------------------------
# 출력용: ShipmentSerializer
# ---------------------------
class ShipmentSerializer(serializers.ModelSerializer):
    carrier = serializers.SerializerMethodField()
    tracking_url = serializers.SerializerMethodField()

    class Meta:
        model = Shipment
        fields = (
            "id",
            "reference",
            "tracking_number",
            "carrier",
            "tracking_url",
            "tracker_id",
            "delivered",
            "tracking_status",
            "tracking_substatus",
            "tracking_location",
            "tracking_eta",
            "tracking_updated_at",
            "tracking_checkpoints",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_carrier(self, obj):
        return carriers.carrier_name(obj.tracking_number)

    def get_tracking_url(self, obj):
        return carriers.tracking_url(obj.tracking_number)


# ---------------------------
# 입력용: 운송장 등록 요청
# URL 은 API 트래킹 대상이 아니므로 거부
# ---------------------------
class AttachTrackingSerializer(serializers.Serializer):
    shipment_id = serializers.UUIDField()
    tracking_number = serializers.CharField(max_length=255)
    reference = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def validate_tracking_number(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("tracking_number is required.")
        if SkipRules().looks_like_url(value):
            raise serializers.ValidationError("URL tracking links are not supported for API tracking.")
        return value


# ---------------------------
# 배치 결과 1건
# ---------------------------
class SyncOutcomeSerializer(serializers.Serializer):
    shipment_id = serializers.CharField()
    ok = serializers.BooleanField()
    tracking = serializers.DictField(required=False)
    skipped = serializers.BooleanField(required=False)
    tracking_url = serializers.CharField(required=False, allow_null=True)
    error = serializers.DictField(required=False)


class BatchRefreshResponseSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    updated = serializers.IntegerField()
    failed = serializers.IntegerField()
    results = SyncOutcomeSerializer(many=True)


# ---------------------------
# (웹훅) Ship24 입력: trackings 리스트만 느슨하게 확인
#   {"trackings": [...]} 또는 {"data": {"trackings": [...]}} 둘 다 허용
# ---------------------------
class Ship24WebhookSerializer(serializers.Serializer):
    trackings = serializers.ListField(
        child=serializers.DictField(),
        required=False,
        allow_empty=True,
    )
    data = serializers.DictField(required=False)
