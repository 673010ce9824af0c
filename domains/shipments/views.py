# domains/shipments/views.py
import hmac
import logging

import django_filters as df
from django.conf import settings
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import parsers, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework.views import APIView

from .errors import ConfigurationError, NetworkError, RateLimitedError, UpstreamError
from .models import Shipment
from .serializers import (
    AttachTrackingSerializer,
    BatchRefreshResponseSerializer,
    Ship24WebhookSerializer,
    ShipmentSerializer,
)
from .services import apply_webhook, attach_tracking, refresh_owner_shipments, sync_shipment
from .types import Skipped, TrackingStatus

logger = logging.getLogger(__name__)


def _tracking_error_response(exc: Exception) -> Response:
    """엔진 예외 → HTTP 응답 (호출 계층에서만 사람이 읽을 메시지로 변환)"""
    if isinstance(exc, ConfigurationError):
        return Response({"detail": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, NetworkError):
        return Response({"detail": "upstream timeout"}, status=status.HTTP_504_GATEWAY_TIMEOUT)
    if isinstance(exc, UpstreamError):
        return Response(
            {"detail": exc.message or "upstream error", "status_code": exc.status_code},
            status=status.HTTP_502_BAD_GATEWAY,
        )
    raise exc


def _sync_result_payload(shipment: Shipment, result) -> dict:
    if isinstance(result, Skipped):
        return {
            "tracking_status": "External",
            "tracking_url": result.tracking_url,
            "carrier": result.carrier,
        }
    shipment.refresh_from_db()
    return ShipmentSerializer(shipment).data


class ShipmentFilter(df.FilterSet):
    tracking_status = df.ChoiceFilter(choices=TrackingStatus.choices)
    delivered = df.BooleanFilter()
    tracking_number = df.CharFilter(lookup_expr="icontains")

    class Meta:
        model = Shipment
        fields = ["tracking_status", "delivered", "tracking_number"]


class ShipmentViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ShipmentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ShipmentFilter
    ordering_fields = ["created_at", "tracking_updated_at"]

    def get_queryset(self):
        # 본인 소유분만 (staff 는 전체)
        qs = Shipment.objects.all().order_by("-created_at")
        user = self.request.user
        if not getattr(user, "is_staff", False):
            qs = qs.filter(owner=user)
        return qs

    # --------------------------------------------------------------
    # POST /api/v1/shipments/{id}/refresh/   단건 동기화
    # --------------------------------------------------------------
    @extend_schema(request=None, responses={200: ShipmentSerializer})
    @action(detail=True, methods=["post"], url_path="refresh")
    def refresh(self, request, pk=None):
        shipment = self.get_object()
        if not shipment.tracking_number:
            return Response({"detail": "Shipment has no tracking number"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = sync_shipment(shipment.id)
        except RateLimitedError:
            # 레이트리밋이면 캐시된 스냅샷이라도 돌려줌
            if shipment.tracking_status:
                data = dict(ShipmentSerializer(shipment).data)
                data.update(
                    rate_limited=True,
                    rate_limit_message="API rate limit reached. Showing cached data.",
                )
                return Response(data, status=status.HTTP_200_OK)
            return Response(
                {"detail": "API rate limit reached. Please try again later.", "rate_limited": True},
                status=status.HTTP_429_TOO_MANY_REQUESTS,
            )
        except (ConfigurationError, NetworkError, UpstreamError) as e:
            logger.warning("refresh failed for shipment %s: %s", shipment.id, e)
            return _tracking_error_response(e)

        return Response(_sync_result_payload(shipment, result), status=status.HTTP_200_OK)

    # --------------------------------------------------------------
    # POST /api/v1/shipments/refresh/   진행중 전체 갱신 (건별 결과)
    # --------------------------------------------------------------
    @extend_schema(request=None, responses={200: BatchRefreshResponseSerializer})
    @action(detail=False, methods=["post"], url_path="refresh")
    def refresh_all(self, request):
        try:
            outcomes = refresh_owner_shipments(request.user.pk)
        except ConfigurationError as e:
            logger.error("batch refresh aborted: %s", e)
            return _tracking_error_response(e)

        results = [o.to_dict() for o in outcomes]
        body = {
            "total": len(outcomes),
            "updated": sum(1 for o in outcomes if o.snapshot is not None),
            "failed": sum(1 for o in outcomes if not o.ok),
            "results": results,
        }
        return Response(body, status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# POST /api/v1/shipments/track/
# body: {shipment_id, tracking_number, reference?} → 등록 + 즉시 동기화
# --------------------------------------------------------------------
class AttachTrackingAPI(APIView):
    parser_classes = [parsers.JSONParser]
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(request=AttachTrackingSerializer, responses={200: ShipmentSerializer})
    def post(self, request):
        ser = AttachTrackingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        qs = Shipment.objects.all()
        if not request.user.is_staff:
            qs = qs.filter(owner=request.user)
        shipment = get_object_or_404(qs, pk=ser.validated_data["shipment_id"])

        try:
            result = attach_tracking(
                shipment,
                ser.validated_data["tracking_number"],
                reference=ser.validated_data.get("reference"),
            )
        except (ConfigurationError, NetworkError, UpstreamError) as e:
            logger.warning("tracking registration failed for shipment %s: %s", shipment.id, e)
            return _tracking_error_response(e)

        return Response(_sync_result_payload(shipment, result), status=status.HTTP_200_OK)


# --------------------------------------------------------------------
# POST /api/v1/shipments/webhooks/ship24/
#  Authorization: Bearer <SHIP24_WEBHOOK_SECRET>
# --------------------------------------------------------------------
class Ship24WebhookAPI(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    parser_classes = [parsers.JSONParser]

    @staticmethod
    def _verified(request) -> bool:
        secret = getattr(settings, "SHIP24_WEBHOOK_SECRET", "") or ""
        if not secret:
            logger.warning("SHIP24_WEBHOOK_SECRET not configured, skipping verification")
            return True
        header = request.headers.get("Authorization", "")
        token = header[7:] if header.startswith("Bearer ") else header
        return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))

    @extend_schema(request=Ship24WebhookSerializer, responses={200: dict})
    def post(self, request):
        if not self._verified(request):
            logger.error("Invalid Ship24 webhook signature")
            return Response({"detail": "Invalid signature"}, status=status.HTTP_401_UNAUTHORIZED)

        ser = Ship24WebhookSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        updated = apply_webhook(ser.validated_data)
        return Response({"updated": updated}, status=status.HTTP_200_OK)

    def get(self, request):
        # 헬스체크
        return Response({"status": "ok", "message": "Ship24 webhook endpoint is active"})
