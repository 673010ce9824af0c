from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import AttachTrackingAPI, Ship24WebhookAPI, ShipmentViewSet

app_name = "shipments"

router = SimpleRouter(trailing_slash=True)
router.register(r"", ShipmentViewSet, basename="shipment")

urlpatterns = [
    # 정적(POST) 엔드포인트들: 라우터보다 먼저, 트레일링 슬래시 필수!
    path("track/", AttachTrackingAPI.as_view(), name="shipment-track"),
    path("webhooks/ship24/", Ship24WebhookAPI.as_view(), name="shipment-webhook-ship24"),
] + router.urls
