from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path, re_path
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from domains.shipments.views import Ship24WebhookAPI


def healthz(_):
    return JsonResponse({"ok": True})


urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),

    # OpenAPI / Swagger
    path("api/schema/", SpectacularAPIView.as_view(), name="v1-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="v1-schema"), name="docs"),

    # 슬래시 없는 접근 → 슬래시 있는 경로로 301 정규화
    re_path(r"^api/schema$", RedirectView.as_view(url="/api/schema/", permanent=True)),
    re_path(r"^api/docs$", RedirectView.as_view(url="/api/docs/", permanent=True)),

    # API v1 엔드포인트
    path("api/v1/", include("api.v1.urls")),

    # 웹훅 (Ship24 콘솔에 등록하는 짧은 경로)
    path("api/v1/webhooks/ship24/", Ship24WebhookAPI.as_view(), name="ship24-webhook-root"),

    # 루트 → 문서
    path("", RedirectView.as_view(url="/api/docs/", permanent=False)),

    # 헬스체크
    path("healthz/", healthz),
]
