# domains/shipments/types.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from django.db import models


class TrackingStatus(models.TextChoices):
    """정규화된 9개 상태값 (DB 저장값 = 라벨 없는 CamelCase 태그)"""

    PENDING = "Pending", "Pending"
    INFO_RECEIVED = "InfoReceived", "Label Created"
    IN_TRANSIT = "InTransit", "In Transit"
    OUT_FOR_DELIVERY = "OutForDelivery", "Out for Delivery"
    ATTEMPT_FAIL = "AttemptFail", "Delivery Failed"
    DELIVERED = "Delivered", "Delivered"
    AVAILABLE_FOR_PICKUP = "AvailableForPickup", "Ready for Pickup"
    EXCEPTION = "Exception", "Exception"
    EXPIRED = "Expired", "Expired"


@dataclass(frozen=True)
class Checkpoint:
    time: Optional[str]
    message: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    milestone: Optional[str]
    code: Optional[str]


@dataclass(frozen=True)
class TrackingSnapshot:
    canonical_status: TrackingStatus
    last_updated: datetime
    sub_status: Optional[str] = None
    location: Optional[str] = None
    estimated_delivery: Optional[date] = None
    checkpoints: Tuple[Checkpoint, ...] = ()

    @property
    def is_delivered(self) -> bool:
        return self.canonical_status == TrackingStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracking_status": str(self.canonical_status.value),
            "tracking_substatus": self.sub_status,
            "tracking_location": self.location,
            "tracking_eta": self.estimated_delivery.isoformat() if self.estimated_delivery else None,
            "tracking_updated_at": self.last_updated.isoformat(),
            "tracking_checkpoints": [asdict(c) for c in self.checkpoints],
        }


@dataclass(frozen=True)
class ShipmentRef:
    """엔진이 보는 최소한의 배송 레코드"""

    id: str
    tracking_number: str
    tracker_id: Optional[str] = None
    reference: Optional[str] = None
    delivered: bool = False


@dataclass(frozen=True)
class RawTrackingResult:
    """애그리게이터 원본 payload (tracker/shipment/events) 그대로"""

    tracker_id: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def tracking_number(self) -> Optional[str]:
        tracker = self.payload.get("tracker") or {}
        return tracker.get("trackingNumber")


@dataclass(frozen=True)
class RegistrationResult(RawTrackingResult):
    # 201(신규) / 200(기존 tracker 재사용)
    created: bool = False


@dataclass(frozen=True)
class Skipped:
    """트래킹 대상이 아님 (URL, 제외 캐리어 등). 오류가 아니라 no-op 결과."""

    shipment_id: str
    tracking_url: Optional[str] = None
    carrier: Optional[str] = None


@dataclass(frozen=True)
class SyncOutcome:
    """배치 결과 1건: snapshot / skipped / error 중 하나"""

    shipment_id: str
    snapshot: Optional[TrackingSnapshot] = None
    skipped: Optional[Skipped] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"shipment_id": str(self.shipment_id), "ok": self.ok}
        if self.snapshot is not None:
            out["tracking"] = self.snapshot.to_dict()
        if self.skipped is not None:
            out["skipped"] = True
            out["tracking_url"] = self.skipped.tracking_url
        if self.error is not None:
            out["error"] = {
                "type": type(self.error).__name__,
                "message": str(self.error),
                "status_code": getattr(self.error, "status_code", None),
            }
        return out
