# domains/shipments/status_map.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .types import Checkpoint, TrackingSnapshot, TrackingStatus

# 애그리게이터 milestone → 정규 상태. 여기 없는 값은 전부 Pending.
MILESTONE_TO_STATUS: Dict[str, TrackingStatus] = {
    "pending": TrackingStatus.PENDING,
    "info_received": TrackingStatus.INFO_RECEIVED,
    "in_transit": TrackingStatus.IN_TRANSIT,
    "out_for_delivery": TrackingStatus.OUT_FOR_DELIVERY,
    "failed_attempt": TrackingStatus.ATTEMPT_FAIL,
    "attempt_fail": TrackingStatus.ATTEMPT_FAIL,
    "available_for_pickup": TrackingStatus.AVAILABLE_FOR_PICKUP,
    "delivered": TrackingStatus.DELIVERED,
    "exception": TrackingStatus.EXCEPTION,
    "expired": TrackingStatus.EXPIRED,
}
# 정규 태그 자체("InTransit" 등)가 넘어와도 그대로 인정
MILESTONE_TO_STATUS.update({s.value.lower(): s for s in TrackingStatus})


def map_milestone(milestone: Any) -> TrackingStatus:
    s = str(milestone or "").strip().lower().replace("-", "_").replace(" ", "_")
    return MILESTONE_TO_STATUS.get(s, TrackingStatus.PENDING)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _events(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    events = raw.get("events")
    if not isinstance(events, list):
        return []
    return [e for e in events if isinstance(e, dict)]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _location_parts(event: Dict[str, Any]) -> Dict[str, Optional[str]]:
    loc = event.get("location")
    if isinstance(loc, dict):
        return {
            "city": _text(loc.get("city")),
            "state": _text(loc.get("state")),
            "country": _text(loc.get("country") or loc.get("countryCode")),
        }
    # 문자열 location("MEMPHIS, TN, US")은 city 자리에 그대로
    return {
        "city": _text(loc) or _text(event.get("city")),
        "state": _text(event.get("state")),
        "country": _text(event.get("country") or event.get("countryCode")),
    }


def _checkpoint(event: Dict[str, Any]) -> Checkpoint:
    parts = _location_parts(event)
    return Checkpoint(
        time=_text(event.get("occurrenceDatetime") or event.get("datetime") or event.get("time")),
        message=_text(event.get("status") or event.get("message")),
        city=parts["city"],
        state=parts["state"],
        country=parts["country"],
        milestone=_text(event.get("statusMilestone") or event.get("milestone")),
        code=_text(event.get("statusCode") or event.get("code")),
    )


def _parse_eta(value: Any) -> Optional[date]:
    s = _text(value)
    if not s:
        return None
    try:
        dt = parse_datetime(s)
        if dt:
            return dt.date()
        return parse_date(s[:10])
    except ValueError:
        return None


def normalize(raw: Optional[Dict[str, Any]]) -> TrackingSnapshot:
    """
    애그리게이터 원본 → TrackingSnapshot. 어떤 입력이든 예외 없이 스냅샷을 만든다.
    events 는 최신순 그대로 유지(재정렬 금지).
    """
    raw = _as_dict(raw)
    shipment = _as_dict(raw.get("shipment"))
    events = _events(raw)
    latest = events[0] if events else {}

    milestone = shipment.get("statusMilestone") or latest.get("statusMilestone") or latest.get("milestone")
    checkpoints = tuple(_checkpoint(e) for e in events)

    location = None
    if checkpoints:
        location = checkpoints[0].city or checkpoints[0].country

    return TrackingSnapshot(
        canonical_status=map_milestone(milestone),
        sub_status=_text(shipment.get("statusCode") or latest.get("statusCode")),
        location=location,
        estimated_delivery=_parse_eta(_as_dict(shipment.get("delivery")).get("estimatedDeliveryDate")),
        last_updated=timezone.now(),
        checkpoints=checkpoints,
    )
