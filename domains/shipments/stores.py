# domains/shipments/stores.py
from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List, Optional, Protocol

from django.db import transaction
from django.utils import timezone

from .models import Shipment
from .types import ShipmentRef, TrackingSnapshot


class ShipmentStore(Protocol):
    """엔진이 쓰는 레코드 저장소 인터페이스 (구현은 바깥 책임)"""

    def load_candidates(self, owner_id) -> List[ShipmentRef]: ...

    def get(self, shipment_id) -> Optional[ShipmentRef]: ...

    def get_registration(self, shipment_id) -> Optional[str]: ...

    def save_snapshot(self, shipment_id, snapshot: TrackingSnapshot, tracker_id: Optional[str] = None) -> None: ...


def _to_ref(obj) -> ShipmentRef:
    return ShipmentRef(
        id=str(obj.id),
        tracking_number=obj.tracking_number or "",
        tracker_id=obj.tracker_id or None,
        reference=obj.reference or None,
        delivered=bool(obj.delivered),
    )


class DjangoShipmentStore:
    """Shipment 모델 기반 저장소"""

    def load_candidates(self, owner_id) -> List[ShipmentRef]:
        qs = Shipment.objects.in_flight().filter(owner_id=owner_id).order_by("created_at")
        return [_to_ref(s) for s in qs]

    def get(self, shipment_id) -> Optional[ShipmentRef]:
        obj = Shipment.objects.filter(id=shipment_id).first()
        return _to_ref(obj) if obj else None

    def get_registration(self, shipment_id) -> Optional[str]:
        return (
            Shipment.objects.filter(id=shipment_id).values_list("tracker_id", flat=True).first()
            or None
        )

    @transaction.atomic
    def save_snapshot(self, shipment_id, snapshot: TrackingSnapshot, tracker_id: Optional[str] = None) -> None:
        data = snapshot.to_dict()
        fields = {
            "tracking_status": data["tracking_status"],
            "tracking_substatus": data["tracking_substatus"],
            "tracking_location": data["tracking_location"],
            "tracking_eta": snapshot.estimated_delivery,
            "tracking_updated_at": snapshot.last_updated,
            "tracking_checkpoints": data["tracking_checkpoints"],
        }
        if tracker_id:
            fields["tracker_id"] = tracker_id
        # 배송완료 스냅샷이면 레코드도 delivered 처리 (다음 배치 대상에서 빠짐)
        if snapshot.is_delivered:
            fields["delivered"] = True

        # update() 는 auto_now 를 안 건드리므로 직접. 단일 UPDATE 라 행 잠금은 DB 가 처리
        fields["updated_at"] = timezone.now()
        Shipment.objects.filter(id=shipment_id).update(**fields)


class InMemoryShipmentStore:
    """dict 기반 저장소 (테스트/스크립트용). 키 단위 락."""

    def __init__(self, shipments: Optional[List[ShipmentRef]] = None, owners: Optional[Dict[str, object]] = None):
        self._rows: Dict[str, ShipmentRef] = {}
        self._owners: Dict[str, object] = dict(owners or {})
        self.snapshots: Dict[str, TrackingSnapshot] = {}
        self._lock = threading.Lock()
        for s in shipments or []:
            self._rows[str(s.id)] = s

    def add(self, shipment: ShipmentRef, owner_id=None) -> ShipmentRef:
        with self._lock:
            self._rows[str(shipment.id)] = shipment
            self._owners[str(shipment.id)] = owner_id
        return shipment

    def load_candidates(self, owner_id) -> List[ShipmentRef]:
        with self._lock:
            rows = [
                s
                for sid, s in self._rows.items()
                if self._owners.get(sid) == owner_id
                and (s.tracking_number or "").strip()
                and not s.delivered
            ]
        return rows

    def get(self, shipment_id) -> Optional[ShipmentRef]:
        return self._rows.get(str(shipment_id))

    def get_registration(self, shipment_id) -> Optional[str]:
        row = self._rows.get(str(shipment_id))
        return row.tracker_id if row else None

    def save_snapshot(self, shipment_id, snapshot: TrackingSnapshot, tracker_id: Optional[str] = None) -> None:
        key = str(shipment_id)
        with self._lock:
            self.snapshots[key] = snapshot
            row = self._rows.get(key)
            if row is None:
                return
            if tracker_id:
                row = replace(row, tracker_id=tracker_id)
            if snapshot.is_delivered:
                row = replace(row, delivered=True)
            self._rows[key] = row
