# domains/shipments/services.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Union

from django.conf import settings
from django.db import close_old_connections

from . import carriers
from .adapters import get_client
from .adapters.base import TrackingAggregator
from .errors import ConfigurationError, NotFoundError
from .models import Shipment
from .skip_rules import SkipRules, rules_from_settings, should_skip
from .status_map import normalize
from .stores import DjangoShipmentStore, ShipmentStore
from .types import RawTrackingResult, ShipmentRef, Skipped, SyncOutcome, TrackingSnapshot

logger = logging.getLogger(__name__)

SyncResult = Union[TrackingSnapshot, Skipped]


class TrackingSyncService:
    """
    배송 1건 동기화.
      1) 스킵 대상이면 네트워크 없이 Skipped
      2) tracker 있으면 fetch → NotFoundError 면 3)으로 (재등록)
      3) tracker 없으면 create_or_track (응답에 현재 데이터 포함 → 추가 fetch 없음)
      4) normalize → 저장 → 반환
    """

    def __init__(self, client: TrackingAggregator, store: ShipmentStore, skip_rules: Optional[SkipRules] = None):
        self.client = client
        self.store = store
        self.skip_rules = skip_rules or SkipRules()

    def sync(self, shipment: ShipmentRef) -> SyncResult:
        identifier = (shipment.tracking_number or "").strip()
        if should_skip(identifier, self.skip_rules):
            logger.debug("skip tracking for shipment %s (%r)", shipment.id, identifier)
            return Skipped(
                shipment_id=str(shipment.id),
                tracking_url=carriers.tracking_url(identifier),
                carrier=carriers.carrier_name(identifier),
            )

        raw: Optional[RawTrackingResult] = None
        if shipment.tracker_id:
            try:
                raw = self.client.fetch_results(shipment.tracker_id)
            except NotFoundError:
                logger.info(
                    "tracker %s expired upstream, re-registering shipment %s",
                    shipment.tracker_id,
                    shipment.id,
                )
            else:
                if raw.tracking_number and raw.tracking_number != identifier:
                    # 등록 후 번호가 바뀐 경우: 정책 미정이라 경고만 남김
                    logger.warning(
                        "shipment %s tracker %s belongs to %r but record has %r",
                        shipment.id,
                        shipment.tracker_id,
                        raw.tracking_number,
                        identifier,
                    )

        if raw is None:
            raw = self.client.create_or_track(identifier, shipment.reference)

        snapshot = normalize(raw.payload)
        new_tracker_id = raw.tracker_id if raw.tracker_id and raw.tracker_id != shipment.tracker_id else None
        self.store.save_snapshot(shipment.id, snapshot, new_tracker_id)
        logger.info(
            "synced shipment %s: %s (%d checkpoints)",
            shipment.id,
            snapshot.canonical_status.value,
            len(snapshot.checkpoints),
        )
        return snapshot


class BatchRefresher:
    """
    소유자의 진행중 배송 전체 갱신. 건별 실패는 결과에 담고 계속 진행.
    ConfigurationError 만 배치 전체를 중단시킨다 (대기중인 건은 시작하지 않음).
    """

    def __init__(self, service: TrackingSyncService, store: ShipmentStore, max_workers: int = 1):
        self.service = service
        self.store = store
        self.max_workers = max(int(max_workers or 1), 1)
        # 워커 간 공유 중단 플래그. refresh_all 마다 초기화
        self.aborted = threading.Event()

    @staticmethod
    def _is_candidate(s: ShipmentRef) -> bool:
        return bool((s.tracking_number or "").strip()) and not s.delivered

    def _sync_one(self, shipment: ShipmentRef) -> Optional[SyncOutcome]:
        if self.aborted.is_set():
            return None
        try:
            result = self.service.sync(shipment)
        except ConfigurationError:
            self.aborted.set()
            raise
        except Exception as e:
            logger.warning("failed to sync tracking for shipment %s: %s", shipment.id, e)
            return SyncOutcome(shipment_id=str(shipment.id), error=e)
        if isinstance(result, Skipped):
            return SyncOutcome(shipment_id=str(shipment.id), skipped=result)
        return SyncOutcome(shipment_id=str(shipment.id), snapshot=result)

    def _sync_in_worker(self, shipment: ShipmentRef) -> Optional[SyncOutcome]:
        # 워커 스레드마다 DB 커넥션이 따로 열리므로 끝나면 정리
        try:
            return self._sync_one(shipment)
        finally:
            close_old_connections()

    def refresh_all(self, owner_id) -> List[SyncOutcome]:
        self.aborted.clear()
        candidates = [s for s in self.store.load_candidates(owner_id) if self._is_candidate(s)]
        logger.info("refreshing %d shipments for owner %s", len(candidates), owner_id)

        if self.max_workers == 1 or len(candidates) <= 1:
            return [self._sync_one(s) for s in candidates]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(candidates))) as pool:
            futures = [pool.submit(self._sync_in_worker, s) for s in candidates]
            try:
                # 제출 순서대로 결과 수집
                return [f.result() for f in futures]
            except ConfigurationError:
                logger.error("batch refresh for owner %s aborted: configuration error", owner_id)
                pool.shutdown(wait=False, cancel_futures=True)
                raise


# === 기본 구성 (settings 기반) ===============================================
def build_service(client: Optional[TrackingAggregator] = None, store: Optional[ShipmentStore] = None) -> TrackingSyncService:
    return TrackingSyncService(
        client=client or get_client(),
        store=store or DjangoShipmentStore(),
        skip_rules=rules_from_settings(),
    )


def build_refresher(
    client: Optional[TrackingAggregator] = None,
    store: Optional[ShipmentStore] = None,
    max_workers: Optional[int] = None,
) -> BatchRefresher:
    store = store or DjangoShipmentStore()
    cap = int(getattr(settings, "SHIPMENTS_BATCH_MAX_WORKERS", 1) or 1)
    workers = cap if max_workers is None else min(max_workers, cap)
    return BatchRefresher(build_service(client, store), store, max_workers=workers)


def sync_shipment(shipment_id, client: Optional[TrackingAggregator] = None) -> Optional[SyncResult]:
    """단건 동기화 진입점. 레코드가 없으면 None."""
    store = DjangoShipmentStore()
    ref = store.get(shipment_id)
    if ref is None:
        return None
    return build_service(client, store).sync(ref)


def refresh_owner_shipments(owner_id, client: Optional[TrackingAggregator] = None) -> List[SyncOutcome]:
    return build_refresher(client).refresh_all(owner_id)
# ============================================================================


def attach_tracking(shipment, tracking_number: str, *, reference: Optional[str] = None, client=None) -> SyncResult:
    """
    Shipment 에 운송장을 붙이고 즉시 등록/동기화.
    번호가 바뀌면 캐시된 tracker 는 버린다(다른 번호의 tracker 이므로).
    """
    tracking_number = (tracking_number or "").strip()
    update_fields = []
    if shipment.tracking_number != tracking_number:
        shipment.tracking_number = tracking_number
        shipment.tracker_id = None
        shipment.delivered = False
        update_fields += ["tracking_number", "tracker_id", "delivered"]
    if reference is not None and shipment.reference != reference:
        shipment.reference = reference
        update_fields.append("reference")
    if update_fields:
        shipment.save(update_fields=update_fields + ["updated_at"])
    return sync_shipment(shipment.id, client=client)


def _iter_webhook_trackings(payload: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    trackings = (payload or {}).get("trackings")
    if trackings is None and isinstance((payload or {}).get("data"), dict):
        trackings = payload["data"].get("trackings")
    for t in trackings or []:
        if isinstance(t, dict):
            yield t


def apply_webhook(payload: Dict[str, Any], store: Optional[ShipmentStore] = None) -> int:
    """
    Ship24 웹훅 → tracker id / 운송장 번호로 Shipment 찾아 스냅샷 저장.
    반환: 갱신된 Shipment 수
    """
    store = store or DjangoShipmentStore()
    updated = 0
    for tracking in _iter_webhook_trackings(payload):
        tracker = tracking.get("tracker") or {}
        tracker_id = str(tracker.get("trackerId") or "")
        tracking_number = str(tracker.get("trackingNumber") or "")
        if not (tracker_id or tracking_number):
            continue

        qs = Shipment.objects.none()
        if tracker_id:
            qs = Shipment.objects.filter(tracker_id=tracker_id)
        if not qs.exists() and tracking_number:
            qs = Shipment.objects.filter(tracking_number=tracking_number)
        ids = list(qs.values_list("id", flat=True))
        if not ids:
            logger.info("no shipment for webhook tracker=%s number=%s", tracker_id, tracking_number)
            continue

        snapshot = normalize(tracking)
        for sid in ids:
            store.save_snapshot(sid, snapshot, tracker_id or None)
            updated += 1
    return updated
