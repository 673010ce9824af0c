# domains/shipments/tasks.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from celery import shared_task

from .errors import NetworkError, RateLimitedError

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(NetworkError, RateLimitedError), max_retries=3,
             retry_backoff=True, retry_jitter=True, acks_late=True,
             name="domains.shipments.tasks.sync_shipment")
def sync_shipment(self, shipment_id: str) -> Optional[Dict[str, Any]]:
    """
    단일 배송 동기화 (등록 or 조회 → 정규화 → 저장)
    반환: 스냅샷 dict / 스킵이면 {"skipped": True, ...} / 레코드 없으면 None
    """
    from .services import sync_shipment as _sync
    from .types import Skipped

    result = _sync(shipment_id)
    if result is None:
        logger.info("sync_shipment: shipment %s not found", shipment_id)
        return None
    if isinstance(result, Skipped):
        return {"skipped": True, "tracking_url": result.tracking_url}
    return result.to_dict()


@shared_task(name="domains.shipments.tasks.refresh_owner_shipments")
def refresh_owner_shipments(owner_id) -> Dict[str, Any]:
    """
    소유자 진행중 배송 일괄 갱신. 건별 결과(성공/실패)를 그대로 돌려준다.
    """
    from .services import refresh_owner_shipments as _refresh

    outcomes = _refresh(owner_id)
    failed = [o for o in outcomes if not o.ok]
    if failed:
        logger.warning("owner %s: %d/%d shipments failed to sync", owner_id, len(failed), len(outcomes))
    return {
        "owner_id": str(owner_id),
        "total": len(outcomes),
        "failed": len(failed),
        "results": [o.to_dict() for o in outcomes],
    }


@shared_task(name="domains.shipments.tasks.poll_in_flight_shipments")
def poll_in_flight_shipments() -> int:
    """
    진행중 배송이 있는 소유자별로 배치 갱신 태스크 분기
    반환: 분기한 소유자 수
    """
    from .models import Shipment

    owner_ids = (
        Shipment.objects.in_flight()
        .order_by()
        .values_list("owner_id", flat=True)
        .distinct()
    )
    count = 0
    for owner_id in owner_ids.iterator():
        refresh_owner_shipments.delay(owner_id)
        count += 1
    return count
