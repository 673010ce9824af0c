# domains/shipments/adapters/ship24.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from django.conf import settings

from ..errors import ConfigurationError, NetworkError, NotFoundError, RateLimitedError, UpstreamError
from ..types import RawTrackingResult, RegistrationResult
from .base import TrackingAggregator

logger = logging.getLogger(__name__)

SHIP24_API_BASE = "https://api.ship24.com/public/v1"


@dataclass(frozen=True)
class Ship24Config:
    api_key: str = ""
    base_url: str = SHIP24_API_BASE
    timeout: float = 10.0

    @classmethod
    def from_settings(cls) -> "Ship24Config":
        return cls(
            api_key=getattr(settings, "SHIP24_API_KEY", "") or "",
            base_url=(getattr(settings, "SHIP24_API_BASE", "") or SHIP24_API_BASE).rstrip("/"),
            timeout=float(getattr(settings, "SHIP24_TIMEOUT", 10) or 10),
        )


class Ship24Client(TrackingAggregator):
    """
    Ship24 Tracking API 연동
      - POST /trackers/track            : 등록 + 현재 결과 (이미 있으면 200, 신규면 201)
      - GET  /trackers/{id}/results     : 기존 tracker 결과 조회
    """

    def __init__(self, config: Ship24Config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.config.api_key:
            raise ConfigurationError("Ship24 API key not configured")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> requests.Response:
        headers = self._headers()
        url = f"{self.config.base_url}{path}"
        try:
            res = self.session.request(method, url, headers=headers, json=json, timeout=self.config.timeout)
        except requests.Timeout as e:
            logger.warning("Ship24 timeout: %s %s", method, path)
            raise NetworkError(f"Ship24 request timed out: {e}") from e
        except requests.RequestException as e:
            logger.warning("Ship24 request error: %s %s (%s)", method, path, e)
            raise NetworkError(f"Ship24 request failed: {e}") from e

        if not (200 <= res.status_code < 300):
            self._raise_for_status(res)
        return res

    @staticmethod
    def _error_message(res: requests.Response) -> str:
        try:
            body = res.json()
        except ValueError:
            return (res.text or "")[:500]
        errors = body.get("errors") if isinstance(body, dict) else None
        if isinstance(errors, list) and errors:
            return "; ".join(
                str((e.get("message") or e.get("code") or e) if isinstance(e, dict) else e) for e in errors if e
            )
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return (res.text or "")[:500]

    def _raise_for_status(self, res: requests.Response) -> None:
        message = self._error_message(res)
        logger.warning("Ship24 non-2xx: %s %s", res.status_code, message)
        if res.status_code == 404:
            raise NotFoundError(message or "tracker not found")
        if res.status_code == 429:
            retry_after = res.headers.get("Retry-After")
            raise RateLimitedError(
                message or "rate limit exceeded",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        raise UpstreamError(res.status_code, message)

    @staticmethod
    def _first_tracking(res: requests.Response) -> Dict[str, Any]:
        try:
            body = res.json()
        except ValueError as e:
            raise UpstreamError(res.status_code, "invalid JSON from Ship24") from e
        data = body.get("data") if isinstance(body, dict) else None
        trackings = data.get("trackings") if isinstance(data, dict) else None
        if not isinstance(trackings, list) or not trackings or not isinstance(trackings[0], dict):
            raise UpstreamError(res.status_code, "Ship24 response has no tracking")
        return trackings[0]

    @staticmethod
    def _tracker_id(tracking: Dict[str, Any], fallback: str = "") -> str:
        tracker = tracking.get("tracker") or {}
        return str(tracker.get("trackerId") or fallback)

    def create_or_track(self, tracking_number: str, reference: Optional[str] = None) -> RegistrationResult:
        body: Dict[str, Any] = {"trackingNumber": tracking_number}
        if reference:
            body["shipmentReference"] = reference

        logger.info("Ship24 create/track: %s", tracking_number)
        res = self._request("POST", "/trackers/track", json=body)
        tracking = self._first_tracking(res)
        tracker_id = self._tracker_id(tracking)
        if not tracker_id:
            raise UpstreamError(res.status_code, "Ship24 response has no trackerId")
        return RegistrationResult(tracker_id=tracker_id, payload=tracking, created=res.status_code == 201)

    def fetch_results(self, tracker_id: str) -> RawTrackingResult:
        logger.info("Ship24 fetch results: %s", tracker_id)
        res = self._request("GET", f"/trackers/{tracker_id}/results")
        tracking = self._first_tracking(res)
        return RawTrackingResult(tracker_id=self._tracker_id(tracking, tracker_id), payload=tracking)
