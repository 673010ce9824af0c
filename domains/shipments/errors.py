# domains/shipments/errors.py
from __future__ import annotations

from typing import Optional


class TrackingError(Exception):
    """트래킹 엔진 공통 예외"""


class ConfigurationError(TrackingError):
    """API 키 등 설정 누락. 재시도 무의미 → 배치 전체 중단 대상."""


class NetworkError(TrackingError):
    """타임아웃/연결 실패 등 전송 계층 오류. 나중에 다시 돌리면 됨."""


class UpstreamError(TrackingError):
    """애그리게이터가 2xx 이외를 돌려준 경우 (상태코드/메시지 보존)"""

    def __init__(self, status_code: Optional[int], message: str = ""):
        self.status_code = status_code
        self.message = message or ""
        super().__init__(f"[{status_code}] {self.message}" if status_code else self.message)


class NotFoundError(UpstreamError):
    """등록(tracker)이 애그리게이터 쪽에서 사라짐 → 재등록 신호"""

    def __init__(self, message: str = "tracker not found"):
        super().__init__(404, message)


class RateLimitedError(UpstreamError):
    def __init__(self, message: str = "rate limit exceeded", retry_after: Optional[int] = None):
        super().__init__(429, message)
        self.retry_after = retry_after
