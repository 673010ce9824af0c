from typing import Optional

from ..types import RawTrackingResult, RegistrationResult


class TrackingAggregator:
    """
    트래킹 애그리게이터 클라이언트의 최소 공통 인터페이스
    (테스트 더블도 이 두 메서드만 맞추면 됨)
    """

    def create_or_track(self, tracking_number: str, reference: Optional[str] = None) -> RegistrationResult:
        """
        운송장 등록. 같은 번호로 다시 불러도 같은 tracker 를 돌려줘야 한다(멱등).
        응답에 현재 트래킹 데이터가 같이 온다.
        """
        raise NotImplementedError

    def fetch_results(self, tracker_id: str) -> RawTrackingResult:
        """
        기존 tracker 의 현재 상태 조회.
        모르는 tracker 이면 NotFoundError.
        """
        raise NotImplementedError
