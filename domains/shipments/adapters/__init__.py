# domains/shipments/adapters/__init__.py
from .base import TrackingAggregator
from .ship24 import Ship24Client, Ship24Config


def get_client() -> TrackingAggregator:
    """settings 기반 기본 애그리게이터 클라이언트 생성."""
    return Ship24Client(Ship24Config.from_settings())


__all__ = ["get_client", "Ship24Client", "Ship24Config", "TrackingAggregator"]
