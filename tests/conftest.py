# tests/conftest.py
import itertools
from uuid import uuid4

from django.contrib.auth import get_user_model

import pytest
from rest_framework.test import APIClient

from domains.shipments.adapters.base import TrackingAggregator
from domains.shipments.errors import NotFoundError
from domains.shipments.models import Shipment
from domains.shipments.types import RawTrackingResult, RegistrationResult

User = get_user_model()


# ─────────────────────────────────────────────────────────────
# Ship24 응답 모양 헬퍼
# ─────────────────────────────────────────────────────────────
def ship24_event(
    when="2025-03-02T10:00:00Z",
    status="Arrived at facility",
    milestone="in_transit",
    code="transit_arrival",
    city="Memphis",
    state="TN",
    country="US",
):
    return {
        "occurrenceDatetime": when,
        "status": status,
        "statusMilestone": milestone,
        "statusCode": code,
        "location": {"city": city, "state": state, "country": country},
    }


def ship24_tracking(tracking_number="1Z999AA10123456784", tracker_id="trk-1", milestone=None,
                    status_code=None, events=None, eta=None):
    shipment = {}
    if milestone is not None:
        shipment["statusMilestone"] = milestone
    if status_code is not None:
        shipment["statusCode"] = status_code
    if eta is not None:
        shipment["delivery"] = {"estimatedDeliveryDate": eta}
    return {
        "tracker": {"trackerId": tracker_id, "trackingNumber": tracking_number},
        "shipment": shipment,
        "events": list(events or []),
    }


@pytest.fixture
def make_event():
    return ship24_event


@pytest.fixture
def make_tracking():
    return ship24_tracking


# ─────────────────────────────────────────────────────────────
# 애그리게이터 테스트 더블
#   - 같은 번호로 create 하면 같은 tracker 반환 (멱등 create 가정 고정)
#   - expire() 로 tracker 를 "잊게" 만들 수 있음
# ─────────────────────────────────────────────────────────────
class FakeShip24(TrackingAggregator):
    def __init__(self, milestone="in_transit", events=None):
        self.milestone = milestone
        self.events = events if events is not None else [ship24_event()]
        self._seq = itertools.count(1)
        self.trackers = {}  # tracker_id -> tracking_number
        self.by_number = {}  # tracking_number -> tracker_id
        self.create_calls = []
        self.fetch_calls = []
        self.fail_on = {}  # tracking_number -> Exception

    def _payload(self, tracker_id, number):
        return ship24_tracking(number, tracker_id, milestone=self.milestone, events=self.events)

    def create_or_track(self, tracking_number, reference=None):
        self.create_calls.append((tracking_number, reference))
        if tracking_number in self.fail_on:
            raise self.fail_on[tracking_number]
        created = tracking_number not in self.by_number
        if created:
            tracker_id = f"trk-{next(self._seq)}"
            self.by_number[tracking_number] = tracker_id
            self.trackers[tracker_id] = tracking_number
        tracker_id = self.by_number[tracking_number]
        return RegistrationResult(tracker_id=tracker_id, payload=self._payload(tracker_id, tracking_number), created=created)

    def fetch_results(self, tracker_id):
        self.fetch_calls.append(tracker_id)
        number = self.trackers.get(tracker_id)
        if number is None:
            raise NotFoundError(f"tracker {tracker_id} not found")
        if number in self.fail_on:
            raise self.fail_on[number]
        return RawTrackingResult(tracker_id=tracker_id, payload=self._payload(tracker_id, number))

    def expire(self, tracker_id):
        number = self.trackers.pop(tracker_id)
        self.by_number.pop(number, None)


@pytest.fixture
def make_fake_ship24():
    return FakeShip24


@pytest.fixture
def fake_ship24():
    return FakeShip24()


# ─────────────────────────────────────────────────────────────
# 사용자 & 클라이언트
# ─────────────────────────────────────────────────────────────
@pytest.fixture
def user_factory(db):
    def _make(**kw):
        kw.setdefault("username", f"user_{uuid4().hex[:6]}")
        kw.setdefault("email", f"{kw['username']}@example.com")
        password = kw.pop("password", "Test1234!A")
        return User.objects.create_user(password=password, **kw)

    return _make


@pytest.fixture
def user(user_factory):
    return user_factory()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def shipment_factory(db):
    """
    사용법: shipment_factory(owner, tracking_number="1Z...", tracker_id=None, ...)
    """

    def _make(owner, **kw):
        kw.setdefault("reference", "Front bumper bracket")
        kw.setdefault("tracking_number", "1Z999AA10123456784")
        return Shipment.objects.create(owner=owner, **kw)

    return _make


@pytest.fixture
def use_fake_client(monkeypatch, fake_ship24):
    """services.get_client() 를 FakeShip24 로 교체"""
    monkeypatch.setattr("domains.shipments.services.get_client", lambda: fake_ship24)
    return fake_ship24
