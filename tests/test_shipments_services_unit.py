# tests/test_shipments_services_unit.py
from unittest.mock import MagicMock

import pytest

from domains.shipments.adapters.base import TrackingAggregator
from domains.shipments.errors import ConfigurationError, NetworkError, NotFoundError, UpstreamError
from domains.shipments.services import TrackingSyncService
from domains.shipments.stores import InMemoryShipmentStore
from domains.shipments.types import (
    RawTrackingResult,
    RegistrationResult,
    ShipmentRef,
    Skipped,
    TrackingSnapshot,
    TrackingStatus,
)


def _ref(**kw):
    kw.setdefault("id", "s-1")
    kw.setdefault("tracking_number", "1Z999AA10123456784")
    return ShipmentRef(**kw)


@pytest.fixture
def store():
    return InMemoryShipmentStore()


@pytest.fixture
def mock_client(make_tracking):
    client = MagicMock(spec=TrackingAggregator)
    client.fetch_results.return_value = RawTrackingResult(
        tracker_id="trk-old", payload=make_tracking(tracker_id="trk-old", milestone="in_transit")
    )
    client.create_or_track.return_value = RegistrationResult(
        tracker_id="trk-new", payload=make_tracking(tracker_id="trk-new", milestone="info_received"), created=True
    )
    return client


class TestSkip:
    def test_url_identifier_skips_without_network_or_write(self, mock_client, store):
        svc = TrackingSyncService(mock_client, store)
        result = svc.sync(_ref(tracking_number="https://www.ups.com/track?tracknum=1Z"))

        assert isinstance(result, Skipped)
        assert result.tracking_url == "https://www.ups.com/track?tracknum=1Z"
        mock_client.fetch_results.assert_not_called()
        mock_client.create_or_track.assert_not_called()
        assert store.snapshots == {}

    def test_excluded_carrier_returns_its_own_page(self, mock_client, store):
        result = TrackingSyncService(mock_client, store).sync(_ref(tracking_number="TBA000111222"))
        assert isinstance(result, Skipped)
        assert result.carrier == "Amazon"
        assert "TBA000111222" in result.tracking_url


class TestRegistrationReuse:
    def test_existing_registration_fetches_and_never_creates(self, mock_client, store):
        store.add(_ref(tracker_id="trk-old"))
        snap = TrackingSyncService(mock_client, store).sync(_ref(tracker_id="trk-old"))

        mock_client.fetch_results.assert_called_once_with("trk-old")
        mock_client.create_or_track.assert_not_called()
        assert isinstance(snap, TrackingSnapshot)
        assert snap.canonical_status == TrackingStatus.IN_TRANSIT
        assert store.snapshots["s-1"] is snap
        # tracker 가 그대로면 다시 저장하지 않음
        assert store.get("s-1").tracker_id == "trk-old"

    def test_first_sync_creates_registration_and_persists_it(self, mock_client, store):
        store.add(_ref())
        snap = TrackingSyncService(mock_client, store).sync(_ref(reference="Bumper bracket"))

        mock_client.fetch_results.assert_not_called()
        mock_client.create_or_track.assert_called_once_with("1Z999AA10123456784", "Bumper bracket")
        assert snap.canonical_status == TrackingStatus.INFO_RECEIVED
        assert store.get_registration("s-1") == "trk-new"


class TestSelfHealing:
    def test_not_found_falls_back_to_create_exactly_once(self, mock_client, store):
        store.add(_ref(tracker_id="trk-old"))
        mock_client.fetch_results.side_effect = NotFoundError("expired")

        snap = TrackingSyncService(mock_client, store).sync(_ref(tracker_id="trk-old"))

        mock_client.fetch_results.assert_called_once_with("trk-old")
        assert mock_client.create_or_track.call_count == 1
        assert snap.canonical_status == TrackingStatus.INFO_RECEIVED
        assert store.get_registration("s-1") == "trk-new"

    @pytest.mark.parametrize(
        "exc",
        [UpstreamError(500, "boom"), NetworkError("timeout"), ConfigurationError("no key")],
    )
    def test_other_fetch_failures_propagate_unchanged(self, mock_client, store, exc):
        mock_client.fetch_results.side_effect = exc
        with pytest.raises(type(exc)) as caught:
            TrackingSyncService(mock_client, store).sync(_ref(tracker_id="trk-old"))
        assert caught.value is exc
        mock_client.create_or_track.assert_not_called()
        assert store.snapshots == {}

    def test_create_failure_propagates(self, mock_client, store):
        mock_client.create_or_track.side_effect = UpstreamError(422, "bad number")
        with pytest.raises(UpstreamError):
            TrackingSyncService(mock_client, store).sync(_ref())
        assert store.snapshots == {}


class TestWithIdempotentFake:
    """FakeShip24: 같은 번호 create → 같은 tracker"""

    def test_repeated_create_returns_same_registration(self, fake_ship24):
        first = fake_ship24.create_or_track("1Z999AA10123456784")
        second = fake_ship24.create_or_track("1Z999AA10123456784")
        assert first.created is True
        assert second.created is False
        assert first.tracker_id == second.tracker_id

    def test_sync_twice_registers_once_then_fetches(self, fake_ship24, store):
        store.add(_ref())
        svc = TrackingSyncService(fake_ship24, store)

        svc.sync(store.get("s-1"))
        svc.sync(store.get("s-1"))

        assert len(fake_ship24.create_calls) == 1
        assert fake_ship24.fetch_calls == [store.get_registration("s-1")]

    def test_expired_registration_is_recreated(self, fake_ship24, store):
        store.add(_ref())
        svc = TrackingSyncService(fake_ship24, store)
        svc.sync(store.get("s-1"))
        old = store.get_registration("s-1")

        fake_ship24.expire(old)
        snap = svc.sync(store.get("s-1"))

        assert isinstance(snap, TrackingSnapshot)
        assert len(fake_ship24.create_calls) == 2
        assert store.get_registration("s-1") not in (None, old)

    def test_delivered_snapshot_marks_record_delivered(self, make_fake_ship24, store):
        client = make_fake_ship24(milestone="delivered")
        store.add(_ref())
        TrackingSyncService(client, store).sync(store.get("s-1"))
        assert store.get("s-1").delivered is True

    def test_snapshot_is_replaced_not_mutated(self, fake_ship24, store):
        store.add(_ref())
        svc = TrackingSyncService(fake_ship24, store)
        first = svc.sync(store.get("s-1"))
        second = svc.sync(store.get("s-1"))
        assert first is not second
        assert store.snapshots["s-1"] is second
