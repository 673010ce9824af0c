import uuid
from unittest.mock import patch

import pytest

from domains.shipments import tasks
from domains.shipments.errors import UpstreamError


@pytest.mark.django_db
def test_sync_shipment_task_returns_snapshot_dict(user, shipment_factory, use_fake_client):
    s = shipment_factory(user)
    out = tasks.sync_shipment.apply(args=[str(s.id)]).get()
    assert out["tracking_status"] == "InTransit"
    assert out["tracking_checkpoints"][0]["city"] == "Memphis"


@pytest.mark.django_db
def test_sync_shipment_task_skipped_and_missing(user, shipment_factory, use_fake_client):
    s = shipment_factory(user, tracking_number="TBA000111222")
    out = tasks.sync_shipment.apply(args=[str(s.id)]).get()
    assert out["skipped"] is True
    assert "TBA000111222" in out["tracking_url"]

    assert tasks.sync_shipment.apply(args=[str(uuid.uuid4())]).get() is None


@pytest.mark.django_db
def test_refresh_owner_task_summarises_outcomes(user, shipment_factory, use_fake_client):
    shipment_factory(user, tracking_number="1Z0000000000000001")
    shipment_factory(user, tracking_number="1Z0000000000000002")
    use_fake_client.fail_on["1Z0000000000000002"] = UpstreamError(500, "boom")

    out = tasks.refresh_owner_shipments.apply(args=[user.pk]).get()

    assert out["owner_id"] == str(user.pk)
    assert out["total"] == 2
    assert out["failed"] == 1
    assert sorted(r["ok"] for r in out["results"]) == [False, True]


@pytest.mark.django_db
def test_poll_fans_out_once_per_owner_with_in_flight_shipments(user, user_factory, shipment_factory):
    shipment_factory(user, tracking_number="1Z0000000000000001")
    shipment_factory(user, tracking_number="1Z0000000000000002")
    idle = user_factory()
    shipment_factory(idle, tracking_number="1Z0000000000000003", delivered=True)
    shipment_factory(idle, tracking_number="")

    with patch.object(tasks.refresh_owner_shipments, "delay") as delay:
        count = tasks.poll_in_flight_shipments()

    assert count == 1
    delay.assert_called_once_with(user.pk)
