"""
Tests for the deployment transaction
"""
import threading
import uuid
import pytest

from facilityhub.errors import NotFoundError, ValidationError
from facilityhub.models.models import Asset, DeploymentRecord, StorageItem
from facilityhub.services import deployment
from facilityhub.services.deployment import (
    deploy,
    ensure_serial_coverage,
    has_deployment_history,
    list_deployments,
)


def fresh_item(session_factory, item_id):
    s = session_factory()
    try:
        item = s.query(StorageItem).filter(StorageItem.id == item_id).one()
        return item.quantity, list(item.serial_numbers or []), s.query(DeploymentRecord).count()
    finally:
        s.close()


@pytest.mark.unit
class TestStorageDeployment:
    """Storage item path"""

    def test_deploy_decrements_and_records(self, db, facility, cable_stock):
        result = deploy(
            db, deployed_by="Tess Tech", to_room_id=facility["room_a"].id,
            storage_item_id=cable_stock.id, quantity=3, remarks="lab setup",
        )
        assert result.storage_item.quantity == 7
        assert result.record.quantity == 3
        assert result.record.storage_item_id == cable_stock.id
        assert result.record.to_room_id == facility["room_a"].id
        assert result.record.deployed_by == "Tess Tech"
        assert db.query(DeploymentRecord).count() == 1

    def test_quantity_defaults_to_one(self, db, facility, cable_stock):
        result = deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id)
        assert result.record.quantity == 1
        assert result.storage_item.quantity == 9

    def test_over_deploy_fails_and_leaves_quantity(self, db, session_factory, facility, cable_stock):
        with pytest.raises(ValidationError) as exc:
            deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=11)
        assert str(exc.value) == "Not enough quantity available. Requested: 11, Available: 10"
        assert fresh_item(session_factory, cable_stock.id) == (10, [], 0)

    def test_deploy_whole_stock_to_zero(self, db, facility, cable_stock):
        result = deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=10)
        assert result.storage_item.quantity == 0

    def test_zero_quantity_rejected(self, db, facility, cable_stock):
        with pytest.raises(ValidationError):
            deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=0)

    def test_missing_item(self, db, facility):
        with pytest.raises(NotFoundError):
            deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=uuid.uuid4())

    def test_missing_destination_room(self, db, session_factory, cable_stock):
        with pytest.raises(NotFoundError) as exc:
            deploy(db, deployed_by="x", to_room_id=uuid.uuid4(), storage_item_id=cable_stock.id, quantity=2)
        assert "Destination room not found" in str(exc.value)
        assert fresh_item(session_factory, cable_stock.id) == (10, [], 0)

    def test_requires_exactly_one_target(self, db, facility, cable_stock):
        with pytest.raises(ValidationError):
            deploy(db, deployed_by="x", to_room_id=facility["room_a"].id)
        with pytest.raises(ValidationError):
            deploy(
                db, deployed_by="x", to_room_id=facility["room_a"].id,
                storage_item_id=cable_stock.id, asset_id=uuid.uuid4(),
            )


@pytest.mark.unit
class TestSerializedParts:
    """Serial number rules for SYSTEM_UNIT / MONITOR / UPS"""

    def test_serial_removed_on_deploy(self, db, session_factory, facility, monitor_stock):
        result = deploy(
            db, deployed_by="x", to_room_id=facility["room_a"].id,
            storage_item_id=monitor_stock.id, quantity=1, serial_number="MON-002",
        )
        assert result.record.serial_number == "MON-002"
        assert fresh_item(session_factory, monitor_stock.id) == (2, ["MON-001", "MON-003"], 1)

    def test_serial_required(self, db, facility, monitor_stock):
        with pytest.raises(ValidationError) as exc:
            deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=monitor_stock.id, quantity=1)
        assert str(exc.value) == "Serial number is required for MONITOR"

    def test_unknown_serial_leaves_item_unchanged(self, db, session_factory, facility, monitor_stock):
        with pytest.raises(ValidationError) as exc:
            deploy(
                db, deployed_by="x", to_room_id=facility["room_a"].id,
                storage_item_id=monitor_stock.id, quantity=1, serial_number="MON-999",
            )
        assert str(exc.value) == "Invalid serial number"
        assert fresh_item(session_factory, monitor_stock.id) == (3, ["MON-001", "MON-002", "MON-003"], 0)

    def test_serial_with_quantity_above_one(self, db, session_factory, facility, monitor_stock):
        with pytest.raises(ValidationError) as exc:
            deploy(
                db, deployed_by="x", to_room_id=facility["room_a"].id,
                storage_item_id=monitor_stock.id, quantity=2, serial_number="MON-001",
            )
        assert str(exc.value) == "Can only deploy one item when specifying a serial number"
        assert fresh_item(session_factory, monitor_stock.id) == (3, ["MON-001", "MON-002", "MON-003"], 0)

    def test_non_computer_part_may_skip_serial(self, db, facility):
        ups = StorageItem(name="Rack UPS", item_type="HARDWARE", sub_type=None, quantity=2)
        db.add(ups)
        db.commit()
        result = deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=ups.id)
        assert result.storage_item.quantity == 1

    def test_serial_coverage(self):
        ensure_serial_coverage("UPS", 2, ["U1", "U2"])
        ensure_serial_coverage("RAM", 5, [])
        ensure_serial_coverage("UPS", 0, [])
        with pytest.raises(ValidationError) as exc:
            ensure_serial_coverage("SYSTEM_UNIT", 3, ["S1"])
        assert str(exc.value) == "SYSTEM_UNIT requires a serial number for each unit (1/3)"


@pytest.mark.unit
class TestAssetDeployment:
    """Asset path"""

    def test_move_asset(self, db, facility):
        asset = Asset(asset_tag="PC-101-01", asset_type="COMPUTER", room_id=facility["room_a"].id)
        db.add(asset)
        db.commit()

        result = deploy(db, deployed_by="x", to_room_id=facility["room_b"].id, asset_id=asset.id)

        assert result.asset.room_id == facility["room_b"].id
        assert result.record.quantity == 1
        assert result.record.asset_id == asset.id
        assert result.record.from_room_id == facility["room_a"].id
        assert db.query(DeploymentRecord).count() == 1

    def test_missing_asset(self, db, facility):
        with pytest.raises(NotFoundError):
            deploy(db, deployed_by="x", to_room_id=facility["room_b"].id, asset_id=uuid.uuid4())
        assert db.query(DeploymentRecord).count() == 0


@pytest.mark.unit
class TestConcurrentDeployments:
    """Two deployments racing for the same stock on separate threads"""

    @staticmethod
    def run_racing(session_factory, monkeypatch, requests):
        """Run each deploy() call on its own thread and session.

        Both threads finish reading the storage item before either one writes.
        """
        original = deployment._load_storage_item_for_update
        barrier = threading.Barrier(len(requests), timeout=10)

        def _load_then_wait(db, item_id):
            item = original(db, item_id)
            barrier.wait()
            return item

        monkeypatch.setattr(deployment, "_load_storage_item_for_update", _load_then_wait)
        outcomes = {}

        def _worker(name, kwargs):
            session = session_factory()
            try:
                deploy(session, deployed_by=name, **kwargs)
                outcomes[name] = "ok"
            except Exception as exc:
                outcomes[name] = type(exc).__name__
            finally:
                session.close()

        threads = [threading.Thread(target=_worker, args=(name, kwargs)) for name, kwargs in requests.items()]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes

    def test_only_one_quantity_deployment_wins(self, session_factory, monkeypatch, facility, cable_stock):
        outcomes = self.run_racing(session_factory, monkeypatch, {
            "a": dict(to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=6),
            "b": dict(to_room_id=facility["room_b"].id, storage_item_id=cable_stock.id, quantity=6),
        })
        assert sorted(outcomes.values()) == ["ValidationError", "ok"]
        assert fresh_item(session_factory, cable_stock.id) == (4, [], 1)

    def test_deployed_serial_never_returns_to_stock(self, session_factory, monkeypatch, facility, monitor_stock):
        outcomes = self.run_racing(session_factory, monkeypatch, {
            "a": dict(to_room_id=facility["room_a"].id, storage_item_id=monitor_stock.id, serial_number="MON-001"),
            "b": dict(to_room_id=facility["room_b"].id, storage_item_id=monitor_stock.id, serial_number="MON-002"),
        })
        assert sorted(outcomes.values()) == ["ValidationError", "ok"]

        quantity, serials, records = fresh_item(session_factory, monitor_stock.id)
        check = session_factory()
        try:
            deployed = [r.serial_number for r in check.query(DeploymentRecord).all()]
        finally:
            check.close()
        assert records == 1
        assert quantity == 2
        assert len(serials) == 2
        assert deployed[0] not in serials
        assert sorted(serials + deployed) == ["MON-001", "MON-002", "MON-003"]

    def test_serial_write_rejects_stale_read(self, session_factory, facility, monitor_stock, monkeypatch):
        first, second = session_factory(), session_factory()
        try:
            stale = second.query(StorageItem).filter(StorageItem.id == monitor_stock.id).one()
            deploy(first, deployed_by="a", to_room_id=facility["room_a"].id,
                   storage_item_id=monitor_stock.id, serial_number="MON-001")

            monkeypatch.setattr(deployment, "_load_storage_item_for_update", lambda db, item_id: stale)
            with pytest.raises(ValidationError) as exc:
                deploy(second, deployed_by="b", to_room_id=facility["room_b"].id,
                       storage_item_id=monitor_stock.id, serial_number="MON-002")
            assert exc.value.field == "serial_number"
        finally:
            first.close()
            second.close()
        assert fresh_item(session_factory, monitor_stock.id) == (2, ["MON-002", "MON-003"], 1)


@pytest.mark.unit
class TestHistory:
    """Deployment history queries"""

    def test_has_history(self, db, facility, cable_stock):
        assert not has_deployment_history(db, storage_item_id=cable_stock.id)
        deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=1)
        assert has_deployment_history(db, storage_item_id=cable_stock.id)
        assert not has_deployment_history(db)

    def test_list_filters(self, db, facility, cable_stock):
        deploy(db, deployed_by="x", to_room_id=facility["room_a"].id, storage_item_id=cable_stock.id, quantity=1)
        deploy(db, deployed_by="x", to_room_id=facility["room_b"].id, storage_item_id=cable_stock.id, quantity=2)
        assert len(list_deployments(db, storage_item_id=cable_stock.id)) == 2
        to_b = list_deployments(db, to_room_id=facility["room_b"].id)
        assert [r.quantity for r in to_b] == [2]
