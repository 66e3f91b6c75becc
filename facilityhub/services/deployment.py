"""
Deployment of inventory into rooms.

A deployment either takes units out of a storage item or moves an asset to a
different room. In both cases the inventory change and the new DeploymentRecord
are written in the same transaction; any error rolls back both.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Union

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models.models import Asset, DeploymentRecord, Room, StorageItem


log = structlog.get_logger(__name__)

# Computer-part sub-types tracked unit by unit
SERIALIZED_SUBTYPES = frozenset({"SYSTEM_UNIT", "MONITOR", "UPS"})
COMPUTER_PART = "COMPUTER_PART"

IdLike = Union[str, uuid.UUID]


@dataclass
class DeploymentResult:
    record: DeploymentRecord
    storage_item: Optional[StorageItem] = None
    asset: Optional[Asset] = None


def _as_uuid(value: IdLike, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {field}", field=field)


def requires_serial_number(item: StorageItem) -> bool:
    return item.item_type == COMPUTER_PART and (item.sub_type or "") in SERIALIZED_SUBTYPES


def _ensure_room(db: Session, room_id: uuid.UUID, label: str) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise NotFoundError(f"{label} room not found")
    return room


def _load_storage_item_for_update(db: Session, item_id: uuid.UUID) -> Optional[StorageItem]:
    # Row lock on PostgreSQL; SQLite ignores FOR UPDATE, so writes below re-check what was read
    return (
        db.query(StorageItem)
        .filter(StorageItem.id == item_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _decrement_quantity(db: Session, item_id: uuid.UUID, quantity: int) -> bool:
    """Subtract `quantity` only if enough units remain. Returns False when nothing changed."""
    result = db.execute(
        update(StorageItem)
        .where(StorageItem.id == item_id, StorageItem.quantity >= quantity)
        .values(quantity=StorageItem.quantity - quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _take_serial_unit(db: Session, item: StorageItem, read_quantity: int, remaining_serials: List[str]) -> bool:
    """Write the shortened serial list and decrement by one in a single statement.

    The row must still hold the quantity that was read; any other deployment of
    this item in between changed it, and the list we computed is then stale.
    """
    result = db.execute(
        update(StorageItem)
        .where(StorageItem.id == item.id, StorageItem.quantity == read_quantity, StorageItem.quantity >= 1)
        .values(
            quantity=StorageItem.quantity - 1,
            serial_numbers=remaining_serials,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def deploy_storage_item(
    db: Session,
    *,
    storage_item_id: IdLike,
    to_room_id: IdLike,
    deployed_by: str,
    quantity: Optional[int] = None,
    serial_number: Optional[str] = None,
    from_room_id: Optional[IdLike] = None,
    remarks: Optional[str] = None,
) -> DeploymentResult:
    item_uuid = _as_uuid(storage_item_id, "storage_item_id")
    to_room_uuid = _as_uuid(to_room_id, "to_room_id")
    from_room_uuid = _as_uuid(from_room_id, "from_room_id") if from_room_id else None
    deploy_qty = 1 if quantity is None else int(quantity)
    if deploy_qty < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity")

    _ensure_room(db, to_room_uuid, "Destination")
    if from_room_uuid:
        _ensure_room(db, from_room_uuid, "Source")

    try:
        item = _load_storage_item_for_update(db, item_uuid)
        if not item:
            raise NotFoundError("Storage item not found")

        if item.quantity < deploy_qty:
            raise ValidationError(
                f"Not enough quantity available. Requested: {deploy_qty}, Available: {item.quantity}",
                field="quantity",
            )

        if requires_serial_number(item) and not serial_number:
            raise ValidationError(f"Serial number is required for {item.sub_type}", field="serial_number")

        if serial_number:
            serials = list(item.serial_numbers or [])
            if serial_number not in serials:
                raise ValidationError("Invalid serial number", field="serial_number")
            if deploy_qty != 1:
                raise ValidationError(
                    "Can only deploy one item when specifying a serial number", field="quantity"
                )
            serials.remove(serial_number)
            if not _take_serial_unit(db, item, item.quantity, serials):
                raise ValidationError(
                    "Storage item was changed by another deployment. Please try again.",
                    field="serial_number",
                )
        elif not _decrement_quantity(db, item.id, deploy_qty):
            raise ValidationError("Not enough quantity available", field="quantity")

        record = DeploymentRecord(
            storage_item_id=item.id,
            quantity=deploy_qty,
            serial_number=serial_number or None,
            from_room_id=from_room_uuid,
            to_room_id=to_room_uuid,
            date=datetime.utcnow(),
            deployed_by=deployed_by,
            remarks=remarks,
        )
        db.add(record)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    db.refresh(record)
    log.info(
        "storage_item_deployed",
        storage_item_id=str(item.id),
        quantity=deploy_qty,
        serial_number=serial_number,
        to_room_id=str(to_room_uuid),
        deployed_by=deployed_by,
        remaining=item.quantity,
    )
    return DeploymentResult(record=record, storage_item=item)


def deploy_asset(
    db: Session,
    *,
    asset_id: IdLike,
    to_room_id: IdLike,
    deployed_by: str,
    from_room_id: Optional[IdLike] = None,
    remarks: Optional[str] = None,
) -> DeploymentResult:
    asset_uuid = _as_uuid(asset_id, "asset_id")
    to_room_uuid = _as_uuid(to_room_id, "to_room_id")
    from_room_uuid = _as_uuid(from_room_id, "from_room_id") if from_room_id else None

    _ensure_room(db, to_room_uuid, "Destination")

    try:
        asset = db.query(Asset).filter(Asset.id == asset_uuid).with_for_update().first()
        if not asset:
            raise NotFoundError("Asset not found")

        previous_room_id = asset.room_id
        asset.room_id = to_room_uuid
        asset.updated_at = datetime.utcnow()

        record = DeploymentRecord(
            asset_id=asset.id,
            quantity=1,
            from_room_id=from_room_uuid or previous_room_id,
            to_room_id=to_room_uuid,
            date=datetime.utcnow(),
            deployed_by=deployed_by,
            remarks=remarks,
        )
        db.add(record)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(asset)
    db.refresh(record)
    log.info(
        "asset_relocated",
        asset_id=str(asset.id),
        from_room_id=str(record.from_room_id) if record.from_room_id else None,
        to_room_id=str(to_room_uuid),
        deployed_by=deployed_by,
    )
    return DeploymentResult(record=record, asset=asset)


def deploy(
    db: Session,
    *,
    deployed_by: str,
    to_room_id: IdLike,
    storage_item_id: Optional[IdLike] = None,
    asset_id: Optional[IdLike] = None,
    quantity: Optional[int] = None,
    serial_number: Optional[str] = None,
    from_room_id: Optional[IdLike] = None,
    remarks: Optional[str] = None,
) -> DeploymentResult:
    """Deploy exactly one of a storage item or an asset into `to_room_id`."""
    if bool(storage_item_id) == bool(asset_id):
        raise ValidationError("Provide either a storage item or an asset, not both")
    if not to_room_id:
        raise ValidationError("Destination room is required", field="to_room_id")
    if not deployed_by:
        raise ValidationError("Deployed by is required", field="deployed_by")

    if storage_item_id:
        return deploy_storage_item(
            db,
            storage_item_id=storage_item_id,
            to_room_id=to_room_id,
            deployed_by=deployed_by,
            quantity=quantity,
            serial_number=serial_number,
            from_room_id=from_room_id,
            remarks=remarks,
        )
    return deploy_asset(
        db,
        asset_id=asset_id,
        to_room_id=to_room_id,
        deployed_by=deployed_by,
        from_room_id=from_room_id,
        remarks=remarks,
    )


def has_deployment_history(
    db: Session,
    *,
    storage_item_id: Optional[IdLike] = None,
    asset_id: Optional[IdLike] = None,
) -> bool:
    query = db.query(DeploymentRecord.id)
    if storage_item_id:
        query = query.filter(DeploymentRecord.storage_item_id == _as_uuid(storage_item_id, "storage_item_id"))
    elif asset_id:
        query = query.filter(DeploymentRecord.asset_id == _as_uuid(asset_id, "asset_id"))
    else:
        return False
    return query.first() is not None


def list_deployments(
    db: Session,
    asset_id: Optional[IdLike] = None,
    storage_item_id: Optional[IdLike] = None,
    to_room_id: Optional[IdLike] = None,
) -> List[DeploymentRecord]:
    query = db.query(DeploymentRecord)
    if asset_id:
        query = query.filter(DeploymentRecord.asset_id == _as_uuid(asset_id, "asset_id"))
    if storage_item_id:
        query = query.filter(DeploymentRecord.storage_item_id == _as_uuid(storage_item_id, "storage_item_id"))
    if to_room_id:
        query = query.filter(DeploymentRecord.to_room_id == _as_uuid(to_room_id, "to_room_id"))
    return query.order_by(DeploymentRecord.date.desc(), DeploymentRecord.created_at.desc()).all()


def ensure_serial_coverage(sub_type: Optional[str], quantity: int, serial_numbers: Optional[list]) -> None:
    """Serialized sub-types must carry at least one serial number per unit."""
    serials = serial_numbers or []
    if sub_type in SERIALIZED_SUBTYPES and quantity > 0 and len(serials) < quantity:
        raise ValidationError(
            f"{sub_type} requires a serial number for each unit ({len(serials)}/{quantity})",
            field="serial_numbers",
        )
