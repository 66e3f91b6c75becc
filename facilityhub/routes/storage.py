import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import NotFoundError, ValidationError
from ..models.models import StorageItem
from ..schemas.inventory import (
    ITEM_SUBTYPES,
    ComputerPartCreate,
    DeploymentResponse,
    ItemType,
    StorageItemCreate,
    StorageItemResponse,
    StorageItemUpdate,
)
from ..services.deployment import COMPUTER_PART, ensure_serial_coverage, has_deployment_history, list_deployments
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/storage", tags=["storage"])


def _get_item_or_404(db: Session, item_id: uuid.UUID) -> StorageItem:
    row = db.query(StorageItem).filter(StorageItem.id == item_id).first()
    if not row:
        raise NotFoundError("Storage item not found")
    return row


def _create_item(db: Session, data: dict) -> StorageItem:
    ensure_serial_coverage(data.get("sub_type"), data.get("quantity") or 0, data.get("serial_numbers"))
    row = StorageItem(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=List[StorageItemResponse])
def list_storage_items(
    item_type: Optional[str] = None,
    sub_type: Optional[str] = None,
    q: Optional[str] = None,
    in_stock: bool = False,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.STORAGE_READ)),
):
    query = db.query(StorageItem)
    if item_type:
        query = query.filter(StorageItem.item_type == item_type.upper())
    if sub_type:
        query = query.filter(StorageItem.sub_type == sub_type.upper())
    if q:
        query = query.filter(StorageItem.name.ilike(f"%{q}%"))
    if in_stock:
        query = query.filter(StorageItem.quantity > 0)
    return query.order_by(StorageItem.name.asc()).all()


@router.post("", response_model=StorageItemResponse, status_code=201)
def create_storage_item(payload: StorageItemCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.STORAGE_CREATE))):
    data = payload.model_dump()
    data["item_type"] = payload.item_type.value
    return _create_item(db, data)


@router.post("/computer-part", response_model=StorageItemResponse, status_code=201)
def create_computer_part(payload: ComputerPartCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.STORAGE_CREATE))):
    data = payload.model_dump()
    data["item_type"] = COMPUTER_PART
    data["sub_type"] = payload.sub_type.value
    return _create_item(db, data)


@router.get("/{item_id}", response_model=StorageItemResponse)
def get_storage_item(item_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.STORAGE_READ))):
    return _get_item_or_404(db, item_id)


@router.patch("/{item_id}", response_model=StorageItemResponse)
def update_storage_item(
    item_id: uuid.UUID,
    payload: StorageItemUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.STORAGE_UPDATE)),
):
    row = _get_item_or_404(db, item_id)
    # Only optional columns may be cleared
    data = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in ("sub_type", "unit", "remarks")
    }
    if data.get("item_type") is not None:
        data["item_type"] = data["item_type"].value

    item_type = data.get("item_type") or row.item_type
    sub_type = data["sub_type"] if "sub_type" in data else row.sub_type
    if sub_type and sub_type not in ITEM_SUBTYPES[ItemType(item_type)]:
        raise ValidationError(f"Invalid sub type {sub_type} for {item_type}", field="sub_type")
    quantity = data["quantity"] if data.get("quantity") is not None else row.quantity
    serials = data["serial_numbers"] if data.get("serial_numbers") is not None else row.serial_numbers
    ensure_serial_coverage(sub_type, quantity, serials)

    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{item_id}")
def delete_storage_item(item_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.STORAGE_DELETE))):
    row = _get_item_or_404(db, item_id)
    if has_deployment_history(db, storage_item_id=row.id):
        raise ValidationError(
            "Cannot delete storage item with deployment history. Consider setting quantity to 0 instead."
        )
    db.delete(row)
    db.commit()
    return {"status": "ok"}


@router.get("/{item_id}/deployments", response_model=List[DeploymentResponse])
def list_item_deployments(item_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.STORAGE_READ))):
    row = _get_item_or_404(db, item_id)
    return list_deployments(db, storage_item_id=row.id)
