import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.models import Asset, Room
from ..schemas.inventory import AssetCreate, AssetResponse, AssetUpdate, DeploymentResponse
from ..services.deployment import has_deployment_history, list_deployments
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/assets", tags=["assets"])


def _get_asset_or_404(db: Session, asset_id: uuid.UUID) -> Asset:
    row = db.query(Asset).filter(Asset.id == asset_id).first()
    if not row:
        raise NotFoundError("Asset not found")
    return row


def _ensure_unique_tag(db: Session, tag: Optional[str], exclude_id: Optional[uuid.UUID] = None):
    if not tag:
        return
    query = db.query(Asset.id).filter(Asset.asset_tag == tag)
    if exclude_id:
        query = query.filter(Asset.id != exclude_id)
    if query.first():
        raise ConflictError(f"Asset tag {tag} already exists", field="asset_tag")


@router.get("", response_model=List[AssetResponse])
def list_assets(
    room_id: Optional[uuid.UUID] = None,
    asset_type: Optional[str] = None,
    status: Optional[str] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.ASSET_READ)),
):
    query = db.query(Asset)
    if room_id:
        query = query.filter(Asset.room_id == room_id)
    if asset_type:
        query = query.filter(Asset.asset_type == asset_type.upper())
    if status:
        query = query.filter(Asset.status == status.upper())
    if q:
        like = f"%{q}%"
        query = query.filter(
            (Asset.asset_tag.ilike(like)) | (Asset.system_unit.ilike(like))
            | (Asset.monitor.ilike(like)) | (Asset.ups.ilike(like))
        )
    return query.order_by(Asset.created_at.desc()).all()


@router.post("", response_model=AssetResponse, status_code=201)
def create_asset(payload: AssetCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.ASSET_CREATE))):
    if not db.query(Room).filter(Room.id == payload.room_id).first():
        raise NotFoundError("Room not found")
    _ensure_unique_tag(db, payload.asset_tag)
    data = payload.model_dump()
    data["asset_type"] = payload.asset_type.value
    data["status"] = payload.status.value
    row = Asset(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ASSET_READ))):
    return _get_asset_or_404(db, asset_id)


@router.patch("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: uuid.UUID,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.ASSET_UPDATE)),
):
    """Edit asset details. Moving an asset goes through POST /deployments."""
    row = _get_asset_or_404(db, asset_id)
    data = payload.model_dump(exclude_unset=True)
    if "asset_tag" in data:
        _ensure_unique_tag(db, data["asset_tag"], exclude_id=row.id)
    for key in ("asset_type", "status"):
        if data.get(key) is not None:
            data[key] = data[key].value
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{asset_id}")
def delete_asset(asset_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ASSET_DELETE))):
    row = _get_asset_or_404(db, asset_id)
    if has_deployment_history(db, asset_id=row.id):
        raise ValidationError("Cannot delete asset with deployment history.")
    db.delete(row)
    db.commit()
    return {"status": "ok"}


@router.get("/{asset_id}/deployments", response_model=List[DeploymentResponse])
def list_asset_deployments(asset_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ASSET_READ))):
    row = _get_asset_or_404(db, asset_id)
    return list_deployments(db, asset_id=row.id)
