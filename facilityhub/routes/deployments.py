import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..models.models import User
from ..schemas.inventory import DeploymentCreate, DeploymentResponse, DeploymentResultResponse
from ..services.deployment import deploy, list_deployments
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/deployments", tags=["deployments"])


@router.get("", response_model=List[DeploymentResponse])
def get_deployments(
    asset_id: Optional[uuid.UUID] = None,
    storage_item_id: Optional[uuid.UUID] = None,
    to_room_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.ASSET_READ, P.STORAGE_READ)),
):
    return list_deployments(db, asset_id=asset_id, storage_item_id=storage_item_id, to_room_id=to_room_id)


@router.post("", response_model=DeploymentResultResponse, status_code=201)
def create_deployment(
    payload: DeploymentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permissions(P.ASSET_DEPLOY)),
):
    """Deploy a storage item (by quantity or serial) or relocate an asset."""
    result = deploy(
        db,
        deployed_by=user.display_name or str(user.id),
        to_room_id=payload.to_room_id,
        storage_item_id=payload.storage_item_id,
        asset_id=payload.asset_id,
        quantity=payload.quantity,
        serial_number=payload.serial_number,
        from_room_id=payload.from_room_id,
        remarks=payload.remarks,
    )
    return {
        "deployment_record": result.record,
        "storage_item": result.storage_item,
        "asset": result.asset,
    }
