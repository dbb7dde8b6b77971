from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_user, require_roles
from app.core.db import get_db
from app.models.user import User
from app.schemas.ministry import MinistryCreate, MinistryOut, MinistryUpdate
from app.services import ministries as ministries_service

router = APIRouter(prefix="/ministries", tags=["ministries"])
admin_router = APIRouter(prefix="/admin/ministries", tags=["admin"])

MANAGE_ROLES = ("admin",)


@router.get("", response_model=list[MinistryOut], status_code=status.HTTP_200_OK)
def list_active_ministries(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> list[MinistryOut]:
    return [MinistryOut.from_orm(item) for item in ministries_service.list_ministries(db, active_only=True)]


@admin_router.get("", response_model=list[MinistryOut], status_code=status.HTTP_200_OK)
def list_ministries(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*MANAGE_ROLES)),
) -> list[MinistryOut]:
    return [MinistryOut.from_orm(item) for item in ministries_service.list_ministries(db)]


@admin_router.post("", response_model=MinistryOut, status_code=status.HTTP_201_CREATED)
def create_ministry(
    payload: MinistryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> MinistryOut:
    return MinistryOut.from_orm(ministries_service.create_ministry(db, payload, current_user.id))


@admin_router.put("/{ministry_id:int}", response_model=MinistryOut, status_code=status.HTTP_200_OK)
def update_ministry(
    ministry_id: int,
    payload: MinistryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> MinistryOut:
    return MinistryOut.from_orm(ministries_service.update_ministry(db, ministry_id, payload, current_user.id))


@admin_router.delete("/{ministry_id:int}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ministry(
    ministry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*MANAGE_ROLES)),
) -> Response:
    ministries_service.delete_ministry(db, ministry_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
