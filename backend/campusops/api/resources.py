import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import ensure_admin, get_db, get_user
from ..errors import Conflict, NotFound
from ..models import Resource, User
from ..schemas import ResourceCreate, ResourceOut, ResourceUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/resources", response_model=ResourceOut)
def create_resource(
    payload: ResourceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    if db.execute(select(Resource).where(Resource.name == payload.name)).scalar_one_or_none():
        raise Conflict("A resource with this name already exists")
    resource = Resource(**payload.model_dump())
    db.add(resource)
    db.flush()
    db.refresh(resource)
    logger.info("Resource %s created by admin %s", resource.id, user.id)
    return ResourceOut.model_validate(resource, from_attributes=True)


@router.get("/api/resources", response_model=list[ResourceOut])
def list_resources(
    active_only: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    stmt = select(Resource)
    if active_only:
        stmt = stmt.where(Resource.active == True)  # noqa: E712
    resources = db.execute(stmt.order_by(Resource.name.asc())).scalars().all()
    return [ResourceOut.model_validate(r, from_attributes=True) for r in resources]


@router.patch("/api/resources/{resource_id}", response_model=ResourceOut)
def update_resource(
    resource_id: int,
    payload: ResourceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    ensure_admin(user)
    resource = db.get(Resource, resource_id)
    if not resource:
        raise NotFound("Resource")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(resource, field, value)
    db.flush()
    db.refresh(resource)
    return ResourceOut.model_validate(resource, from_attributes=True)
