import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from advo import crud
from advo.api.deps import AdminOrBusinessRep, AdminUser, get_db
from advo.api.routes.geocode import batch_result
from advo.api.routes.resources import (
    get_resource_or_404,
    list_resources_page,
    resource_with_owner,
)
from advo.geocoding import Geocoder, get_geocoder
from advo.models import (
    Analytics,
    BatchGeocodeResult,
    Message,
    Resource,
    ResourceCounts,
    ResourceCreate,
    ResourcePublic,
    ResourcesPublic,
    ResourceUpdate,
    ResourceWithOwner,
    User,
    UserCounts,
    UserCreate,
    UserPublic,
    UserRole,
    UserRolePublic,
    UserRoleUpdate,
    UsersPublic,
    UserUpdate,
    ZipcodeBatch,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_user_or_404(session: Session, user_id: uuid.UUID) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", response_model=UsersPublic)
def read_users(
    session: Session = Depends(get_db),
    current_user: AdminUser = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> Any:
    users, total = crud.list_users(session=session, page=page, limit=limit)
    return UsersPublic(
        data=[UserPublic.model_validate(user) for user in users],
        pagination=crud.build_pagination(total=total, page=page, limit=limit),
    )


@router.post("/users", response_model=UserPublic, status_code=201)
def create_user(
    *, session: Session = Depends(get_db), current_user: AdminUser, user_in: UserCreate
) -> Any:
    if crud.get_user_by_email(session=session, email=user_in.email):
        raise HTTPException(
            status_code=409, detail="The user with this email already exists in the system."
        )
    user = crud.create_user(session=session, user_create=user_in)
    logger.info("Admin %s created user %s", current_user.id, user.id)
    return user


@router.get("/users/{user_id}", response_model=UserPublic)
def read_user(
    user_id: uuid.UUID, session: Session = Depends(get_db), current_user: AdminUser = None
) -> Any:
    return _get_user_or_404(session, user_id)


@router.patch("/users/{user_id}", response_model=UserPublic)
def update_user(
    *,
    session: Session = Depends(get_db),
    current_user: AdminUser,
    user_id: uuid.UUID,
    user_in: UserUpdate,
) -> Any:
    db_user = _get_user_or_404(session, user_id)
    if user_in.email:
        existing_user = crud.get_user_by_email(session=session, email=user_in.email)
        if existing_user and existing_user.id != user_id:
            raise HTTPException(status_code=409, detail="User with this email already exists")
    return crud.update_user(session=session, db_user=db_user, user_in=user_in)


@router.patch("/users/{user_id}/role", response_model=UserRolePublic)
def update_user_role(
    *,
    session: Session = Depends(get_db),
    current_user: AdminUser,
    user_id: uuid.UUID,
    role_in: UserRoleUpdate,
) -> Any:
    """
    Change a user's role. A business representative must be linked to the
    resource they manage; any other role drops that link.
    """
    try:
        role = UserRole(role_in.role)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid role. Must be user, admin or business_rep"
        )
    if role == UserRole.BUSINESS_REP:
        if not role_in.managed_resource_id:
            raise HTTPException(
                status_code=400, detail="Business representatives require a managed resource"
            )
        if not session.get(Resource, role_in.managed_resource_id):
            raise HTTPException(status_code=400, detail="Managed resource does not exist")
    db_user = _get_user_or_404(session, user_id)
    db_user = crud.set_user_role(
        session=session,
        db_user=db_user,
        role=role,
        managed_resource_id=role_in.managed_resource_id,
    )
    logger.info("Admin %s set role of %s to %s", current_user.id, user_id, role.value)
    return UserRolePublic(
        message="User role updated successfully", user=UserPublic.model_validate(db_user)
    )


@router.get("/resources", response_model=ResourcesPublic)
def read_resources(
    session: Session = Depends(get_db),
    current_user: AdminUser = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    category: list[str] | None = Query(default=None),
    type: list[str] | None = Query(default=None),
) -> Any:
    return list_resources_page(
        session, page=page, limit=limit, category=category, type=type
    )


@router.post("/resources", response_model=ResourcePublic, status_code=201)
def create_resource(
    *, session: Session = Depends(get_db), current_user: AdminUser, resource_in: ResourceCreate
) -> Any:
    return crud.create_resource(session=session, resource_in=resource_in)


@router.get("/resources/{resource_id}", response_model=ResourceWithOwner)
def read_resource(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: AdminUser = None
) -> Any:
    return resource_with_owner(session, get_resource_or_404(session, resource_id))


@router.put("/resources/{resource_id}", response_model=ResourcePublic)
def update_resource(
    *,
    session: Session = Depends(get_db),
    current_user: AdminUser,
    resource_id: uuid.UUID,
    resource_in: ResourceUpdate,
) -> Any:
    resource = get_resource_or_404(session, resource_id)
    return crud.update_resource(session=session, db_resource=resource, resource_in=resource_in)


@router.delete("/resources/{resource_id}")
def delete_resource(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: AdminUser = None
) -> Message:
    resource = get_resource_or_404(session, resource_id)
    crud.delete_resource(session=session, db_resource=resource)
    return Message(message="Resource deleted successfully")


@router.get("/analytics", response_model=Analytics)
def read_analytics(session: Session = Depends(get_db), current_user: AdminUser = None) -> Any:
    total_users = crud.count_users(session=session)
    active_users = crud.count_users(session=session, is_active=True)
    return Analytics(
        users=UserCounts(
            total=total_users, active=active_users, frozen=total_users - active_users
        ),
        resources=ResourceCounts(total=crud.count_resources(session=session)),
    )


@router.post("/geocode-zipcodes", response_model=BatchGeocodeResult)
async def geocode_zipcodes(
    *,
    current_user: AdminOrBusinessRep,
    geocoder: Geocoder = Depends(get_geocoder),
    body: ZipcodeBatch,
) -> Any:
    zipcodes = [z.strip() for z in body.zipcodes or [] if z and z.strip()]
    if not zipcodes:
        raise HTTPException(status_code=400, detail="Zipcodes array is required")
    outcome = await geocoder.geocode_many([f"{zipcode}, USA" for zipcode in zipcodes])
    return batch_result(outcome)
