import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from advo import crud
from advo.api.deps import AdminUser, CurrentUser, OptionalUser, get_db, has_business_access
from advo.geocoding import Geocoder, GeocodingError, get_geocoder
from advo.models import (
    BusinessAccess,
    BusinessResourceUpdate,
    Message,
    Resource,
    ResourceCreate,
    ResourceOwner,
    ResourcePublic,
    ResourceSearchPage,
    ResourcesPublic,
    ResourceUpdate,
    ResourceWithOwner,
)
from advo.search import (
    ResourceSearchRequest,
    SearchValidationError,
    normalize_search_request,
    search_resources,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["resources"])


def get_resource_or_404(session: Session, resource_id: uuid.UUID) -> Resource:
    resource = session.get(Resource, resource_id)
    if not resource:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


def resource_with_owner(session: Session, resource: Resource) -> ResourceWithOwner:
    owner = crud.get_resource_owner(session=session, resource_id=resource.id)
    return ResourceWithOwner.model_validate(
        resource,
        update={"owner": ResourceOwner.model_validate(owner) if owner else None},
    )


def list_resources_page(
    session: Session,
    *,
    page: int,
    limit: int,
    category: list[str] | None,
    type: list[str] | None,
) -> ResourcesPublic:
    resources, total = crud.list_resources(
        session=session, page=page, limit=limit, category=category, type=type
    )
    return ResourcesPublic(
        data=[ResourcePublic.model_validate(resource) for resource in resources],
        pagination=crud.build_pagination(total=total, page=page, limit=limit),
    )


@router.get("", response_model=ResourcesPublic)
def read_resources(
    session: Session = Depends(get_db),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    category: list[str] | None = Query(default=None),
    type: list[str] | None = Query(default=None),
) -> Any:
    return list_resources_page(
        session, page=page, limit=limit, category=category, type=type
    )


@router.post("", response_model=ResourcePublic, status_code=201)
def create_resource(
    *, session: Session = Depends(get_db), current_user: AdminUser, resource_in: ResourceCreate
) -> Any:
    resource = crud.create_resource(session=session, resource_in=resource_in)
    logger.info("Resource %s created by %s", resource.id, current_user.id)
    return resource


@router.post("/search", response_model=ResourceSearchPage)
async def search(
    *,
    session: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
    search_in: ResourceSearchRequest | None = None,
) -> Any:
    """
    Filter resources by category, type, audience, zip code and description,
    optionally within ``distance`` miles of the zip code.
    """
    try:
        criteria = normalize_search_request(search_in or ResourceSearchRequest())
    except SearchValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        return await search_resources(session=session, criteria=criteria, geocoder=geocoder)
    except GeocodingError as e:
        logger.error("Resource search could not geocode %s: %s", criteria.zip_code, e)
        raise HTTPException(status_code=500, detail="Failed to geocode the provided zip code")


@router.get("/{resource_id}", response_model=ResourceWithOwner)
def read_resource(resource_id: uuid.UUID, session: Session = Depends(get_db)) -> Any:
    resource = get_resource_or_404(session, resource_id)
    return resource_with_owner(session, resource)


@router.put("/{resource_id}", response_model=ResourcePublic)
def update_resource(
    *,
    session: Session = Depends(get_db),
    current_user: AdminUser,
    resource_id: uuid.UUID,
    resource_in: ResourceUpdate,
) -> Any:
    resource = get_resource_or_404(session, resource_id)
    return crud.update_resource(session=session, db_resource=resource, resource_in=resource_in)


@router.delete("/{resource_id}")
def delete_resource(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: AdminUser = None
) -> Message:
    resource = get_resource_or_404(session, resource_id)
    crud.delete_resource(session=session, db_resource=resource)
    logger.info("Resource %s deleted by %s", resource_id, current_user.id)
    return Message(message="Resource deleted successfully")


@router.get("/{resource_id}/business-update", response_model=BusinessAccess)
def read_business_access(
    resource_id: uuid.UUID, current_user: OptionalUser = None
) -> Any:
    return BusinessAccess(has_access=has_business_access(current_user, resource_id))


@router.put("/{resource_id}/business-update", response_model=ResourcePublic)
def business_update_resource(
    *,
    session: Session = Depends(get_db),
    current_user: CurrentUser,
    resource_id: uuid.UUID,
    resource_in: BusinessResourceUpdate,
) -> Any:
    """
    Limited edit for the business representative who manages this resource.
    """
    if not has_business_access(current_user, resource_id):
        raise HTTPException(
            status_code=403, detail="You do not have permission to update this resource"
        )
    resource = get_resource_or_404(session, resource_id)
    return crud.update_resource(session=session, db_resource=resource, resource_in=resource_in)
