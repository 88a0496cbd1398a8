import uuid
from typing import Any

from fastapi import APIRouter, Depends
from sqlmodel import Session

from advo import crud
from advo.api.deps import CurrentUser, OptionalUser, get_db
from advo.api.routes.resources import get_resource_or_404
from advo.models import FavoriteStatus, FavoriteToggled

router = APIRouter(prefix="/resources", tags=["favorites"])


@router.post("/{resource_id}/favorite", response_model=FavoriteToggled)
def toggle_favorite(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: CurrentUser = None
) -> Any:
    resource = get_resource_or_404(session, resource_id)
    is_favorited = crud.toggle_favorite(
        session=session, user_id=current_user.id, db_resource=resource
    )
    return FavoriteToggled(is_favorited=is_favorited, favorite_count=resource.favorite_count)


@router.get("/{resource_id}/favorite", response_model=FavoriteStatus)
def read_favorite_status(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: OptionalUser = None
) -> Any:
    resource = get_resource_or_404(session, resource_id)
    if current_user is None:
        return FavoriteStatus(is_favorited=False, favorite_count=0)
    favorite = crud.get_favorite(
        session=session, user_id=current_user.id, resource_id=resource.id
    )
    return FavoriteStatus(
        is_favorited=favorite is not None, favorite_count=resource.favorite_count
    )
