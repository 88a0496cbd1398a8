from fastapi import APIRouter, Depends
from sqlmodel import Session

from advo import crud
from advo.api.deps import CurrentUser, get_db
from advo.models import FavoriteRef, RatingRef, UserFavorites, UserRatings

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/favorites")
def read_my_favorites(
    session: Session = Depends(get_db), current_user: CurrentUser = None
) -> UserFavorites:
    favorites = crud.list_user_favorites(session=session, user_id=current_user.id)
    return UserFavorites(
        favorites=[FavoriteRef(resource_id=fav.resource_id) for fav in favorites]
    )


@router.get("/ratings")
def read_my_ratings(
    session: Session = Depends(get_db), current_user: CurrentUser = None
) -> UserRatings:
    ratings = crud.list_user_ratings(session=session, user_id=current_user.id)
    return UserRatings(
        ratings=[
            RatingRef(resource_id=rating.resource_id, rating=crud.vote_for(rating.value))
            for rating in ratings
        ]
    )
