import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from advo import crud
from advo.api.deps import CurrentUser, OptionalUser, get_db
from advo.api.routes.resources import get_resource_or_404
from advo.models import RatingIn, RatingResult, RatingStats, RatingVote

router = APIRouter(prefix="/resources", tags=["ratings"])


@router.post("/{resource_id}/rating", response_model=RatingResult)
def rate_resource(
    *,
    session: Session = Depends(get_db),
    current_user: CurrentUser,
    resource_id: uuid.UUID,
    rating_in: RatingIn,
) -> Any:
    """
    Cast, change or withdraw (``NULL``) the caller's vote on a resource.
    """
    try:
        vote = RatingVote(rating_in.rating)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid rating value. Must be UP, DOWN or NULL"
        )
    resource = get_resource_or_404(session, resource_id)
    upvotes, downvotes = crud.set_rating(
        session=session, user_id=current_user.id, db_resource=resource, vote=vote
    )
    return RatingResult(
        rating=vote,
        upvotes=upvotes,
        downvotes=downvotes,
        approval_percentage=crud.approval_percentage(upvotes, downvotes),
    )


@router.get("/{resource_id}/rating", response_model=RatingStats)
def read_rating(
    resource_id: uuid.UUID, session: Session = Depends(get_db), current_user: OptionalUser = None
) -> Any:
    resource = get_resource_or_404(session, resource_id)
    upvotes, downvotes = crud.rating_counts(session=session, resource_id=resource.id)
    user_rating = RatingVote.NULL
    if current_user is not None:
        rating = crud.get_rating(
            session=session, user_id=current_user.id, resource_id=resource.id
        )
        if rating:
            user_rating = crud.vote_for(rating.value)
    return RatingStats(
        upvotes=upvotes,
        downvotes=downvotes,
        total_votes=upvotes + downvotes,
        approval_percentage=crud.approval_percentage(upvotes, downvotes),
        user_rating=user_rating,
    )
