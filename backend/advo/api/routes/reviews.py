import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from advo import crud
from advo.api.deps import CurrentUser, get_db
from advo.api.routes.resources import get_resource_or_404
from advo.models import Message, Review, ReviewEnvelope, ReviewIn, ReviewsPublic, User

router = APIRouter(prefix="/resources", tags=["reviews"])

MAX_REVIEW_LENGTH = 1000


def _clean_content(review_in: ReviewIn) -> str:
    content = review_in.content
    if not isinstance(content, str) or not content.strip():
        raise HTTPException(status_code=400, detail="Review content is required")
    content = content.strip()
    if len(content) > MAX_REVIEW_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Review must be {MAX_REVIEW_LENGTH} characters or less",
        )
    return content


def _get_review(session: Session, resource_id: uuid.UUID, review_id: uuid.UUID) -> Review:
    review = session.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.resource_id != resource_id:
        raise HTTPException(status_code=400, detail="Review does not belong to this resource")
    return review


def _get_own_review(
    session: Session, resource_id: uuid.UUID, review_id: uuid.UUID, user: User
) -> Review:
    review = _get_review(session, resource_id, review_id)
    if review.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to modify this review")
    return review


@router.get("/{resource_id}/reviews", response_model=ReviewsPublic)
def read_reviews(resource_id: uuid.UUID, session: Session = Depends(get_db)) -> Any:
    get_resource_or_404(session, resource_id)
    reviews = crud.list_reviews(session=session, resource_id=resource_id)
    return ReviewsPublic(reviews=[crud.review_to_public(review) for review in reviews])


@router.post("/{resource_id}/reviews", response_model=ReviewEnvelope, status_code=201)
def create_review(
    *,
    session: Session = Depends(get_db),
    current_user: CurrentUser,
    resource_id: uuid.UUID,
    review_in: ReviewIn,
) -> Any:
    content = _clean_content(review_in)
    get_resource_or_404(session, resource_id)
    review = crud.create_review(
        session=session, user_id=current_user.id, resource_id=resource_id, content=content
    )
    return ReviewEnvelope(review=crud.review_to_public(review))


@router.get("/{resource_id}/reviews/{review_id}", response_model=ReviewEnvelope)
def read_review(
    resource_id: uuid.UUID, review_id: uuid.UUID, session: Session = Depends(get_db)
) -> Any:
    review = _get_review(session, resource_id, review_id)
    return ReviewEnvelope(review=crud.review_to_public(review))


@router.put("/{resource_id}/reviews/{review_id}", response_model=ReviewEnvelope)
def update_review(
    *,
    session: Session = Depends(get_db),
    current_user: CurrentUser,
    resource_id: uuid.UUID,
    review_id: uuid.UUID,
    review_in: ReviewIn,
) -> Any:
    review = _get_own_review(session, resource_id, review_id, current_user)
    content = _clean_content(review_in)
    review = crud.update_review(session=session, db_review=review, content=content)
    return ReviewEnvelope(review=crud.review_to_public(review))


@router.delete("/{resource_id}/reviews/{review_id}")
def delete_review(
    resource_id: uuid.UUID,
    review_id: uuid.UUID,
    session: Session = Depends(get_db),
    current_user: CurrentUser = None,
) -> Message:
    review = _get_own_review(session, resource_id, review_id, current_user)
    session.delete(review)
    session.commit()
    return Message(message="Review deleted successfully")
