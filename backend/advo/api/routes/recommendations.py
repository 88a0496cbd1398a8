import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from advo import crud
from advo.api.deps import AdminUser, get_db
from advo.models import (
    RecommendationCreate,
    RecommendationCreated,
    RecommendationPublic,
    RecommendationStatus,
    RecommendationStatusIn,
    RecommendationStatusUpdated,
    RecommendationType,
    ResourceRecommendation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


def _parse_status(value: str | None) -> RecommendationStatus:
    try:
        return RecommendationStatus(value)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid status. Must be pending, approved or rejected"
        )


@router.post("", response_model=RecommendationCreated, status_code=201)
def create_recommendation(
    *, session: Session = Depends(get_db), recommendation_in: RecommendationCreate
) -> Any:
    """
    Suggest a resource for the directory. Open to anonymous visitors; an admin
    reviews the suggestion later.
    """
    required = (
        recommendation_in.name,
        recommendation_in.type,
        recommendation_in.description,
        recommendation_in.category,
        recommendation_in.note,
    )
    if not all(required):
        raise HTTPException(status_code=400, detail="Missing required fields")
    if recommendation_in.type not in {t.value for t in RecommendationType}:
        raise HTTPException(
            status_code=400, detail="Invalid type. Must be 'state' or 'national'"
        )
    if recommendation_in.type == RecommendationType.STATE and not recommendation_in.state:
        raise HTTPException(
            status_code=400, detail="State is required for state-level recommendations"
        )
    recommendation = crud.create_recommendation(
        session=session, recommendation_in=recommendation_in
    )
    logger.info("Recommendation %s submitted", recommendation.id)
    return RecommendationCreated(
        message="Recommendation submitted successfully", id=recommendation.id
    )


@router.get("", response_model=list[RecommendationPublic])
def read_recommendations(
    session: Session = Depends(get_db),
    current_user: AdminUser = None,
    status: str | None = Query(default=None),
) -> Any:
    status_filter = _parse_status(status) if status else None
    return crud.list_recommendations(session=session, status=status_filter)


@router.patch("/{recommendation_id}/status", response_model=RecommendationStatusUpdated)
def update_recommendation_status(
    *,
    session: Session = Depends(get_db),
    current_user: AdminUser,
    recommendation_id: uuid.UUID,
    status_in: RecommendationStatusIn,
) -> Any:
    status = _parse_status(status_in.status)
    recommendation = session.get(ResourceRecommendation, recommendation_id)
    if not recommendation:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    recommendation = crud.update_recommendation_status(
        session=session, db_recommendation=recommendation, status=status
    )
    return RecommendationStatusUpdated(
        message="Recommendation status updated successfully",
        recommendation=RecommendationPublic.model_validate(recommendation),
    )
