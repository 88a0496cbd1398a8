import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlmodel import Session, col, func, select

from advo.core.config import settings
from advo.core.security import get_password_hash, verify_password
from advo.models import (
    BusinessResourceUpdate,
    Favorite,
    Pagination,
    Rating,
    RatingVote,
    RecommendationCreate,
    RecommendationStatus,
    RecommendationType,
    Resource,
    ResourceCreate,
    ResourceRecommendation,
    ResourceUpdate,
    Review,
    ReviewPublic,
    User,
    UserCreate,
    UserProfileUpdate,
    UserRole,
    UserUpdate,
)
from advo.utils import derive_state_from_zipcode, values_overlap


def build_pagination(*, total: int, page: int, limit: int) -> Pagination:
    return Pagination(
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


def create_user(*, session: Session, user_create: UserCreate) -> User:
    db_obj = User.model_validate(
        user_create, update={"hashed_password": get_password_hash(user_create.password)}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_user(*, session: Session, db_user: User, user_in: UserUpdate) -> Any:
    user_data = user_in.model_dump(exclude_unset=True)
    extra_data = {}
    if "password" in user_data:
        password = user_data.pop("password")
        if password:
            extra_data["hashed_password"] = get_password_hash(password)
    db_user.sqlmodel_update(user_data, update=extra_data)
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def update_user_profile(
    *, session: Session, db_user: User, profile_in: UserProfileUpdate
) -> User:
    # Explicit nulls leave the stored value alone, same as omitted keys
    profile_data = {
        key: value
        for key, value in profile_in.model_dump(exclude_unset=True).items()
        if value is not None
    }
    state = derive_state_from_zipcode(profile_data.get("zipcode"))
    if state:
        profile_data["state"] = state
    db_user.sqlmodel_update(profile_data)
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def set_user_role(
    *,
    session: Session,
    db_user: User,
    role: UserRole,
    managed_resource_id: uuid.UUID | None,
) -> User:
    db_user.role = role
    db_user.managed_resource_id = (
        managed_resource_id if role == UserRole.BUSINESS_REP else None
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def set_password(*, session: Session, db_user: User, password: str) -> User:
    db_user.hashed_password = get_password_hash(password)
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


def get_user_by_email(*, session: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email)
    session_user = session.exec(statement).first()
    return session_user


def list_users(*, session: Session, page: int, limit: int) -> tuple[list[User], int]:
    total = session.exec(select(func.count()).select_from(User)).one()
    if (page - 1) * limit >= total:
        return [], total
    statement = (
        select(User)
        .order_by(col(User.created_at).desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(session.exec(statement).all()), total


def count_users(*, session: Session, is_active: bool | None = None) -> int:
    statement = select(func.count()).select_from(User)
    if is_active is not None:
        statement = statement.where(User.is_active == is_active)
    return session.exec(statement).one()


def delete_user(*, session: Session, db_user: User) -> None:
    """Delete a user together with their favorites, ratings and reviews.

    Counters cached on the affected resources are brought back in step with
    the remaining rows.
    """
    favorited_ids = [fav.resource_id for fav in db_user.favorites]
    rated_ids = [rating.resource_id for rating in db_user.ratings]

    session.delete(db_user)
    session.flush()

    for resource_id in favorited_ids:
        resource = session.get(Resource, resource_id)
        if resource:
            resource.favorite_count = max(0, resource.favorite_count - 1)
            session.add(resource)
    for resource_id in rated_ids:
        resource = session.get(Resource, resource_id)
        if resource:
            upvotes, downvotes = rating_counts(session=session, resource_id=resource_id)
            resource.upvote_count = upvotes - downvotes
            session.add(resource)
    session.commit()


# Argon2 hash of a random password, checked when no account matches the email
DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$MjQyZWE1MzBjYjJlZTI0Yw$YTU4NGM5ZTZmYjE2NzZlZjY0ZWY3ZGRkY2U2OWFjNjk"


def authenticate(*, session: Session, email: str, password: str) -> User | None:
    db_user = get_user_by_email(session=session, email=email)
    if not db_user:
        verify_password(password, DUMMY_HASH)
        return None
    verified, updated_password_hash = verify_password(password, db_user.hashed_password)
    if not verified:
        return None
    if updated_password_hash:
        db_user.hashed_password = updated_password_hash
        session.add(db_user)
        session.commit()
        session.refresh(db_user)
    return db_user


def save_otp(*, session: Session, db_user: User, otp: str) -> None:
    db_user.otp_secret = otp
    db_user.otp_expiry = datetime.now(timezone.utc) + timedelta(
        minutes=settings.OTP_EXPIRE_MINUTES
    )
    session.add(db_user)
    session.commit()


def verify_otp(*, db_user: User, otp: str) -> bool:
    if not db_user.otp_secret or not db_user.otp_expiry:
        return False
    expiry = db_user.otp_expiry
    # SQLite hands back naive datetimes
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    if expiry < datetime.now(timezone.utc):
        return False
    return db_user.otp_secret == otp


def clear_otp(*, session: Session, db_user: User, mark_verified: bool = False) -> None:
    db_user.otp_secret = None
    db_user.otp_expiry = None
    if mark_verified:
        db_user.is_email_verified = True
    session.add(db_user)
    session.commit()


def create_resource(*, session: Session, resource_in: ResourceCreate) -> Resource:
    db_resource = Resource.model_validate(resource_in.model_dump())
    session.add(db_resource)
    session.commit()
    session.refresh(db_resource)
    return db_resource


IMAGE_URL_FIELDS = ("profile_photo_url", "banner_image_url")


def update_resource(
    *,
    session: Session,
    db_resource: Resource,
    resource_in: ResourceUpdate | BusinessResourceUpdate,
) -> Resource:
    # Nulls only clear geo_location; every other column keeps its stored value
    resource_data = {
        key: value
        for key, value in resource_in.model_dump(exclude_unset=True).items()
        if value is not None or key == "geo_location"
    }
    for field in IMAGE_URL_FIELDS:
        # An empty image URL never wipes the stored one
        if field in resource_data and not resource_data[field]:
            resource_data.pop(field)
    db_resource.sqlmodel_update(resource_data)
    session.add(db_resource)
    session.commit()
    session.refresh(db_resource)
    return db_resource


def delete_resource(*, session: Session, db_resource: Resource) -> None:
    representatives = session.exec(
        select(User).where(User.managed_resource_id == db_resource.id)
    ).all()
    for rep in representatives:
        rep.managed_resource_id = None
        session.add(rep)
    session.delete(db_resource)
    session.commit()


def get_resource_owner(*, session: Session, resource_id: uuid.UUID) -> User | None:
    statement = select(User).where(
        User.managed_resource_id == resource_id,
        User.role == UserRole.BUSINESS_REP,
    )
    return session.exec(statement).first()


def list_resources(
    *,
    session: Session,
    page: int,
    limit: int,
    category: list[str] | None = None,
    type: list[str] | None = None,
) -> tuple[list[Resource], int]:
    statement = select(Resource).order_by(col(Resource.created_at).desc())
    if not category and not type:
        total = session.exec(select(func.count()).select_from(Resource)).one()
        if (page - 1) * limit >= total:
            return [], total
        page_statement = statement.offset((page - 1) * limit).limit(limit)
        return list(session.exec(page_statement).all()), total

    # List columns are JSON, so array filters run after the fetch
    matching = [
        resource
        for resource in session.exec(statement).all()
        if (not category or values_overlap(resource.category, category))
        and (not type or values_overlap(resource.type, type))
    ]
    start = (page - 1) * limit
    return matching[start:start + limit], len(matching)


def count_resources(*, session: Session) -> int:
    return session.exec(select(func.count()).select_from(Resource)).one()


def get_favorite(
    *, session: Session, user_id: uuid.UUID, resource_id: uuid.UUID
) -> Favorite | None:
    statement = select(Favorite).where(
        Favorite.user_id == user_id, Favorite.resource_id == resource_id
    )
    return session.exec(statement).first()


def toggle_favorite(
    *, session: Session, user_id: uuid.UUID, db_resource: Resource
) -> bool:
    """Flip the favorite flag for (user, resource); returns the new state."""
    existing = get_favorite(session=session, user_id=user_id, resource_id=db_resource.id)
    if existing:
        session.delete(existing)
        db_resource.favorite_count = max(0, db_resource.favorite_count - 1)
        is_favorited = False
    else:
        session.add(Favorite(user_id=user_id, resource_id=db_resource.id))
        db_resource.favorite_count += 1
        is_favorited = True
    session.add(db_resource)
    session.commit()
    session.refresh(db_resource)
    return is_favorited


def list_user_favorites(*, session: Session, user_id: uuid.UUID) -> list[Favorite]:
    statement = (
        select(Favorite)
        .where(Favorite.user_id == user_id)
        .order_by(col(Favorite.created_at).desc())
    )
    return list(session.exec(statement).all())


def get_rating(
    *, session: Session, user_id: uuid.UUID, resource_id: uuid.UUID
) -> Rating | None:
    statement = select(Rating).where(
        Rating.user_id == user_id, Rating.resource_id == resource_id
    )
    return session.exec(statement).first()


def rating_counts(*, session: Session, resource_id: uuid.UUID) -> tuple[int, int]:
    def _count(value: int) -> int:
        statement = (
            select(func.count())
            .select_from(Rating)
            .where(Rating.resource_id == resource_id, Rating.value == value)
        )
        return session.exec(statement).one()

    return _count(1), _count(-1)


def approval_percentage(upvotes: int, downvotes: int) -> int:
    total = upvotes + downvotes
    if total == 0:
        return 0
    return math.floor(upvotes * 100 / total + 0.5)


def vote_for(value: int) -> RatingVote:
    return RatingVote.UP if value > 0 else RatingVote.DOWN


def set_rating(
    *, session: Session, user_id: uuid.UUID, db_resource: Resource, vote: RatingVote
) -> tuple[int, int]:
    """Create, change or clear the caller's vote and refresh ``upvote_count``.

    Returns the new (upvotes, downvotes) pair.
    """
    existing = get_rating(session=session, user_id=user_id, resource_id=db_resource.id)
    if vote == RatingVote.NULL:
        if existing:
            session.delete(existing)
    else:
        value = 1 if vote == RatingVote.UP else -1
        if existing:
            existing.value = value
            session.add(existing)
        else:
            session.add(Rating(user_id=user_id, resource_id=db_resource.id, value=value))
    session.flush()

    upvotes, downvotes = rating_counts(session=session, resource_id=db_resource.id)
    db_resource.upvote_count = upvotes - downvotes
    session.add(db_resource)
    session.commit()
    session.refresh(db_resource)
    return upvotes, downvotes


def list_user_ratings(*, session: Session, user_id: uuid.UUID) -> list[Rating]:
    statement = select(Rating).where(Rating.user_id == user_id)
    return list(session.exec(statement).all())


def review_to_public(review: Review) -> ReviewPublic:
    author_name = review.user.full_name if review.user else None
    return ReviewPublic.model_validate(review, update={"author_name": author_name})


def list_reviews(*, session: Session, resource_id: uuid.UUID) -> list[Review]:
    statement = (
        select(Review)
        .where(Review.resource_id == resource_id)
        .order_by(col(Review.created_at).desc())
    )
    return list(session.exec(statement).all())


def create_review(
    *, session: Session, user_id: uuid.UUID, resource_id: uuid.UUID, content: str
) -> Review:
    db_review = Review(user_id=user_id, resource_id=resource_id, content=content)
    session.add(db_review)
    session.commit()
    session.refresh(db_review)
    return db_review


def update_review(*, session: Session, db_review: Review, content: str) -> Review:
    db_review.content = content
    session.add(db_review)
    session.commit()
    session.refresh(db_review)
    return db_review


def create_recommendation(
    *, session: Session, recommendation_in: RecommendationCreate
) -> ResourceRecommendation:
    recommendation_type = RecommendationType(recommendation_in.type)
    is_state = recommendation_type == RecommendationType.STATE
    contact = recommendation_in.contact.model_dump() if recommendation_in.contact else {
        "phone": "", "email": "", "website": ""
    }
    address = recommendation_in.address.model_dump() if recommendation_in.address else {
        "street": "", "city": "", "state": "", "zip_code": ""
    }
    db_recommendation = ResourceRecommendation(
        name=recommendation_in.name,
        type=recommendation_type,
        state=recommendation_in.state if is_state else None,
        description=recommendation_in.description or "",
        category=recommendation_in.category or [],
        note=recommendation_in.note,
        contact=contact,
        address=address,
        submitted_by=recommendation_in.submitted_by or None,
        email=recommendation_in.email or None,
        status=RecommendationStatus.PENDING,
    )
    session.add(db_recommendation)
    session.commit()
    session.refresh(db_recommendation)
    return db_recommendation


def list_recommendations(
    *, session: Session, status: RecommendationStatus | None = None
) -> list[ResourceRecommendation]:
    statement = select(ResourceRecommendation).order_by(
        col(ResourceRecommendation.created_at).desc()
    )
    if status is not None:
        statement = statement.where(ResourceRecommendation.status == status)
    return list(session.exec(statement).all())


def update_recommendation_status(
    *,
    session: Session,
    db_recommendation: ResourceRecommendation,
    status: RecommendationStatus,
) -> ResourceRecommendation:
    db_recommendation.status = status
    session.add(db_recommendation)
    session.commit()
    session.refresh(db_recommendation)
    return db_recommendation
