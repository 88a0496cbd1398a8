import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, EmailStr
from pydantic import Field as PydanticField
from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    BUSINESS_REP = "business_rep"


class RatingVote(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NULL = "NULL"


class RecommendationType(str, Enum):
    STATE = "state"
    NATIONAL = "national"


class RecommendationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Shared properties
class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    role: UserRole = Field(default=UserRole.USER)
    full_name: str | None = Field(default=None, max_length=255)


# Demographic profile kept by registered users
class UserDemographics(SQLModel):
    age_group: str | None = Field(default=None, max_length=64)
    race_ethnicity: str | None = Field(default=None, max_length=128)
    gender: str | None = Field(default=None, max_length=64)
    pronoun1: str | None = Field(default=None, max_length=32)
    pronoun2: str | None = Field(default=None, max_length=32)
    sexual_orientation: str | None = Field(default=None, max_length=64)
    income_bracket: str | None = Field(default=None, max_length=64)
    living_situation: str | None = Field(default=None, max_length=128)
    living_arrangement: str | None = Field(default=None, max_length=128)
    zipcode: str | None = Field(default=None, max_length=10)
    state: str | None = Field(default=None, max_length=2)
    resource_interests: list[str] = Field(default_factory=list, sa_type=JSON)


# Properties to receive via API on creation
class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserRegister(SQLModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    username: str | None = Field(default=None, max_length=255)


# Properties to receive via API on update, all are optional
class UserUpdate(SQLModel):
    email: EmailStr | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)


class UserProfileUpdate(SQLModel):
    full_name: str | None = Field(default=None, max_length=255)
    age_group: str | None = None
    race_ethnicity: str | None = None
    gender: str | None = None
    pronoun1: str | None = None
    pronoun2: str | None = None
    sexual_orientation: str | None = None
    income_bracket: str | None = None
    living_situation: str | None = None
    living_arrangement: str | None = None
    zipcode: str | None = Field(default=None, max_length=10)
    state: str | None = Field(default=None, max_length=2)
    resource_interests: list[str] | None = None


class UserRoleUpdate(SQLModel):
    role: str
    managed_resource_id: uuid.UUID | None = None


class UpdatePassword(SQLModel):
    email: EmailStr
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


# Database model, database table inferred from class name
class User(UserBase, UserDemographics, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    image: str | None = Field(default=None, max_length=1024)
    managed_resource_id: uuid.UUID | None = Field(
        default=None, foreign_key="resource.id", nullable=True, ondelete="SET NULL"
    )
    is_email_verified: bool = False
    otp_secret: str | None = Field(default=None, max_length=16)
    otp_expiry: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )
    favorites: list["Favorite"] = Relationship(back_populates="user", cascade_delete=True)
    ratings: list["Rating"] = Relationship(back_populates="user", cascade_delete=True)
    reviews: list["Review"] = Relationship(back_populates="user", cascade_delete=True)


# Properties to return via API, id is always required
class UserPublic(UserBase):
    id: uuid.UUID
    managed_resource_id: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserProfilePublic(UserPublic, UserDemographics):
    is_email_verified: bool = False
    favorites: list[uuid.UUID] = []


class Pagination(SQLModel):
    total: int
    page: int
    limit: int
    total_pages: int


class UsersPublic(SQLModel):
    data: list[UserPublic]
    pagination: Pagination


class UserRolePublic(SQLModel):
    message: str
    user: UserPublic


# Generic message
class Message(SQLModel):
    message: str


# JSON payload containing access token
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(SQLModel):
    sub: str | None = None


class SignupResponse(SQLModel):
    message: str
    user_id: uuid.UUID


class OtpRequest(SQLModel):
    email: EmailStr


class OtpGenerated(SQLModel):
    message: str
    user_id: uuid.UUID | None = None


class OtpVerify(SQLModel):
    user_id: uuid.UUID | None = None
    otp: str | None = None


class OtpVerified(SQLModel):
    message: str
    verified: bool


class OtpPasswordChange(OtpVerify):
    new_password: str | None = Field(default=None, min_length=8, max_length=128)


# Nested resource documents, stored as JSON columns
class Contact(BaseModel):
    phone: str = ""
    email: str = ""
    website: str = ""


class Address(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = PydanticField(
        default="", validation_alias=AliasChoices("zip_code", "zipCode", "zip")
    )
    country: str | None = None


class DayHours(BaseModel):
    open: str = ""
    close: str = ""


class OperatingHours(BaseModel):
    monday: DayHours = PydanticField(default_factory=DayHours)
    tuesday: DayHours = PydanticField(default_factory=DayHours)
    wednesday: DayHours = PydanticField(default_factory=DayHours)
    thursday: DayHours = PydanticField(default_factory=DayHours)
    friday: DayHours = PydanticField(default_factory=DayHours)
    saturday: DayHours = PydanticField(default_factory=DayHours)
    sunday: DayHours = PydanticField(default_factory=DayHours)


class GeoLocation(BaseModel):
    latitude: float = PydanticField(ge=-90, le=90)
    longitude: float = PydanticField(ge=-180, le=180)


class ResourceBase(SQLModel):
    name: str = Field(min_length=1, max_length=255, index=True)
    description: str = Field(default="")
    category: list[str] = Field(default_factory=list, sa_type=JSON)
    type: list[str] = Field(default_factory=list, sa_type=JSON)
    contact: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    address: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    operating_hours: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    eligibility_criteria: str = ""
    services_provided: list[str] = Field(default_factory=list, sa_type=JSON)
    target_audience: list[str] = Field(default_factory=list, sa_type=JSON)
    accessibility_features: list[str] = Field(default_factory=list, sa_type=JSON)
    cost: str = ""
    geo_location: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    policies: list[str] = Field(default_factory=list, sa_type=JSON)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    verified: bool = False
    profile_photo_url: str | None = Field(default=None, max_length=2048)
    banner_image_url: str | None = Field(default=None, max_length=2048)


class ResourceCreate(ResourceBase):
    contact: Contact = Field(default_factory=Contact)  # type: ignore[assignment]
    address: Address = Field(default_factory=Address)  # type: ignore[assignment]
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)  # type: ignore[assignment]
    geo_location: GeoLocation | None = None  # type: ignore[assignment]


# Every column is optional; fields the caller leaves out keep their stored value
class ResourceUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: list[str] | None = None
    type: list[str] | None = None
    contact: Contact | None = None
    address: Address | None = None
    operating_hours: OperatingHours | None = None
    eligibility_criteria: str | None = None
    services_provided: list[str] | None = None
    target_audience: list[str] | None = None
    accessibility_features: list[str] | None = None
    cost: str | None = None
    geo_location: GeoLocation | None = None
    policies: list[str] | None = None
    tags: list[str] | None = None
    verified: bool | None = None
    profile_photo_url: str | None = None
    banner_image_url: str | None = None


class BusinessResourceUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    contact: Contact | None = None
    address: Address | None = None
    operating_hours: OperatingHours | None = None


class Resource(ResourceBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    favorite_count: int = 0
    upvote_count: int = 0
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        index=True,
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )
    favorites: list["Favorite"] = Relationship(back_populates="resource", cascade_delete=True)
    ratings: list["Rating"] = Relationship(back_populates="resource", cascade_delete=True)
    reviews: list["Review"] = Relationship(back_populates="resource", cascade_delete=True)


class ResourceOwner(SQLModel):
    id: uuid.UUID
    full_name: str | None = None
    email: str


class ResourcePublic(ResourceBase):
    id: uuid.UUID
    favorite_count: int = 0
    upvote_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResourceWithOwner(ResourcePublic):
    owner: ResourceOwner | None = None


class ResourceSearchHit(ResourcePublic):
    distance: float | None = None


class ResourcesPublic(SQLModel):
    data: list[ResourcePublic]
    pagination: Pagination


class ResourceSearchPage(SQLModel):
    data: list[ResourceSearchHit]
    pagination: Pagination


class BusinessAccess(SQLModel):
    has_access: bool


class Favorite(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "resource_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    resource_id: uuid.UUID = Field(
        foreign_key="resource.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    user: User | None = Relationship(back_populates="favorites")
    resource: Resource | None = Relationship(back_populates="favorites")


class FavoriteToggled(SQLModel):
    success: bool = True
    is_favorited: bool
    favorite_count: int


class FavoriteStatus(SQLModel):
    is_favorited: bool
    favorite_count: int


class FavoriteRef(SQLModel):
    resource_id: uuid.UUID


class UserFavorites(SQLModel):
    favorites: list[FavoriteRef]


class Rating(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "resource_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    resource_id: uuid.UUID = Field(
        foreign_key="resource.id", nullable=False, ondelete="CASCADE", index=True
    )
    value: int  # +1 upvote, -1 downvote
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )
    user: User | None = Relationship(back_populates="ratings")
    resource: Resource | None = Relationship(back_populates="ratings")


class RatingIn(SQLModel):
    rating: str


class RatingStats(SQLModel):
    upvotes: int
    downvotes: int
    total_votes: int
    approval_percentage: int
    user_rating: RatingVote = RatingVote.NULL


class RatingResult(SQLModel):
    success: bool = True
    rating: RatingVote
    upvotes: int
    downvotes: int
    approval_percentage: int


class RatingRef(SQLModel):
    resource_id: uuid.UUID
    rating: RatingVote


class UserRatings(SQLModel):
    ratings: list[RatingRef]


class ReviewBase(SQLModel):
    content: str = Field(max_length=1000)


class Review(ReviewBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    resource_id: uuid.UUID = Field(
        foreign_key="resource.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )
    user: User | None = Relationship(back_populates="reviews")
    resource: Resource | None = Relationship(back_populates="reviews")


class ReviewIn(SQLModel):
    content: Any = None


class ReviewPublic(ReviewBase):
    id: uuid.UUID
    user_id: uuid.UUID
    resource_id: uuid.UUID
    author_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReviewsPublic(SQLModel):
    reviews: list[ReviewPublic]


class ReviewEnvelope(SQLModel):
    review: ReviewPublic


class RecommendationBase(SQLModel):
    name: str = Field(max_length=255)
    type: RecommendationType
    state: str | None = Field(default=None, max_length=64)
    description: str = ""
    category: list[str] = Field(default_factory=list, sa_type=JSON)
    note: str = ""
    contact: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    address: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    submitted_by: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)


# All optional; required fields are checked in the route
class RecommendationCreate(SQLModel):
    name: str | None = None
    type: str | None = None
    state: str | None = None
    description: str | None = None
    category: list[str] | None = None
    note: str | None = None
    contact: Contact | None = None
    address: Address | None = None
    submitted_by: str | None = None
    email: str | None = None


class ResourceRecommendation(RecommendationBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    status: RecommendationStatus = Field(default=RecommendationStatus.PENDING)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )


class RecommendationPublic(RecommendationBase):
    id: uuid.UUID
    status: RecommendationStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RecommendationCreated(SQLModel):
    message: str
    id: uuid.UUID


class RecommendationStatusIn(SQLModel):
    status: str | None = None


class RecommendationStatusUpdated(SQLModel):
    message: str
    recommendation: RecommendationPublic


class UserCounts(SQLModel):
    total: int
    active: int
    frozen: int


class ResourceCounts(SQLModel):
    total: int


class Analytics(SQLModel):
    users: UserCounts
    resources: ResourceCounts


class BatchGeocodeResult(SQLModel):
    results: dict[str, dict[str, float]]
    errors: dict[str, str]
    total_processed: int
    success_count: int
    error_count: int


class ImageUploaded(SQLModel):
    success: bool = True
    type: str
    mime_type: str
    storage: str
    file_path: str | None = None
    image_data: str | None = None


class AddressBatch(SQLModel):
    addresses: list[str] | None = None


class ZipcodeBatch(SQLModel):
    zipcodes: list[str] | None = None
