"""Resource search.

A request is normalised into :class:`SearchCriteria` and then answered by one
of two query strategies:

* the full-text path, which pushes every clause into PostgreSQL and ranks the
  description with text search,
* the filtered path, which applies the same clauses in Python over rows read
  in creation order. It serves SQLite deployments and any full-text failure.

Both share the same semantics. ``category``, ``type`` and ``age_range`` must
equal some entry of the stored lists, compared whole and without regard to
case, so ``Health`` does not match ``Mental Health``. The zip code must match
the address, and the
description must match only when it is the sole criterion (otherwise it just
ranks results). A ``distance`` turns the zip code into the centre of a radius
filter applied after the query.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, func, select

from advo import crud
from advo.core.config import settings
from advo.geo import calculate_distance, is_within_distance
from advo.geocoding import Coordinates, Geocoder
from advo.models import Resource, ResourceSearchHit, ResourceSearchPage
from advo.utils import values_overlap

logger = logging.getLogger(__name__)

ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
WORD_PATTERN = re.compile(r"\w+")


class SearchValidationError(ValueError):
    """Raised for search input that cannot be normalised."""


class ResourceSearchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: Any = None
    limit: Any = None
    zip_code: str | None = None
    category: str | list[str] | None = None
    type: str | list[str] | None = None
    description: str | None = None
    age_range: str | None = None
    distance: float | None = None

    @field_validator("zip_code", mode="before")
    @classmethod
    def _zip_code_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{value:05d}"
        return value


@dataclass
class SearchCriteria:
    page: int = 1
    limit: int = 20
    zip_code: str | None = None
    category: list[str] = field(default_factory=list)
    type: list[str] = field(default_factory=list)
    description: str | None = None
    age_range: str | None = None
    distance: float | None = None

    @property
    def has_search_params(self) -> bool:
        return bool(
            self.zip_code or self.category or self.type or self.description or self.age_range
        )

    @property
    def has_required_clauses(self) -> bool:
        return bool(self.zip_code or self.category or self.type or self.age_range)

    @property
    def zip_prefix(self) -> str | None:
        return self.zip_code[:5] if self.zip_code else None


def _number_or_default(value: Any, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number or default


def _as_list(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _blank_to_none(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def normalize_search_request(request: ResourceSearchRequest) -> SearchCriteria:
    page = max(1, _number_or_default(request.page, 1))
    limit = min(
        settings.SEARCH_MAX_LIMIT,
        max(1, _number_or_default(request.limit, settings.SEARCH_DEFAULT_LIMIT)),
    )

    zip_code = _blank_to_none(request.zip_code)
    if zip_code and not ZIP_CODE_PATTERN.match(zip_code):
        raise SearchValidationError("zipCode must be a 5-digit US zip code")

    distance = request.distance
    if distance is not None:
        if distance <= 0:
            raise SearchValidationError("distance must be greater than zero")
        if not zip_code:
            raise SearchValidationError("distance requires a zipCode")

    return SearchCriteria(
        page=page,
        limit=limit,
        zip_code=zip_code,
        category=_as_list(request.category),
        type=_as_list(request.type),
        description=_blank_to_none(request.description),
        age_range=_blank_to_none(request.age_range),
        distance=distance,
    )


def _address_zip(address: dict[str, Any] | None) -> str:
    address = address or {}
    value = address.get("zip_code") or address.get("zipCode") or address.get("zip") or ""
    return str(value).strip()[:5]


def format_address(address: dict[str, Any] | None) -> str:
    address = address or {}
    street = str(address.get("street") or "").strip()
    city = str(address.get("city") or "").strip()
    region = " ".join(
        part
        for part in (str(address.get("state") or "").strip(), _address_zip(address))
        if part
    )
    return ", ".join(part for part in (street, city, region) if part)


def _stored_coordinates(resource: Resource) -> Coordinates | None:
    location = resource.geo_location or {}
    try:
        return Coordinates(
            latitude=float(location["latitude"]), longitude=float(location["longitude"])
        )
    except (KeyError, TypeError, ValueError):
        return None


def _words(text: str | None) -> set[str]:
    return set(WORD_PATTERN.findall((text or "").lower()))


def _description_score(resource: Resource, tokens: set[str]) -> int:
    return len(tokens & (_words(resource.name) | _words(resource.description)))


def _list_overlaps(column, values: list[str]):  # type: ignore[no-untyped-def]
    """SQL twin of :func:`values_overlap`: some list entry equals some value, ignoring case."""
    wanted = sorted({value.strip().lower() for value in values})
    entries = func.json_array_elements_text(column).table_valued("value")
    return (
        select(1)
        .select_from(entries)
        .where(func.lower(func.trim(entries.c.value)).in_(wanted))
        .exists()
    )


def _full_text_query(
    session: Session, criteria: SearchCriteria, *, paginate: bool
) -> tuple[list[Resource], int]:
    statement = select(Resource)
    if criteria.category:
        statement = statement.where(_list_overlaps(Resource.category, criteria.category))
    if criteria.type:
        statement = statement.where(_list_overlaps(Resource.type, criteria.type))
    if criteria.age_range:
        statement = statement.where(
            _list_overlaps(Resource.target_audience, [criteria.age_range])
        )
    if criteria.zip_prefix and criteria.distance is None:
        zip_column = func.coalesce(
            Resource.address["zip_code"].as_string(),
            Resource.address["zipCode"].as_string(),
            Resource.address["zip"].as_string(),
        )
        statement = statement.where(func.left(zip_column, 5) == criteria.zip_prefix)

    ordering = [col(Resource.created_at).desc()]
    if criteria.description:
        document = func.concat_ws(" ", Resource.name, Resource.description)
        query = func.plainto_tsquery("english", criteria.description)
        if not criteria.has_required_clauses:
            statement = statement.where(
                func.to_tsvector("english", document).bool_op("@@")(query)
            )
        rank = func.ts_rank(func.to_tsvector("english", document), query)
        ordering.insert(0, rank.desc())

    total = session.exec(select(func.count()).select_from(statement.subquery())).one()
    statement = statement.order_by(*ordering)
    if paginate:
        if (criteria.page - 1) * criteria.limit >= total:
            return [], total
        statement = statement.offset((criteria.page - 1) * criteria.limit).limit(criteria.limit)
    return list(session.exec(statement).all()), total


def _filtered_query(
    session: Session, criteria: SearchCriteria, *, paginate: bool
) -> tuple[list[Resource], int]:
    tokens = _words(criteria.description)
    resources = session.exec(select(Resource).order_by(col(Resource.created_at).desc())).all()

    scored: list[tuple[int, Resource]] = []
    for resource in resources:
        if criteria.category and not values_overlap(resource.category, criteria.category):
            continue
        if criteria.type and not values_overlap(resource.type, criteria.type):
            continue
        if criteria.age_range and not values_overlap(
            resource.target_audience, [criteria.age_range]
        ):
            continue
        if (
            criteria.zip_prefix
            and criteria.distance is None
            and _address_zip(resource.address) != criteria.zip_prefix
        ):
            continue
        score = _description_score(resource, tokens) if tokens else 0
        if tokens and not criteria.has_required_clauses and score == 0:
            continue
        scored.append((score, resource))

    if tokens:
        # stable sort keeps newest-first order among equal scores
        scored.sort(key=lambda item: item[0], reverse=True)
    matches = [resource for _, resource in scored]
    total = len(matches)
    if paginate:
        start = (criteria.page - 1) * criteria.limit
        matches = matches[start:start + criteria.limit]
    return matches, total


def _supports_full_text(session: Session) -> bool:
    return (
        settings.SEARCH_INDEX_ENABLED
        and session.get_bind().dialect.name == "postgresql"
    )


def find_resources(
    session: Session, criteria: SearchCriteria, *, paginate: bool = True
) -> tuple[list[Resource], int]:
    """Run the full-text query when available, the filtered query otherwise."""
    if _supports_full_text(session):
        try:
            return _full_text_query(session, criteria, paginate=paginate)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning(
                "Full-text resource search failed, using filtered query instead: %s", exc
            )
    return _filtered_query(session, criteria, paginate=paginate)


async def filter_by_distance(
    resources: list[Resource],
    *,
    origin: Coordinates,
    max_distance: float,
    geocoder: Geocoder,
) -> list[tuple[Resource, float]]:
    """Keep resources within ``max_distance`` miles of ``origin``, in order.

    Stored ``geo_location`` values are used as-is; the remaining resources are
    geocoded from their address. Resources that cannot be located are dropped.
    """
    located: dict[Any, Coordinates] = {}
    to_geocode: dict[Any, str] = {}
    for resource in resources:
        stored = _stored_coordinates(resource)
        if stored is not None:
            located[resource.id] = stored
            continue
        address = format_address(resource.address)
        if address:
            to_geocode[resource.id] = address
        else:
            logger.info("Resource %s has no address, skipped by distance filter", resource.id)

    if to_geocode:
        outcome = await geocoder.geocode_many(list(to_geocode.values()), delay=0)
        for resource_id, address in to_geocode.items():
            coordinates = outcome.results.get(address)
            if coordinates is None:
                logger.warning(
                    "Resource %s dropped from distance search: %s",
                    resource_id,
                    outcome.errors.get(address, "not geocoded"),
                )
                continue
            located[resource_id] = coordinates

    hits: list[tuple[Resource, float]] = []
    for resource in resources:
        point = located.get(resource.id)
        if point is None:
            continue
        if is_within_distance(
            origin.latitude, origin.longitude, point.latitude, point.longitude, max_distance
        ):
            miles = calculate_distance(
                origin.latitude, origin.longitude, point.latitude, point.longitude
            )
            hits.append((resource, round(miles, 2)))
    return hits


def _page(
    hits: list[tuple[Resource, float | None]], *, total: int, criteria: SearchCriteria
) -> ResourceSearchPage:
    return ResourceSearchPage(
        data=[
            ResourceSearchHit.model_validate(resource, update={"distance": distance})
            for resource, distance in hits
        ],
        pagination=crud.build_pagination(total=total, page=criteria.page, limit=criteria.limit),
    )


async def search_resources(
    *, session: Session, criteria: SearchCriteria, geocoder: Geocoder
) -> ResourceSearchPage:
    if not criteria.has_search_params:
        logger.info("No search parameters provided, returning all resources")
        resources, total = crud.list_resources(
            session=session, page=criteria.page, limit=criteria.limit
        )
        return _page([(r, None) for r in resources], total=total, criteria=criteria)

    if criteria.distance is None:
        resources, total = find_resources(session, criteria)
        return _page([(r, None) for r in resources], total=total, criteria=criteria)

    # GeocodingError propagates; the route answers 500
    origin = await geocoder.geocode_zip_code(criteria.zip_code or "")
    candidates, _ = find_resources(session, criteria, paginate=False)
    hits = await filter_by_distance(
        candidates, origin=origin, max_distance=criteria.distance, geocoder=geocoder
    )
    start = (criteria.page - 1) * criteria.limit
    return _page(
        list(hits[start:start + criteria.limit]), total=len(hits), criteria=criteria
    )
