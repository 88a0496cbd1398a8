import pytest

from advo.search import (
    ResourceSearchRequest,
    SearchValidationError,
    format_address,
    normalize_search_request,
)


def normalize(**payload):
    return normalize_search_request(ResourceSearchRequest.model_validate(payload))


def test_defaults():
    criteria = normalize()
    assert criteria.page == 1
    assert criteria.limit == 20
    assert not criteria.has_search_params


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        ("3", "15", (3, 15)),
        ("abc", "xyz", (1, 20)),
        (0, 0, (1, 20)),
        (-4, 500, (1, 100)),
        (2.7, -3, (2, 1)),
    ],
)
def test_page_and_limit_are_coerced(page, limit, expected):
    criteria = normalize(page=page, limit=limit)
    assert (criteria.page, criteria.limit) == expected


def test_camel_and_snake_case_keys():
    camel = normalize(zipCode="10001", ageRange="Youth")
    snake = normalize(zip_code="10001", age_range="Youth")
    assert camel == snake
    assert camel.zip_code == "10001"
    assert camel.age_range == "Youth"


def test_strings_become_lists_and_blanks_are_dropped():
    criteria = normalize(category="  Health ", type=["Legal", " ", ""], description="   ")
    assert criteria.category == ["Health"]
    assert criteria.type == ["Legal"]
    assert criteria.description is None


def test_numeric_zip_code_is_accepted():
    assert normalize(zipCode=2134).zip_code == "02134"


@pytest.mark.parametrize("zip_code", ["1234", "abcde", "12345-67", "123456"])
def test_malformed_zip_code_rejected(zip_code):
    with pytest.raises(SearchValidationError):
        normalize(zipCode=zip_code)


def test_zip_plus_four_accepted():
    criteria = normalize(zipCode="10001-1234")
    assert criteria.zip_prefix == "10001"


def test_distance_requires_zip_code():
    with pytest.raises(SearchValidationError):
        normalize(distance=10)


@pytest.mark.parametrize("distance", [0, -5])
def test_distance_must_be_positive(distance):
    with pytest.raises(SearchValidationError):
        normalize(zipCode="10001", distance=distance)


def test_description_alone_is_not_a_required_clause():
    assert not normalize(description="food").has_required_clauses
    assert normalize(description="food", category="Health").has_required_clauses


def test_format_address_skips_missing_parts():
    assert (
        format_address({"street": "1 Market St", "city": "Philadelphia", "state": "PA", "zipCode": "19103"})
        == "1 Market St, Philadelphia, PA 19103"
    )
    assert format_address({"city": "Boston"}) == "Boston"
    assert format_address(None) == ""
