from unittest.mock import AsyncMock

import pytest

from advo.geocoding import BatchGeocodeOutcome, Coordinates
from advo.models import Resource
from advo.search import filter_by_distance

ORIGIN = Coordinates(latitude=40.7506, longitude=-73.9972)


def _resource(name, **fields):
    return Resource(name=name, **fields)


@pytest.mark.asyncio
async def test_stored_coordinates_skip_geocoding():
    geocoder = AsyncMock()
    near = _resource("Near", geo_location={"latitude": 40.6890, "longitude": -73.9928})
    far = _resource("Far", geo_location={"latitude": 39.9526, "longitude": -75.1652})

    hits = await filter_by_distance([near, far], origin=ORIGIN, max_distance=10, geocoder=geocoder)

    assert [(resource.name, round(distance)) for resource, distance in hits] == [("Near", 4)]
    geocoder.geocode_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_addresses_are_batch_geocoded_without_delay():
    address = {"street": "1 Market St", "city": "Philadelphia", "state": "PA", "zip_code": "19103"}
    geocoder = AsyncMock()
    geocoder.geocode_many.return_value = BatchGeocodeOutcome(
        results={"1 Market St, Philadelphia, PA 19103": Coordinates(39.9522, -75.1639)},
        errors={"Atlantis": "Geocoding failed: ZERO_RESULTS"},
    )
    located = _resource("Located", address=address)
    lost = _resource("Lost", address={"city": "Atlantis"})
    homeless = _resource("No address")

    hits = await filter_by_distance(
        [located, lost, homeless], origin=ORIGIN, max_distance=100, geocoder=geocoder
    )

    assert [resource.name for resource, _ in hits] == ["Located"]
    geocoder.geocode_many.assert_awaited_once_with(
        ["1 Market St, Philadelphia, PA 19103", "Atlantis"], delay=0
    )


@pytest.mark.asyncio
async def test_order_is_preserved():
    geocoder = AsyncMock()
    resources = [
        _resource("Farther", geo_location={"latitude": 40.80, "longitude": -73.95}),
        _resource("Closer", geo_location={"latitude": 40.7510, "longitude": -73.9970}),
    ]

    hits = await filter_by_distance(resources, origin=ORIGIN, max_distance=50, geocoder=geocoder)

    assert [resource.name for resource, _ in hits] == ["Farther", "Closer"]
    assert all(round(distance, 2) == distance for _, distance in hits)
