import unittest
from unittest.mock import AsyncMock, patch

import httpx

from advo.geocoding import Coordinates, Geocoder, GeocodingError


def _ok(lat: float, lng: float) -> httpx.Response:
    return httpx.Response(
        200, json={"status": "OK", "results": [{"geometry": {"location": {"lat": lat, "lng": lng}}}]}
    )


class TestGeocoder(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.requests: list[httpx.Request] = []

    def _geocoder(self, handler, api_key="test-key") -> Geocoder:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return Geocoder(api_key=api_key, transport=httpx.MockTransport(recording_handler))

    async def test_geocode_returns_first_result(self):
        geocoder = self._geocoder(lambda request: _ok(40.75, -73.99))

        coordinates = await geocoder.geocode("350 5th Ave, New York, NY")

        self.assertEqual(coordinates, Coordinates(latitude=40.75, longitude=-73.99))
        self.assertEqual(self.requests[0].url.params["address"], "350 5th Ave, New York, NY")
        self.assertEqual(self.requests[0].url.params["key"], "test-key")

    async def test_cache_key_ignores_case_and_whitespace(self):
        geocoder = self._geocoder(lambda request: _ok(1.0, 2.0))

        await geocoder.geocode("Main St, Springfield")
        await geocoder.geocode("  main st, springfield ")

        self.assertEqual(len(self.requests), 1)

    async def test_clear_cache_forces_new_lookup(self):
        geocoder = self._geocoder(lambda request: _ok(1.0, 2.0))

        await geocoder.geocode("Main St")
        geocoder.clear_cache()
        await geocoder.geocode("Main St")

        self.assertEqual(len(self.requests), 2)

    async def test_zip_code_lookup_appends_country(self):
        geocoder = self._geocoder(lambda request: _ok(1.0, 2.0))

        await geocoder.geocode_zip_code("10001")

        self.assertEqual(self.requests[0].url.params["address"], "10001, USA")

    async def test_empty_address_raises(self):
        geocoder = self._geocoder(lambda request: _ok(1.0, 2.0))

        with self.assertRaises(GeocodingError):
            await geocoder.geocode("   ")
        self.assertEqual(self.requests, [])

    async def test_missing_api_key_raises(self):
        geocoder = self._geocoder(lambda request: _ok(1.0, 2.0), api_key="")

        with self.assertRaises(GeocodingError):
            await geocoder.geocode("Main St")

    async def test_non_ok_status_raises(self):
        geocoder = self._geocoder(
            lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        )

        with self.assertRaisesRegex(GeocodingError, "ZERO_RESULTS"):
            await geocoder.geocode("Nowhere")

    async def test_http_error_raises(self):
        geocoder = self._geocoder(lambda request: httpx.Response(503))

        with self.assertRaisesRegex(GeocodingError, "503"):
            await geocoder.geocode("Main St")

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        geocoder = self._geocoder(handler)

        with self.assertRaises(GeocodingError):
            await geocoder.geocode("Main St")


class TestGeocodeMany(unittest.IsolatedAsyncioTestCase):
    def _geocoder(self) -> Geocoder:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["address"].startswith("bad"):
                return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
            return _ok(10.0, 20.0)

        return Geocoder(api_key="test-key", transport=httpx.MockTransport(handler))

    async def test_collects_results_and_errors(self):
        geocoder = self._geocoder()

        outcome = await geocoder.geocode_many(["good 1", "bad 1", "good 2"], delay=0)

        self.assertEqual(set(outcome.results), {"good 1", "good 2"})
        self.assertEqual(set(outcome.errors), {"bad 1"})
        self.assertEqual(outcome.total_processed, 3)
        self.assertEqual(outcome.success_count, 2)
        self.assertEqual(outcome.error_count, 1)

    async def test_sleeps_between_batches_only(self):
        geocoder = self._geocoder()
        addresses = [f"good {i}" for i in range(25)]

        with patch("advo.geocoding.asyncio.sleep", new_callable=AsyncMock) as sleep:
            outcome = await geocoder.geocode_many(addresses, batch_size=10, delay=1.5)

        self.assertEqual(outcome.success_count, 25)
        self.assertEqual(sleep.await_count, 2)
        sleep.assert_awaited_with(1.5)

    async def test_no_sleep_for_single_batch(self):
        geocoder = self._geocoder()

        with patch("advo.geocoding.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await geocoder.geocode_many(["good 1", "good 2"], delay=1.0)

        sleep.assert_not_awaited()

    async def test_duplicate_addresses_are_looked_up_once(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return _ok(10.0, 20.0)

        geocoder = Geocoder(api_key="test-key", transport=httpx.MockTransport(handler))

        outcome = await geocoder.geocode_many(["good 1", "good 1", "good 2"], delay=0)

        self.assertEqual(len(requests), 2)
        self.assertEqual(outcome.total_processed, 3)
        self.assertEqual(outcome.success_count, 2)


if __name__ == "__main__":
    unittest.main()
