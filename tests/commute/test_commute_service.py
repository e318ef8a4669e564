"""
Tests for the commute service
"""

import asyncio
import math
from unittest.mock import AsyncMock, Mock

import pytest

from swipehouse.commute.cache import CommuteCache
from swipehouse.commute.client import MapboxClient
from swipehouse.commute.models import CommuteMode, GeoPoint
from swipehouse.commute.service import (
    CommuteService,
    apply_commute_durations,
    chunk,
    listing_ids_hash,
    seconds_to_minutes,
)
from swipehouse.core.models import Listing
from swipehouse.core.storage import MemoryCacheStorage


def make_listings(count):
    return [
        Listing(id=f"l{i}", title=f"Listing {i}", lat=40.70 + i * 0.001, lng=-74.0, price=3000)
        for i in range(count)
    ]


def seconds_for(origins):
    """Matrix response giving every origin 10 minutes"""
    return {origin.id: 600.0 for origin in origins}


@pytest.fixture
def mock_mapbox_client():
    """Mock Mapbox client"""
    client = Mock(spec=MapboxClient)
    client.geocode = AsyncMock(return_value=GeoPoint(lat=40.7359, lng=-73.9903))
    client.matrix_durations = AsyncMock(
        side_effect=lambda origins, destination, mode: seconds_for(origins)
    )
    return client


@pytest.fixture
def service(mock_mapbox_client):
    return CommuteService(mock_mapbox_client, cache=CommuteCache(MemoryCacheStorage()))


class TestGetCommuteDurations:
    """Test get_commute_durations"""

    @pytest.mark.asyncio
    async def test_computes_minutes(self, service, mock_mapbox_client):
        listings = make_listings(3)

        result = await service.get_commute_durations("Union Square", listings, CommuteMode.DRIVING)

        assert result == {"l0": 10, "l1": 10, "l2": 10}
        mock_mapbox_client.geocode.assert_awaited_once_with("Union Square")
        mock_mapbox_client.matrix_durations.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", ["", "   ", None])
    async def test_blank_address(self, service, mock_mapbox_client, address):
        assert await service.get_commute_durations(address, make_listings(2)) is None
        mock_mapbox_client.geocode.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_listings(self, service, mock_mapbox_client):
        assert await service.get_commute_durations("Union Square", []) is None
        mock_mapbox_client.geocode.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_identical_inputs_served_from_cache(self, service, mock_mapbox_client):
        listings = make_listings(3)

        first = await service.get_commute_durations("Union Square", listings, "walking")
        second = await service.get_commute_durations("  Union Square ", listings, "walking")

        assert first == second
        assert mock_mapbox_client.geocode.await_count == 1
        assert mock_mapbox_client.matrix_durations.await_count == 1

    @pytest.mark.asyncio
    async def test_mode_change_recomputes(self, service, mock_mapbox_client):
        listings = make_listings(3)

        await service.get_commute_durations("Union Square", listings, CommuteMode.WALKING)
        await service.get_commute_durations("Union Square", listings, CommuteMode.CYCLING)

        assert mock_mapbox_client.matrix_durations.await_count == 2

    @pytest.mark.asyncio
    async def test_new_listing_set_recomputes_and_replaces_slot(self, service, mock_mapbox_client):
        first_set = make_listings(3)
        second_set = make_listings(4)

        await service.get_commute_durations("Union Square", first_set)
        await service.get_commute_durations("Union Square", second_set)
        await service.get_commute_durations("Union Square", first_set)

        assert mock_mapbox_client.matrix_durations.await_count == 3

    @pytest.mark.asyncio
    async def test_invalid_coordinates_are_skipped(self, service, mock_mapbox_client):
        listings = [
            {"id": "ok", "lat": 40.71, "lng": -74.0},
            {"id": "nan", "lat": math.nan, "lng": -74.0},
            {"id": "far", "lat": 95.0, "lng": -74.0},
            {"id": "", "lat": 40.72, "lng": -74.0},
            {"id": "str", "lat": "40.7", "lng": -74.0},
        ]

        result = await service.get_commute_durations("Union Square", listings)

        assert result == {"ok": 10}
        origins = mock_mapbox_client.matrix_durations.call_args[0][0]
        assert [origin.id for origin in origins] == ["ok"]

    @pytest.mark.asyncio
    async def test_no_valid_coordinates(self, service, mock_mapbox_client):
        listings = [{"id": "nan", "lat": math.nan, "lng": 0}]

        assert await service.get_commute_durations("Union Square", listings) is None
        mock_mapbox_client.geocode.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_geocode_failure(self, service, mock_mapbox_client):
        mock_mapbox_client.geocode.return_value = None

        assert await service.get_commute_durations("Nowhere", make_listings(2)) is None
        mock_mapbox_client.matrix_durations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chunks_with_one_failure(self, mock_mapbox_client):
        """Test 60 listings in chunks of 25 make 3 requests and survive a failed chunk"""
        calls = []

        async def matrix(origins, destination, mode):
            calls.append(origins)
            if origins[0].id == "l25":
                return None
            return seconds_for(origins)

        mock_mapbox_client.matrix_durations.side_effect = matrix
        service = CommuteService(mock_mapbox_client, cache=CommuteCache(MemoryCacheStorage()), chunk_size=25)

        result = await service.get_commute_durations("Union Square", make_listings(60))

        assert len(calls) == 3
        assert [len(batch) for batch in calls] == [25, 25, 10]
        assert len(result) == 35
        assert "l0" in result and "l59" in result
        assert "l25" not in result

    @pytest.mark.asyncio
    async def test_chunk_exception_is_skipped(self, mock_mapbox_client):
        async def matrix(origins, destination, mode):
            if origins[0].id == "l0":
                raise RuntimeError("unexpected")
            return seconds_for(origins)

        mock_mapbox_client.matrix_durations.side_effect = matrix
        service = CommuteService(mock_mapbox_client, chunk_size=2)

        result = await service.get_commute_durations("Union Square", make_listings(4))

        assert result == {"l2": 10, "l3": 10}

    @pytest.mark.asyncio
    async def test_all_chunks_fail(self, service, mock_mapbox_client):
        mock_mapbox_client.matrix_durations.side_effect = None
        mock_mapbox_client.matrix_durations.return_value = None

        assert await service.get_commute_durations("Union Square", make_listings(3)) is None

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, mock_mapbox_client):
        active = 0
        peak = 0

        async def matrix(origins, destination, mode):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            return seconds_for(origins)

        mock_mapbox_client.matrix_durations.side_effect = matrix
        service = CommuteService(mock_mapbox_client, chunk_size=1, max_concurrent=2)

        result = await service.get_commute_durations("Union Square", make_listings(6))

        assert len(result) == 6
        assert peak <= 2


class TestHelpers:
    """Test commute helpers"""

    @pytest.mark.parametrize(
        "seconds,minutes",
        [(0, 1), (20, 1), (89, 1), (90, 2), (600, 10), (629.9, 10), (630, 11)],
    )
    def test_seconds_to_minutes(self, seconds, minutes):
        assert seconds_to_minutes(seconds) == minutes

    def test_chunk(self):
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunk([], 3) == []

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValueError):
            chunk([1], 0)

    def test_listing_ids_hash_depends_on_order(self):
        listings = make_listings(3)

        assert listing_ids_hash(listings) == listing_ids_hash(make_listings(3))
        assert listing_ids_hash(listings) != listing_ids_hash(list(reversed(listings)))

    def test_apply_commute_durations(self):
        listings = make_listings(3)

        updated = apply_commute_durations(listings, {"l0": 12, "l2": 30})

        assert [l.commute_mins for l in updated] == [12, 0, 30]
        assert listings[0].commute_mins == 0
