from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Tuple, cast

import pytest

from src.application.dtos.event_dto import CreateSpecialEventRequestDTO
from src.application.use_cases.special_event_use_case import (
    SpecialEventUseCase,
    parse_timestamp,
)
from src.domain.entities.demand import SpecialEvent
from src.domain.entities.errors import DemandOperationError, DemandValidationError
from src.domain.entities.forecast_model import ForecastConfig
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.infrastructure.database.mongo_database import MongoDatabase
from src.infrastructure.repositories.demand_forecast_repository import (
    DemandForecastRepository,
)
from tests.conftest import FIXED_NOW, FakeMongoDatabase, make_event


class _GeoIndexer(IGeoCellIndexer):
    resolution = 7

    def cell_from_coordinate(self, latitude: float, longitude: float) -> str:
        return f"{latitude:.4f},{longitude:.4f}"

    def cell_center(self, h3_index: str) -> Tuple[float, float]:  # pragma: no cover
        latitude, longitude = h3_index.split(",")
        return float(latitude), float(longitude)

    def cells_in_bounding_box(self, *box: float) -> List[str]:  # pragma: no cover
        return []

    def neighbor_ring(self, h3_index: str) -> List[str]:  # pragma: no cover
        return []

    def is_valid_cell(self, h3_index: str) -> bool:  # pragma: no cover
        return "," in h3_index


class _UnavailableRepository(DemandForecastRepository):
    async def create_event(self, event: SpecialEvent) -> None:
        raise RuntimeError("connection reset")

    async def get_upcoming_events(
        self, start_time: datetime, end_time: datetime
    ) -> List[SpecialEvent]:
        raise RuntimeError("connection reset")


@pytest.fixture()
def repository(fake_mongo_database: FakeMongoDatabase) -> DemandForecastRepository:
    return DemandForecastRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )


def _use_case(repository: DemandForecastRepository) -> SpecialEventUseCase:
    return SpecialEventUseCase(
        repository=repository,
        geo_indexer=_GeoIndexer(),
        config=ForecastConfig(),
        clock=lambda: FIXED_NOW,
    )


def _request(**overrides) -> CreateSpecialEventRequestDTO:
    values = {
        "name": "Championship final",
        "event_type": "sports",
        "latitude": 40.7505,
        "longitude": -73.9934,
        "start_time": "2024-06-12T19:00:00Z",
        "end_time": "2024-06-12T23:00:00Z",
        "expected_attendees": 20000,
    }
    values.update(overrides)
    return CreateSpecialEventRequestDTO(**values)


def test_parse_timestamp_accepts_rfc3339_and_naive_values() -> None:
    expected = datetime(2024, 6, 12, 19, 0, tzinfo=timezone.utc)

    assert parse_timestamp("2024-06-12T19:00:00Z", "start_time") == expected
    assert parse_timestamp("2024-06-12T15:00:00-04:00", "start_time") == expected
    assert parse_timestamp("2024-06-12T19:00:00", "start_time") == expected


def test_parse_timestamp_rejects_garbage() -> None:
    with pytest.raises(DemandValidationError) as exc_info:
        parse_timestamp("next friday", "end_time")

    assert exc_info.value.details == {
        "errors": ["end_time must be an RFC 3339 timestamp."]
    }


@pytest.mark.asyncio
async def test_create_event_derives_cell_and_multiplier(
    repository: DemandForecastRepository, fake_mongo_database: FakeMongoDatabase
) -> None:
    event = await _use_case(repository).create_event(_request())

    assert event.h3_index == "40.7505,-73.9934"
    assert event.demand_multiplier == 2.5
    assert event.impact_radius_km == 5.0
    assert event.start_time == datetime(2024, 6, 12, 19, 0, tzinfo=timezone.utc)
    assert event.created_at == FIXED_NOW
    assert event.updated_at == FIXED_NOW
    stored = fake_mongo_database.get_collection("special_events").documents
    assert [doc["id"] for doc in stored] == [str(event.id)]


@pytest.mark.asyncio
async def test_create_event_keeps_explicit_radius(
    repository: DemandForecastRepository,
) -> None:
    event = await _use_case(repository).create_event(
        _request(impact_radius_km=2.0, expected_attendees=600)
    )

    assert event.impact_radius_km == 2.0
    assert event.demand_multiplier == 1.1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"end_time": "2024-06-12T18:00:00Z"},
        {"end_time": "2024-06-12T19:00:00Z"},
        {"start_time": "tomorrow"},
        {"latitude": 95.0},
        {"longitude": -181.0},
        {"impact_radius_km": -1.0},
    ],
)
async def test_create_event_rejects_invalid_requests(
    repository: DemandForecastRepository,
    fake_mongo_database: FakeMongoDatabase,
    overrides,
) -> None:
    with pytest.raises(DemandValidationError):
        await _use_case(repository).create_event(_request(**overrides))

    assert fake_mongo_database.get_collection("special_events").documents == []


@pytest.mark.asyncio
async def test_create_event_wraps_storage_failure(
    fake_mongo_database: FakeMongoDatabase,
) -> None:
    repository = _UnavailableRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )

    with pytest.raises(DemandOperationError):
        await _use_case(repository).create_event(_request())


@pytest.mark.asyncio
async def test_upcoming_events_overlap_lookahead_window(
    repository: DemandForecastRepository,
) -> None:
    running = make_event(
        name="running",
        start_time=FIXED_NOW - timedelta(hours=1),
        end_time=FIXED_NOW + timedelta(hours=1),
    )
    later = make_event(
        name="later",
        start_time=FIXED_NOW + timedelta(hours=5),
        end_time=FIXED_NOW + timedelta(hours=7),
    )
    finished = make_event(
        name="finished",
        start_time=FIXED_NOW - timedelta(hours=5),
        end_time=FIXED_NOW - timedelta(hours=2),
    )
    next_week = make_event(
        name="next week",
        start_time=FIXED_NOW + timedelta(days=7),
        end_time=FIXED_NOW + timedelta(days=7, hours=2),
    )
    for event in (later, finished, next_week, running):
        await repository.create_event(event)

    upcoming = await _use_case(repository).get_upcoming_events(hours=24)

    assert [event.name for event in upcoming] == ["running", "later"]


@pytest.mark.asyncio
@pytest.mark.parametrize("hours", [0, -4])
async def test_upcoming_events_rejects_non_positive_hours(
    repository: DemandForecastRepository, hours: int
) -> None:
    with pytest.raises(DemandValidationError):
        await _use_case(repository).get_upcoming_events(hours=hours)


@pytest.mark.asyncio
async def test_upcoming_events_wraps_storage_failure(
    fake_mongo_database: FakeMongoDatabase,
) -> None:
    repository = _UnavailableRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )

    with pytest.raises(DemandOperationError):
        await _use_case(repository).get_upcoming_events()
