from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple, cast
from uuid import uuid4

import pytest

from src.application.dtos.demand_dto import DemandHeatmapRequestDTO
from src.application.use_cases.demand_forecast_use_case import (
    DemandForecastUseCase,
    floor_to_bucket,
)
from src.application.use_cases.feature_builder import calendar_fields
from src.domain.entities.demand import (
    BoundingBox,
    DemandLevel,
    DemandPrediction,
    PredictionTimeframe,
)
from src.domain.entities.errors import (
    DemandDependencyError,
    DemandOperationError,
    DemandValidationError,
)
from src.domain.entities.forecast_model import (
    ForecastConfig,
    ModelFeatures,
    ModelWeights,
)
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.infrastructure.database.mongo_database import MongoDatabase
from src.infrastructure.repositories.demand_forecast_repository import (
    DemandForecastRepository,
)
from tests.conftest import FIXED_NOW, FakeMongoDatabase, make_prediction

DRIVER_CELL = "40.7500,-73.9900"
UTC = timezone.utc


class _GeoIndexer(IGeoCellIndexer):
    resolution = 7

    def __init__(self, cells: Optional[List[str]] = None):
        self.cells = cells
        self.enumerations = 0

    def cell_from_coordinate(self, latitude: float, longitude: float) -> str:
        return f"{latitude:.4f},{longitude:.4f}"

    def cell_center(self, h3_index: str) -> Tuple[float, float]:
        latitude, longitude = h3_index.split(",")
        return float(latitude), float(longitude)

    def cells_in_bounding_box(
        self,
        min_latitude: float,
        min_longitude: float,
        max_latitude: float,
        max_longitude: float,
    ) -> List[str]:
        self.enumerations += 1
        if self.cells is not None:
            return list(self.cells)
        return [self.cell_from_coordinate(min_latitude, min_longitude)]

    def neighbor_ring(self, h3_index: str) -> List[str]:  # pragma: no cover
        return []

    def is_valid_cell(self, h3_index: str) -> bool:  # pragma: no cover
        return "," in h3_index


class _FeatureBuilder:
    def __init__(
        self,
        geo_indexer: _GeoIndexer,
        failing_cells: Sequence[str] = (),
        driver_counts: Optional[Dict[str, int]] = None,
    ):
        self.geo_indexer = geo_indexer
        self.failing_cells = set(failing_cells)
        self.driver_counts = driver_counts or {}
        self.calls: List[Tuple[float, float, datetime]] = []
        self.active = 0
        self.max_active = 0

    async def build(
        self, latitude: float, longitude: float, target_time: datetime
    ) -> ModelFeatures:
        self.calls.append((latitude, longitude, target_time))
        h3_index = self.geo_indexer.cell_from_coordinate(latitude, longitude)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.active -= 1
        if h3_index in self.failing_cells:
            raise DemandDependencyError(
                f"Failed to load trend for cell {h3_index}",
                details={"h3_index": h3_index, "signal": "trend"},
            )
        return ModelFeatures(
            h3_index=h3_index,
            target_time=target_time,
            hist_avg_rides=10.0,
            hist_std_rides=2.0,
            recent_rides_15min=3,
            recent_rides_1hr=12,
            recent_trend=0.1,
            current_drivers=self.driver_counts.get(h3_index, 2),
            **calendar_fields(target_time, "UTC"),
        )

    async def get_driver_count(self, h3_index: str) -> int:
        return self.driver_counts.get(h3_index, 0)


class _UnsavableRepository(DemandForecastRepository):
    async def save_prediction(self, prediction: DemandPrediction) -> None:
        raise RuntimeError("write concern failed")


class _BrokenHotspotRepository(DemandForecastRepository):
    async def get_top_hotspots(
        self, timeframe: PredictionTimeframe, limit: int
    ) -> List[DemandPrediction]:
        raise RuntimeError("mongo down")

    async def get_predictions_in_bounding_box(
        self,
        timeframe: PredictionTimeframe,
        min_demand_level: Optional[DemandLevel] = None,
    ) -> List[DemandPrediction]:
        raise RuntimeError("mongo down")


@pytest.fixture()
def repository(fake_mongo_database: FakeMongoDatabase) -> DemandForecastRepository:
    return DemandForecastRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )


def _use_case(
    repository: DemandForecastRepository,
    geo_indexer: Optional[_GeoIndexer] = None,
    feature_builder: Optional[_FeatureBuilder] = None,
    config: Optional[ForecastConfig] = None,
) -> DemandForecastUseCase:
    geo_indexer = geo_indexer or _GeoIndexer()
    builder = feature_builder or _FeatureBuilder(geo_indexer)
    return DemandForecastUseCase(
        repository=repository,
        feature_builder=builder,  # type: ignore[arg-type]
        geo_indexer=geo_indexer,
        config=config or ForecastConfig(),
        clock=lambda: FIXED_NOW,
    )


def test_floor_to_bucket_truncates_to_quarter_hour() -> None:
    moment = datetime(2024, 6, 12, 14, 44, 59, 123, tzinfo=timezone.utc)

    assert floor_to_bucket(moment) == datetime(2024, 6, 12, 14, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "timeframe, expected",
    [
        (PredictionTimeframe.MIN_15, datetime(2024, 6, 12, 14, 15, tzinfo=UTC)),
        (PredictionTimeframe.MIN_30, datetime(2024, 6, 12, 14, 30, tzinfo=UTC)),
        ("1hour", datetime(2024, 6, 12, 15, 0, tzinfo=UTC)),
    ],
)
async def test_generate_prediction_targets_floored_bucket(
    repository: DemandForecastRepository, timeframe, expected: datetime
) -> None:
    use_case = _use_case(repository)

    prediction = await use_case.generate_prediction(40.75, -73.99, timeframe)

    assert prediction.h3_index == DRIVER_CELL
    assert prediction.prediction_time == expected
    assert prediction.timeframe == PredictionTimeframe(timeframe)
    assert prediction.generated_at == FIXED_NOW


@pytest.mark.asyncio
async def test_generate_prediction_persists_result(
    repository: DemandForecastRepository,
) -> None:
    use_case = _use_case(repository)

    prediction = await use_case.generate_prediction(
        40.75, -73.99, PredictionTimeframe.MIN_30
    )

    stored = await repository.get_prediction(
        DRIVER_CELL, prediction.prediction_time, PredictionTimeframe.MIN_30
    )
    assert stored is not None
    assert stored.id == prediction.id
    assert prediction.predicted_rides >= 0
    assert 0 <= prediction.hotspot_score <= 100
    assert 1 <= prediction.reposition_priority <= 10
    assert prediction.lower_bound <= prediction.predicted_rides
    assert prediction.predicted_rides <= prediction.upper_bound
    assert prediction.feature_contributions == ModelWeights().to_contributions()


@pytest.mark.asyncio
async def test_generate_prediction_rejects_invalid_coordinates(
    repository: DemandForecastRepository,
) -> None:
    geo_indexer = _GeoIndexer()
    builder = _FeatureBuilder(geo_indexer)
    use_case = _use_case(repository, geo_indexer, builder)

    with pytest.raises(DemandValidationError):
        await use_case.generate_prediction(91.0, -73.99, PredictionTimeframe.MIN_30)

    assert builder.calls == []


@pytest.mark.asyncio
async def test_generate_prediction_rejects_unknown_timeframe(
    repository: DemandForecastRepository,
) -> None:
    with pytest.raises(DemandValidationError) as exc_info:
        await _use_case(repository).generate_prediction(40.75, -73.99, "3hour")

    assert exc_info.value.details["supported"] == [
        "15min",
        "30min",
        "1hour",
        "2hour",
        "4hour",
    ]


@pytest.mark.asyncio
async def test_generate_prediction_rejects_disabled_timeframe(
    repository: DemandForecastRepository,
) -> None:
    config = ForecastConfig(supported_timeframes=(PredictionTimeframe.MIN_30,))

    with pytest.raises(DemandValidationError) as exc_info:
        await _use_case(repository, config=config).generate_prediction(
            40.75, -73.99, PredictionTimeframe.HOUR_1
        )

    assert exc_info.value.details["supported"] == ["30min"]


@pytest.mark.asyncio
async def test_generate_prediction_survives_save_failure(
    fake_mongo_database: FakeMongoDatabase,
) -> None:
    repository = _UnsavableRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )

    prediction = await _use_case(repository).generate_prediction(
        40.75, -73.99, PredictionTimeframe.MIN_30
    )

    assert prediction.h3_index == DRIVER_CELL
    assert fake_mongo_database.get_collection("demand_predictions").documents == []


@pytest.mark.asyncio
async def test_generate_prediction_propagates_core_signal_failure(
    repository: DemandForecastRepository,
) -> None:
    geo_indexer = _GeoIndexer()
    builder = _FeatureBuilder(geo_indexer, failing_cells=[DRIVER_CELL])

    with pytest.raises(DemandDependencyError):
        await _use_case(repository, geo_indexer, builder).generate_prediction(
            40.75, -73.99, PredictionTimeframe.MIN_30
        )


@pytest.mark.asyncio
async def test_low_confidence_prediction_is_still_returned(
    repository: DemandForecastRepository,
) -> None:
    use_case = _use_case(repository, config=ForecastConfig(min_confidence=1.0))

    prediction = await use_case.generate_prediction(
        40.75, -73.99, PredictionTimeframe.MIN_30
    )

    assert prediction.confidence < 1.0


@pytest.mark.asyncio
async def test_area_prediction_for_point_box_yields_a_cell(
    repository: DemandForecastRepository,
) -> None:
    box = BoundingBox(40.75, -73.99, 40.75, -73.99)

    predictions = await _use_case(repository).generate_predictions_for_area(
        box, PredictionTimeframe.MIN_30
    )

    assert [prediction.h3_index for prediction in predictions] == [DRIVER_CELL]


@pytest.mark.asyncio
async def test_area_prediction_omits_failed_cells(
    repository: DemandForecastRepository,
) -> None:
    cells = ["40.7000,-74.0000", "40.7100,-74.0000", "40.7200,-74.0000"]
    geo_indexer = _GeoIndexer(cells)
    builder = _FeatureBuilder(geo_indexer, failing_cells=[cells[1]])
    use_case = _use_case(repository, geo_indexer, builder)

    predictions = await use_case.generate_predictions_for_area(
        BoundingBox(40.7, -74.0, 40.72, -74.0), PredictionTimeframe.MIN_30
    )

    assert sorted(prediction.h3_index for prediction in predictions) == [
        cells[0],
        cells[2],
    ]


@pytest.mark.asyncio
async def test_area_prediction_raises_when_every_cell_fails(
    repository: DemandForecastRepository,
) -> None:
    cells = ["40.7000,-74.0000", "40.7100,-74.0000"]
    geo_indexer = _GeoIndexer(cells)
    builder = _FeatureBuilder(geo_indexer, failing_cells=cells)

    with pytest.raises(DemandDependencyError) as exc_info:
        await _use_case(repository, geo_indexer, builder).generate_predictions_for_area(
            BoundingBox(40.7, -74.0, 40.71, -74.0), PredictionTimeframe.MIN_30
        )

    assert exc_info.value.details == {"cells": 2, "failed": 2}


@pytest.mark.asyncio
async def test_area_prediction_bounds_concurrency(
    repository: DemandForecastRepository,
) -> None:
    cells = [f"40.{7000 + offset},-74.0000" for offset in range(6)]
    geo_indexer = _GeoIndexer(cells)
    builder = _FeatureBuilder(geo_indexer)
    use_case = _use_case(
        repository, geo_indexer, builder, ForecastConfig(max_concurrency=2)
    )

    predictions = await use_case.generate_predictions_for_area(
        BoundingBox(40.7, -74.0, 40.71, -74.0), PredictionTimeframe.MIN_30
    )

    assert len(predictions) == 6
    assert builder.max_active <= 2


@pytest.mark.asyncio
async def test_area_prediction_rejects_inverted_box(
    repository: DemandForecastRepository,
) -> None:
    with pytest.raises(DemandValidationError):
        await _use_case(repository).generate_predictions_for_area(
            BoundingBox(40.8, -74.0, 40.7, -73.9), PredictionTimeframe.MIN_30
        )


@pytest.mark.asyncio
async def test_area_prediction_rejects_oversized_box_before_enumerating(
    repository: DemandForecastRepository,
) -> None:
    geo_indexer = _GeoIndexer()
    builder = _FeatureBuilder(geo_indexer)
    use_case = _use_case(repository, geo_indexer, builder)

    with pytest.raises(DemandValidationError) as exc_info:
        await use_case.generate_predictions_for_area(
            BoundingBox(30.0, -90.0, 40.0, -80.0), PredictionTimeframe.MIN_30
        )

    assert exc_info.value.details["max_area_km2"] == 2500.0
    assert geo_indexer.enumerations == 0
    assert builder.calls == []


@pytest.mark.asyncio
async def test_area_limit_follows_configuration(
    repository: DemandForecastRepository,
) -> None:
    box = BoundingBox(40.7, -74.0, 40.8, -73.9)
    strict = _use_case(repository, config=ForecastConfig(max_area_km2=10.0))

    with pytest.raises(DemandValidationError):
        await strict.generate_predictions_for_area(box, PredictionTimeframe.MIN_30)

    predictions = await _use_case(repository).generate_predictions_for_area(
        box, PredictionTimeframe.MIN_30
    )
    assert len(predictions) == 1


@pytest.mark.asyncio
async def test_top_hotspots_are_ranked_with_live_driver_counts(
    repository: DemandForecastRepository,
) -> None:
    for cell, score in (
        ("40.7000,-74.0000", 40.0),
        ("40.7100,-74.0000", 90.0),
        ("40.7200,-74.0000", 65.0),
    ):
        await repository.save_prediction(
            make_prediction(h3_index=cell, hotspot_score=score, recommended_drivers=8)
        )
    geo_indexer = _GeoIndexer()
    builder = _FeatureBuilder(geo_indexer, driver_counts={"40.7100,-74.0000": 11})

    zones = await _use_case(repository, geo_indexer, builder).get_top_hotspots(
        "30min", limit=2
    )

    assert [zone.h3_index for zone in zones] == [
        "40.7100,-74.0000",
        "40.7200,-74.0000",
    ]
    assert zones[0].current_drivers == 11
    assert zones[0].gap == -3
    assert zones[1].gap == 8
    assert (zones[0].center_latitude, zones[0].center_longitude) == (40.71, -74.0)
    assert zones[0].valid_until == FIXED_NOW + timedelta(minutes=23)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -1])
async def test_top_hotspots_reject_non_positive_limit(
    repository: DemandForecastRepository, limit: int
) -> None:
    with pytest.raises(DemandValidationError):
        await _use_case(repository).get_top_hotspots("30min", limit=limit)


@pytest.mark.asyncio
async def test_top_hotspots_wrap_repository_failure(
    fake_mongo_database: FakeMongoDatabase,
) -> None:
    repository = _BrokenHotspotRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )

    with pytest.raises(DemandOperationError):
        await _use_case(repository).get_top_hotspots("30min")


@pytest.mark.asyncio
async def test_heatmap_keeps_cells_inside_box(
    repository: DemandForecastRepository,
) -> None:
    await repository.save_prediction(make_prediction(h3_index="40.7500,-73.9900"))
    await repository.save_prediction(make_prediction(h3_index="41.0000,-73.9900"))
    request = DemandHeatmapRequestDTO(
        min_latitude=40.7,
        min_longitude=-74.05,
        max_latitude=40.8,
        max_longitude=-73.9,
        timeframe=PredictionTimeframe.MIN_30,
    )

    heatmap = await _use_case(repository).get_demand_heatmap(request)

    assert [zone.h3_index for zone in heatmap.zones] == ["40.7500,-73.9900"]
    assert heatmap.bounding_box == BoundingBox(40.7, -74.05, 40.8, -73.9)
    assert heatmap.generated_at == FIXED_NOW
    assert heatmap.timeframe == PredictionTimeframe.MIN_30


@pytest.mark.asyncio
async def test_heatmap_filters_by_minimum_level(
    repository: DemandForecastRepository,
) -> None:
    await repository.save_prediction(
        make_prediction(h3_index="40.7500,-73.9900", demand_level=DemandLevel.LOW)
    )
    await repository.save_prediction(
        make_prediction(h3_index="40.7600,-73.9900", demand_level=DemandLevel.EXTREME)
    )
    request = DemandHeatmapRequestDTO(
        min_latitude=40.7,
        min_longitude=-74.05,
        max_latitude=40.8,
        max_longitude=-73.9,
        timeframe=PredictionTimeframe.MIN_30,
        min_demand_level=DemandLevel.HIGH,
    )

    heatmap = await _use_case(repository).get_demand_heatmap(request)

    assert [zone.h3_index for zone in heatmap.zones] == ["40.7600,-73.9900"]


@pytest.mark.asyncio
async def test_heatmap_wraps_repository_failure(
    fake_mongo_database: FakeMongoDatabase,
) -> None:
    repository = _BrokenHotspotRepository(
        cast(MongoDatabase, fake_mongo_database), clock=lambda: FIXED_NOW
    )
    request = DemandHeatmapRequestDTO(
        min_latitude=40.7, min_longitude=-74.05, max_latitude=40.8, max_longitude=-73.9
    )

    with pytest.raises(DemandOperationError):
        await _use_case(repository).get_demand_heatmap(request)


async def _seed_reposition_hotspots(repository: DemandForecastRepository) -> None:
    hotspots = [
        # own cell, always skipped
        dict(h3_index=DRIVER_CELL, hotspot_score=99.0),
        # ~1.1 km away, adjusted priority 6
        dict(h3_index="40.7600,-73.9900", hotspot_score=50.0),
        # ~3.3 km away, adjusted priority 3
        dict(h3_index="40.7800,-73.9900", hotspot_score=90.0),
        # ~2.2 km away, adjusted priority 3
        dict(
            h3_index="40.7700,-73.9900",
            hotspot_score=83.0,
            predicted_rides=20.0,
            recommended_drivers=5,
            expected_surge=2.0,
        ),
        # ~22 km away, beyond the default radius
        dict(h3_index="40.9500,-73.9900", hotspot_score=95.0),
    ]
    for overrides in hotspots:
        await repository.save_prediction(make_prediction(**overrides))


@pytest.mark.asyncio
async def test_reposition_orders_nearby_hotspots(
    repository: DemandForecastRepository,
) -> None:
    await _seed_reposition_hotspots(repository)
    driver_id = uuid4()

    result = await _use_case(repository).get_reposition_recommendations(
        driver_id, 40.75, -73.99
    )

    targets = [item.target_h3_index for item in result.recommendations]
    assert targets == ["40.7700,-73.9900", "40.7800,-73.9900", "40.7600,-73.9900"]
    assert [item.priority for item in result.recommendations] == [3, 3, 6]

    best = result.recommendations[0]
    assert best.driver_id == driver_id
    assert best.current_h3_index == DRIVER_CELL
    assert best.distance_km == pytest.approx(2.224, abs=0.01)
    assert best.expected_rides == pytest.approx(4.0)
    assert best.expected_earnings == pytest.approx(120.0)
    assert best.reason == "High surge expected"
    travel = best.recommended_arrival - FIXED_NOW
    assert travel.total_seconds() == pytest.approx(2.224 / 30 * 3600, abs=5)
    assert result.estimated_earnings == best.expected_earnings


@pytest.mark.asyncio
async def test_reposition_reports_current_zone(
    repository: DemandForecastRepository,
) -> None:
    await _seed_reposition_hotspots(repository)

    result = await _use_case(repository).get_reposition_recommendations(
        uuid4(), 40.75, -73.99
    )

    assert result.current_zone is not None
    assert result.current_zone.h3_index == DRIVER_CELL
    assert result.current_zone.center_latitude == 40.75


@pytest.mark.asyncio
async def test_reposition_respects_limit_and_radius(
    repository: DemandForecastRepository,
) -> None:
    await _seed_reposition_hotspots(repository)
    use_case = _use_case(repository)

    limited = await use_case.get_reposition_recommendations(
        uuid4(), 40.75, -73.99, limit=1
    )
    nearby = await use_case.get_reposition_recommendations(
        uuid4(), 40.75, -73.99, max_distance_km=2.5
    )
    wide = await use_case.get_reposition_recommendations(
        uuid4(), 40.75, -73.99, max_distance_km=50.0, limit=10
    )

    assert [item.target_h3_index for item in limited.recommendations] == [
        "40.7700,-73.9900"
    ]
    assert {item.target_h3_index for item in nearby.recommendations} == {
        "40.7600,-73.9900",
        "40.7700,-73.9900",
    }
    assert len(wide.recommendations) == 4
    assert DRIVER_CELL not in {item.target_h3_index for item in wide.recommendations}


@pytest.mark.asyncio
async def test_reposition_zero_limit_uses_default(
    repository: DemandForecastRepository,
) -> None:
    await _seed_reposition_hotspots(repository)

    result = await _use_case(repository).get_reposition_recommendations(
        uuid4(), 40.75, -73.99, max_distance_km=50.0, limit=0
    )

    assert len(result.recommendations) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": -1},
        {"max_distance_km": -0.5},
        {"max_distance_km": float("nan")},
        {"max_distance_km": float("inf")},
        {"latitude": 120.0},
    ],
)
async def test_reposition_rejects_invalid_input(
    repository: DemandForecastRepository, kwargs
) -> None:
    arguments = {"latitude": 40.75, "longitude": -73.99}
    arguments.update(kwargs)

    with pytest.raises(DemandValidationError):
        await _use_case(repository).get_reposition_recommendations(
            uuid4(), **arguments
        )


@pytest.mark.asyncio
async def test_reposition_nan_radius_never_admits_far_hotspots(
    repository: DemandForecastRepository,
) -> None:
    await _seed_reposition_hotspots(repository)

    with pytest.raises(DemandValidationError) as exc_info:
        await _use_case(repository).get_reposition_recommendations(
            uuid4(), 40.75, -73.99, max_distance_km=float("nan")
        )

    assert "max_distance_km" in exc_info.value.details


@pytest.mark.asyncio
async def test_reposition_without_hotspots_is_empty(
    repository: DemandForecastRepository,
) -> None:
    result = await _use_case(repository).get_reposition_recommendations(
        uuid4(), 40.75, -73.99
    )

    assert result.current_zone is None
    assert result.recommendations == []
    assert result.estimated_earnings == 0.0
