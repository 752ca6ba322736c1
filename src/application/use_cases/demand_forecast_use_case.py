"""
Demand forecasting use case.

Orchestrates feature building, prediction, classification and ranking for
single cells and whole areas, and serves the hotspot, heatmap and driver
repositioning read models built on top of stored predictions.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union
from uuid import UUID

import structlog

from src.application.dtos.demand_dto import DemandHeatmapRequestDTO
from src.application.use_cases.feature_builder import DemandFeatureBuilder
from src.domain.entities.demand import (
    BoundingBox,
    DemandHeatmap,
    DemandPrediction,
    DriverRepositionRecommendation,
    HotspotZone,
    PredictionTimeframe,
    RepositionRecommendations,
)
from src.domain.entities.errors import (
    DemandDependencyError,
    DemandOperationError,
    DemandValidationError,
)
from src.domain.entities.forecast_model import ForecastConfig
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.domain.repositories.demand_forecast_repository import (
    IDemandForecastRepository,
)
from src.domain.services.demand_classifier import (
    calculate_expected_surge,
    calculate_recommended_drivers,
    classify_demand_level,
)
from src.domain.services.demand_validator import (
    validate_bounding_box,
    validate_bounding_box_area,
    validate_coordinates,
)
from src.domain.services.hotspot_ranker import (
    calculate_distance_adjusted_priority,
    calculate_hotspot_score,
    calculate_reposition_priority,
    get_reposition_reason,
    haversine_distance,
)
from src.domain.services.prediction_model import DemandPredictionModel

logger = structlog.get_logger(__name__)

BUCKET_MINUTES = 15
REPOSITION_TIMEFRAME = PredictionTimeframe.MIN_30
REPOSITION_CANDIDATE_POOL = 20
DEFAULT_REPOSITION_LIMIT = 3
DEFAULT_MAX_DISTANCE_KM = 10.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def floor_to_bucket(moment: datetime) -> datetime:
    """Truncate a datetime to its 15-minute clock boundary."""
    return moment.replace(
        minute=moment.minute - moment.minute % BUCKET_MINUTES,
        second=0,
        microsecond=0,
    )


class DemandForecastUseCase:
    """Generate and serve demand forecasts per geographic cell."""

    def __init__(
        self,
        repository: IDemandForecastRepository,
        feature_builder: DemandFeatureBuilder,
        geo_indexer: IGeoCellIndexer,
        config: ForecastConfig,
        model: Optional[DemandPredictionModel] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._feature_builder = feature_builder
        self._geo_indexer = geo_indexer
        self._config = config
        self._model = model or DemandPredictionModel(config.weights)
        self._clock = clock or _utcnow

    async def generate_prediction(
        self,
        latitude: float,
        longitude: float,
        timeframe: Union[PredictionTimeframe, str],
    ) -> DemandPrediction:
        """
        Forecast demand for the cell containing a coordinate.

        The prediction is persisted on a best-effort basis: a storage
        failure is logged and the prediction is still returned.

        Raises:
            DemandValidationError: If the coordinate or timeframe is invalid
            DemandDependencyError: If a core signal cannot be loaded
        """

        validate_coordinates(latitude, longitude)
        timeframe = self._resolve_timeframe(timeframe)

        now = self._clock()
        target_time = floor_to_bucket(now + timeframe.duration)

        features = await self._feature_builder.build(latitude, longitude, target_time)
        model_prediction = self._model.predict(features)
        predicted = model_prediction.predicted_rides

        hotspot_score = calculate_hotspot_score(
            predicted, features.current_drivers, features.recent_trend
        )
        prediction = DemandPrediction(
            h3_index=features.h3_index,
            prediction_time=target_time,
            timeframe=timeframe,
            predicted_rides=predicted,
            demand_level=classify_demand_level(predicted, features.hist_avg_rides),
            confidence=model_prediction.confidence,
            recommended_drivers=calculate_recommended_drivers(predicted),
            expected_surge=calculate_expected_surge(
                predicted, features.current_drivers
            ),
            hotspot_score=hotspot_score,
            reposition_priority=calculate_reposition_priority(hotspot_score),
            feature_contributions=self._config.weights.to_contributions(),
            lower_bound=model_prediction.lower_bound,
            upper_bound=model_prediction.upper_bound,
            generated_at=now,
        )

        if prediction.confidence < self._config.min_confidence:
            logger.info(
                "forecast.prediction.low_confidence",
                h3_index=prediction.h3_index,
                confidence=prediction.confidence,
                min_confidence=self._config.min_confidence,
            )

        try:
            await self._repository.save_prediction(prediction)
        except Exception as exc:
            logger.error(
                "forecast.prediction.save_failed",
                h3_index=prediction.h3_index,
                prediction_time=prediction.prediction_time.isoformat(),
                error=str(exc),
            )

        logger.info(
            "forecast.prediction.generated",
            h3_index=prediction.h3_index,
            timeframe=timeframe.value,
            predicted_rides=round(predicted, 2),
            demand_level=prediction.demand_level.value,
            confidence=prediction.confidence,
        )
        return prediction

    async def generate_predictions_for_area(
        self, box: BoundingBox, timeframe: Union[PredictionTimeframe, str]
    ) -> List[DemandPrediction]:
        """
        Forecast every cell covering a bounding box.

        Cells fail independently; failed cells are logged and omitted.

        Raises:
            DemandValidationError: If the box is invalid or too large, or the
                timeframe is unsupported
            DemandDependencyError: If every cell failed
        """

        validate_bounding_box(box)
        validate_bounding_box_area(box, self._config.max_area_km2)
        timeframe = self._resolve_timeframe(timeframe)

        cells = self._geo_indexer.cells_in_bounding_box(
            box.min_latitude, box.min_longitude, box.max_latitude, box.max_longitude
        )
        semaphore = asyncio.Semaphore(max(1, self._config.max_concurrency))

        async def _predict_cell(h3_index: str) -> DemandPrediction:
            latitude, longitude = self._geo_indexer.cell_center(h3_index)
            async with semaphore:
                return await self.generate_prediction(latitude, longitude, timeframe)

        results = await asyncio.gather(
            *(_predict_cell(cell) for cell in cells), return_exceptions=True
        )

        predictions: List[DemandPrediction] = []
        failures = 0
        for h3_index, result in zip(cells, results):
            if isinstance(result, Exception):
                failures += 1
                logger.warning(
                    "forecast.area.cell_failed",
                    h3_index=h3_index,
                    error=str(result),
                )
                continue
            if isinstance(result, BaseException):
                raise result
            predictions.append(result)

        if cells and not predictions:
            raise DemandDependencyError(
                "Failed to generate predictions for every cell of the area",
                details={"cells": len(cells), "failed": failures},
            )

        logger.info(
            "forecast.area.completed",
            timeframe=timeframe.value,
            cells=len(cells),
            generated=len(predictions),
            failed=failures,
        )
        return predictions

    async def get_top_hotspots(
        self, timeframe: Union[PredictionTimeframe, str], limit: int = 10
    ) -> List[HotspotZone]:
        """Upcoming zones ranked by hotspot score, with live driver counts."""

        timeframe = self._resolve_timeframe(timeframe)
        if limit <= 0:
            raise DemandValidationError(
                "limit must be greater than 0.", details={"limit": limit}
            )
        return await self._hotspot_zones(timeframe, limit)

    async def _hotspot_zones(
        self, timeframe: PredictionTimeframe, limit: int
    ) -> List[HotspotZone]:
        try:
            predictions = await self._repository.get_top_hotspots(timeframe, limit)
        except Exception as exc:
            logger.error(
                "forecast.hotspots.load_failed",
                timeframe=timeframe.value,
                error=str(exc),
            )
            raise DemandOperationError(
                "Failed to load hotspots", details={"timeframe": timeframe.value}
            ) from exc

        driver_counts = await asyncio.gather(
            *(
                self._feature_builder.get_driver_count(prediction.h3_index)
                for prediction in predictions
            )
        )
        return [
            self._to_zone(prediction, drivers)
            for prediction, drivers in zip(predictions, driver_counts)
        ]

    async def get_demand_heatmap(
        self, request: DemandHeatmapRequestDTO
    ) -> DemandHeatmap:
        """Stored forecasts whose cell centre lies inside the requested box."""

        box = request.to_domain()
        validate_bounding_box(box)
        timeframe = self._resolve_timeframe(request.timeframe)

        try:
            predictions = await self._repository.get_predictions_in_bounding_box(
                timeframe, request.min_demand_level
            )
        except Exception as exc:
            logger.error(
                "forecast.heatmap.load_failed",
                timeframe=timeframe.value,
                error=str(exc),
            )
            raise DemandOperationError(
                "Failed to load heatmap predictions",
                details={"timeframe": timeframe.value},
            ) from exc

        inside = []
        for prediction in predictions:
            center = self._geo_indexer.cell_center(prediction.h3_index)
            if box.contains(*center):
                inside.append((prediction, center))

        driver_counts = await asyncio.gather(
            *(
                self._feature_builder.get_driver_count(prediction.h3_index)
                for prediction, _ in inside
            )
        )
        zones = [
            self._to_zone(prediction, drivers, center=center)
            for (prediction, center), drivers in zip(inside, driver_counts)
        ]

        return DemandHeatmap(
            generated_at=self._clock(),
            timeframe=timeframe,
            bounding_box=box,
            zones=zones,
        )

    async def get_reposition_recommendations(
        self,
        driver_id: UUID,
        latitude: float,
        longitude: float,
        max_distance_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> RepositionRecommendations:
        """
        Suggest nearby hotspots an idle driver should move to.

        Candidates are the top hotspots of the 30-minute horizon, excluding
        the driver's own cell and anything farther than ``max_distance_km``.
        They are ordered by distance-adjusted priority, then by distance,
        then by descending hotspot score.
        """

        validate_coordinates(latitude, longitude)
        if max_distance_km is not None and (
            not math.isfinite(max_distance_km) or max_distance_km < 0
        ):
            raise DemandValidationError(
                "max_distance_km must be a finite, non-negative number.",
                details={"max_distance_km": max_distance_km},
            )
        if limit is not None and limit < 0:
            raise DemandValidationError(
                "limit cannot be negative.", details={"limit": limit}
            )
        max_distance_km = max_distance_km or DEFAULT_MAX_DISTANCE_KM
        limit = limit or DEFAULT_REPOSITION_LIMIT

        current_h3_index = self._geo_indexer.cell_from_coordinate(latitude, longitude)
        current_zone = await self._current_zone(current_h3_index, latitude, longitude)

        hotspots = await self._hotspot_zones(
            REPOSITION_TIMEFRAME, REPOSITION_CANDIDATE_POOL
        )

        now = self._clock()
        candidates = []
        for hotspot in hotspots:
            if hotspot.h3_index == current_h3_index:
                continue
            distance = haversine_distance(
                latitude, longitude, hotspot.center_latitude, hotspot.center_longitude
            )
            if distance > max_distance_km:
                continue
            priority = calculate_distance_adjusted_priority(hotspot, distance)
            candidates.append((priority, distance, hotspot))

        candidates.sort(key=lambda item: (item[0], item[1], -item[2].hotspot_score))

        recommendations = [
            self._to_recommendation(
                driver_id, current_h3_index, hotspot, distance, priority, now
            )
            for priority, distance, hotspot in candidates[:limit]
        ]
        estimated_earnings = (
            recommendations[0].expected_earnings if recommendations else 0.0
        )

        logger.info(
            "forecast.reposition.recommended",
            driver_id=str(driver_id),
            h3_index=current_h3_index,
            candidates=len(candidates),
            returned=len(recommendations),
        )
        return RepositionRecommendations(
            current_zone=current_zone,
            recommendations=recommendations,
            estimated_earnings=estimated_earnings,
        )

    async def _current_zone(
        self, h3_index: str, latitude: float, longitude: float
    ) -> Optional[HotspotZone]:
        try:
            prediction = await self._repository.get_latest_prediction(
                h3_index, REPOSITION_TIMEFRAME
            )
        except Exception as exc:
            logger.warning(
                "forecast.reposition.current_zone_unavailable",
                h3_index=h3_index,
                error=str(exc),
            )
            return None
        if prediction is None:
            return None
        drivers = await self._feature_builder.get_driver_count(h3_index)
        return self._to_zone(prediction, drivers, center=(latitude, longitude))

    def _to_recommendation(
        self,
        driver_id: UUID,
        current_h3_index: str,
        hotspot: HotspotZone,
        distance: float,
        priority: int,
        now: datetime,
    ) -> DriverRepositionRecommendation:
        expected_rides = hotspot.predicted_rides / max(hotspot.needed_drivers, 1)
        expected_earnings = (
            expected_rides * self._config.base_fare_per_ride * hotspot.expected_surge
        )
        travel_hours = distance / self._config.average_speed_kmh
        return DriverRepositionRecommendation(
            driver_id=driver_id,
            current_h3_index=current_h3_index,
            target_h3_index=hotspot.h3_index,
            target_latitude=hotspot.center_latitude,
            target_longitude=hotspot.center_longitude,
            distance_km=distance,
            priority=priority,
            expected_rides=expected_rides,
            expected_earnings=expected_earnings,
            expected_surge=hotspot.expected_surge,
            recommended_arrival=now + timedelta(hours=travel_hours),
            reason=get_reposition_reason(hotspot),
        )

    def _to_zone(
        self,
        prediction: DemandPrediction,
        current_drivers: int,
        center: Optional[tuple] = None,
    ) -> HotspotZone:
        latitude, longitude = center or self._geo_indexer.cell_center(
            prediction.h3_index
        )
        return HotspotZone(
            h3_index=prediction.h3_index,
            center_latitude=latitude,
            center_longitude=longitude,
            demand_level=prediction.demand_level,
            predicted_rides=prediction.predicted_rides,
            current_drivers=current_drivers,
            needed_drivers=prediction.recommended_drivers,
            gap=prediction.recommended_drivers - current_drivers,
            expected_surge=prediction.expected_surge,
            hotspot_score=prediction.hotspot_score,
            valid_until=prediction.prediction_time,
        )

    def _resolve_timeframe(
        self, timeframe: Union[PredictionTimeframe, str]
    ) -> PredictionTimeframe:
        try:
            resolved = PredictionTimeframe(timeframe)
        except ValueError as exc:
            raise DemandValidationError(
                f"Unsupported timeframe '{timeframe}'.",
                details={"supported": [tf.value for tf in PredictionTimeframe]},
            ) from exc
        if resolved not in self._config.supported_timeframes:
            raise DemandValidationError(
                f"Timeframe '{resolved.value}' is not enabled.",
                details={
                    "supported": [tf.value for tf in self._config.supported_timeframes]
                },
            )
        return resolved
