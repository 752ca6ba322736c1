"""Use cases for demand data collection and forecast accuracy feedback."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Union
from uuid import UUID

import structlog

from src.application.use_cases.demand_forecast_use_case import floor_to_bucket
from src.application.use_cases.feature_builder import calendar_fields
from src.domain.entities.demand import (
    ForecastAccuracyMetrics,
    HistoricalDemandRecord,
    PredictionTimeframe,
)
from src.domain.entities.errors import (
    DemandOperationError,
    DemandValidationError,
    PredictionNotFoundError,
)
from src.domain.entities.forecast_model import ForecastConfig
from src.domain.gateways.weather_gateway import IWeatherGateway
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.domain.repositories.demand_forecast_repository import (
    IDemandForecastRepository,
)
from src.domain.services.demand_validator import validate_positive

logger = structlog.get_logger(__name__)

DEFAULT_ACCURACY_DAYS = 7


class DemandDataUseCase:
    """Record demand observations and evaluate past predictions."""

    def __init__(
        self,
        repository: IDemandForecastRepository,
        geo_indexer: IGeoCellIndexer,
        config: ForecastConfig,
        weather_gateway: Optional[IWeatherGateway] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._geo_indexer = geo_indexer
        self._config = config
        self._weather_gateway = weather_gateway
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def record_demand_snapshot(
        self,
        h3_index: str,
        ride_requests: int,
        completed_rides: int,
        available_drivers: int,
        avg_wait_time: float = 0.0,
        surge_multiplier: float = 1.0,
    ) -> HistoricalDemandRecord:
        """
        Store the demand observed in a cell for the current 15-minute bucket.

        Weather is attached when enabled and available.

        Raises:
            DemandValidationError: If the cell id or a count is invalid
            DemandOperationError: If the observation cannot be stored
        """

        errors = []
        if not self._geo_indexer.is_valid_cell(h3_index):
            errors.append(f"'{h3_index}' is not a valid cell id.")
        for name, value in (
            ("ride_requests", ride_requests),
            ("completed_rides", completed_rides),
            ("available_drivers", available_drivers),
            ("avg_wait_time", avg_wait_time),
        ):
            if value < 0:
                errors.append(f"{name} cannot be negative.")
        if surge_multiplier <= 0:
            errors.append("surge_multiplier must be greater than 0.")
        if errors:
            raise DemandValidationError(
                "Demand snapshot is invalid.", details={"errors": errors}
            )

        now = self._clock()
        calendar = calendar_fields(now, self._config.local_timezone)

        weather_condition = "unknown"
        temperature = None
        precipitation_mm = None
        if self._config.weather_enabled and self._weather_gateway is not None:
            latitude, longitude = self._geo_indexer.cell_center(h3_index)
            try:
                weather = await asyncio.wait_for(
                    self._weather_gateway.get_current_weather(latitude, longitude),
                    timeout=self._config.collaborator_timeout_seconds,
                )
                weather_condition = weather.condition
                temperature = weather.temperature
                precipitation_mm = weather.precipitation_mm
            except Exception as exc:
                logger.warning(
                    "demand.snapshot.weather_unavailable",
                    h3_index=h3_index,
                    error=str(exc) or type(exc).__name__,
                )

        record = HistoricalDemandRecord(
            h3_index=h3_index,
            timestamp=floor_to_bucket(now),
            hour=calendar["hour"],
            day_of_week=calendar["day_of_week"],
            is_holiday=calendar["is_holiday"],
            ride_requests=ride_requests,
            completed_rides=completed_rides,
            available_drivers=available_drivers,
            avg_wait_time_min=avg_wait_time,
            surge_multiplier=surge_multiplier,
            weather_condition=weather_condition,
            temperature=temperature,
            precipitation_mm=precipitation_mm,
            created_at=now,
        )

        try:
            await self._repository.record_demand(record)
        except Exception as exc:
            logger.error(
                "demand.snapshot.save_failed", h3_index=h3_index, error=str(exc)
            )
            raise DemandOperationError(
                "Failed to record demand snapshot", details={"h3_index": h3_index}
            ) from exc

        logger.debug(
            "demand.snapshot.recorded",
            h3_index=h3_index,
            timestamp=record.timestamp.isoformat(),
            ride_requests=ride_requests,
        )
        return record

    async def get_model_accuracy(
        self,
        timeframe: Union[PredictionTimeframe, str],
        days_back: int = DEFAULT_ACCURACY_DAYS,
    ) -> ForecastAccuracyMetrics:
        try:
            timeframe = PredictionTimeframe(timeframe)
        except ValueError as exc:
            raise DemandValidationError(
                f"Unsupported timeframe '{timeframe}'.",
                details={"supported": [tf.value for tf in PredictionTimeframe]},
            ) from exc
        validate_positive(days_back, "days_back")

        try:
            return await self._repository.get_accuracy_metrics(timeframe, days_back)
        except Exception as exc:
            logger.error(
                "demand.accuracy.load_failed",
                timeframe=timeframe.value,
                error=str(exc),
            )
            raise DemandOperationError(
                "Failed to compute accuracy metrics",
                details={"timeframe": timeframe.value, "days_back": days_back},
            ) from exc

    async def record_prediction_accuracy(
        self, prediction_id: UUID, actual_rides: int
    ) -> None:
        if actual_rides < 0:
            raise DemandValidationError(
                "actual_rides cannot be negative.",
                details={"actual_rides": actual_rides},
            )

        try:
            updated = await self._repository.record_prediction_accuracy(
                prediction_id, actual_rides
            )
        except Exception as exc:
            logger.error(
                "demand.accuracy.record_failed",
                prediction_id=str(prediction_id),
                error=str(exc),
            )
            raise DemandOperationError(
                "Failed to record prediction accuracy",
                details={"prediction_id": str(prediction_id)},
            ) from exc

        if not updated:
            raise PredictionNotFoundError(str(prediction_id))

        logger.info(
            "demand.accuracy.recorded",
            prediction_id=str(prediction_id),
            actual_rides=actual_rides,
        )

    async def cleanup_old_predictions(self, days_old: int) -> int:
        validate_positive(days_old, "days_old")
        try:
            deleted = await self._repository.cleanup_old_predictions(days_old)
        except Exception as exc:
            logger.error("demand.cleanup.failed", days_old=days_old, error=str(exc))
            raise DemandOperationError(
                "Failed to clean up old predictions", details={"days_old": days_old}
            ) from exc

        logger.info("demand.cleanup.completed", days_old=days_old, deleted=deleted)
        return deleted
