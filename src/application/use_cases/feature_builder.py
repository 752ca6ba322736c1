"""Feature assembly for the demand prediction model."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Optional, TypeVar
from zoneinfo import ZoneInfo

import structlog

from src.domain.entities.errors import DemandDependencyError
from src.domain.entities.forecast_model import (
    ForecastConfig,
    ModelFeatures,
    WeatherData,
)
from src.domain.gateways.driver_location_gateway import IDriverLocationGateway
from src.domain.gateways.weather_gateway import IWeatherGateway
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.domain.repositories.demand_forecast_repository import (
    IDemandForecastRepository,
)
from src.domain.services.prediction_model import is_holiday, is_weekend_day

logger = structlog.get_logger(__name__)

T = TypeVar("T")

EVENT_SEARCH_RADIUS_KM = 5.0
EVENT_LOOKAHEAD = timedelta(hours=2)
NEIGHBOR_WINDOW_MINUTES = 30


def calendar_fields(moment: datetime, local_timezone: str) -> dict:
    """Calendar attributes of a moment seen from the configured timezone.

    Naive datetimes are interpreted as UTC. Day of week uses 0 for Sunday.
    """

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(local_timezone))
    day_of_week = (local.weekday() + 1) % 7
    return {
        "hour": local.hour,
        "day_of_week": day_of_week,
        "is_weekend": is_weekend_day(day_of_week),
        "is_holiday": is_holiday(local.date()),
        "week_of_year": local.isocalendar()[1],
        "month": local.month,
    }


class DemandFeatureBuilder:
    """Gather every signal the prediction model needs for one cell."""

    def __init__(
        self,
        repository: IDemandForecastRepository,
        geo_indexer: IGeoCellIndexer,
        config: ForecastConfig,
        weather_gateway: Optional[IWeatherGateway] = None,
        driver_location_gateway: Optional[IDriverLocationGateway] = None,
    ) -> None:
        self._repository = repository
        self._geo_indexer = geo_indexer
        self._config = config
        self._weather_gateway = weather_gateway
        self._driver_location_gateway = driver_location_gateway

    async def build(
        self, latitude: float, longitude: float, target_time: datetime
    ) -> ModelFeatures:
        h3_index = self._geo_indexer.cell_from_coordinate(latitude, longitude)
        calendar = calendar_fields(target_time, self._config.local_timezone)

        (
            historical,
            trend,
            recent_15,
            recent_60,
            neighbor_avg,
            current_drivers,
            weather,
            event,
        ) = await asyncio.gather(
            self._repository.get_historical_average(
                h3_index,
                calendar["hour"],
                calendar["day_of_week"],
                self._config.training_weeks,
            ),
            self._repository.get_recent_demand_trend(h3_index),
            self._optional(
                self._repository.get_recent_demand(h3_index, 15),
                default=0,
                signal="recent_demand_15min",
                h3_index=h3_index,
            ),
            self._optional(
                self._repository.get_recent_demand(h3_index, 60),
                default=0,
                signal="recent_demand_1hr",
                h3_index=h3_index,
            ),
            self._neighbor_average(h3_index),
            self.get_driver_count(h3_index),
            self._weather(latitude, longitude, h3_index),
            self._largest_event(latitude, longitude, h3_index),
            return_exceptions=True,
        )

        for signal, result in (("historical_average", historical), ("trend", trend)):
            if isinstance(result, Exception):
                logger.error(
                    "forecast.features.core_signal_failed",
                    h3_index=h3_index,
                    signal=signal,
                    error=str(result),
                )
                raise DemandDependencyError(
                    f"Failed to load {signal} for cell {h3_index}",
                    details={"h3_index": h3_index, "signal": signal},
                ) from result
            if isinstance(result, BaseException):
                raise result

        hist_avg, hist_std = historical

        return ModelFeatures(
            h3_index=h3_index,
            target_time=target_time,
            hist_avg_rides=float(hist_avg),
            hist_std_rides=float(hist_std),
            recent_rides_15min=int(recent_15),
            recent_rides_1hr=int(recent_60),
            recent_trend=float(trend),
            neighbor_demand_avg=float(neighbor_avg),
            current_drivers=int(current_drivers),
            weather_code=weather.condition_code,
            temperature=weather.temperature,
            precipitation_probability=weather.precipitation_probability,
            event_nearby=event is not None,
            event_scale=event.expected_attendees if event is not None else 0,
            **calendar,
        )

    async def get_driver_count(self, h3_index: str) -> int:
        """Live driver count of a cell, 0 when the provider is unavailable."""
        if self._driver_location_gateway is None:
            return 0
        return await self._optional(
            self._driver_location_gateway.get_driver_count_in_cell(h3_index),
            default=0,
            signal="driver_count",
            h3_index=h3_index,
        )

    async def _neighbor_average(self, h3_index: str) -> float:
        neighbors = self._geo_indexer.neighbor_ring(h3_index)
        if not neighbors:
            return 0.0
        return await self._optional(
            self._repository.get_neighbor_demand_average(
                neighbors, NEIGHBOR_WINDOW_MINUTES
            ),
            default=0.0,
            signal="neighbor_demand",
            h3_index=h3_index,
        )

    async def _weather(
        self, latitude: float, longitude: float, h3_index: str
    ) -> WeatherData:
        if not self._config.weather_enabled or self._weather_gateway is None:
            return WeatherData()
        return await self._optional(
            self._weather_gateway.get_current_weather(latitude, longitude),
            default=WeatherData(),
            signal="weather",
            h3_index=h3_index,
        )

    async def _largest_event(self, latitude: float, longitude: float, h3_index: str):
        if not self._config.events_enabled:
            return None
        events = await self._optional(
            self._repository.get_events_near_location(
                latitude, longitude, EVENT_SEARCH_RADIUS_KM, EVENT_LOOKAHEAD
            ),
            default=[],
            signal="special_events",
            h3_index=h3_index,
        )
        if not events:
            return None
        return max(events, key=lambda event: event.expected_attendees)

    async def _optional(
        self, call: Awaitable[T], *, default: T, signal: str, h3_index: str
    ) -> T:
        try:
            return await asyncio.wait_for(
                call, timeout=self._config.collaborator_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "forecast.features.signal_timeout",
                h3_index=h3_index,
                signal=signal,
                timeout=self._config.collaborator_timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "forecast.features.signal_unavailable",
                h3_index=h3_index,
                signal=signal,
                error=str(exc),
            )
        return default
