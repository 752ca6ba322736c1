"""Use cases for managing special events that affect demand."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import structlog

from src.application.dtos.event_dto import CreateSpecialEventRequestDTO
from src.domain.entities.demand import SpecialEvent
from src.domain.entities.errors import DemandOperationError, DemandValidationError
from src.domain.entities.forecast_model import ForecastConfig
from src.domain.ports.geo_cell_indexer import IGeoCellIndexer
from src.domain.repositories.demand_forecast_repository import (
    IDemandForecastRepository,
)
from src.domain.services.demand_validator import (
    validate_coordinates,
    validate_positive,
)
from src.domain.services.prediction_model import get_event_multiplier

logger = structlog.get_logger(__name__)

DEFAULT_IMPACT_RADIUS_KM = 5.0
DEFAULT_LOOKAHEAD_HOURS = 24


def parse_timestamp(value: str, field_name: str) -> datetime:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError) as exc:
        raise DemandValidationError(
            f"Invalid {field_name} format.",
            details={"errors": [f"{field_name} must be an RFC 3339 timestamp."]},
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SpecialEventUseCase:
    """Register special events and list the upcoming ones."""

    def __init__(
        self,
        repository: IDemandForecastRepository,
        geo_indexer: IGeoCellIndexer,
        config: ForecastConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._geo_indexer = geo_indexer
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_event(self, request: CreateSpecialEventRequestDTO) -> SpecialEvent:
        start_time = parse_timestamp(request.start_time, "start_time")
        end_time = parse_timestamp(request.end_time, "end_time")
        if end_time <= start_time:
            raise DemandValidationError(
                "end_time must be after start_time.",
                details={"errors": ["end_time must be after start_time."]},
            )
        validate_coordinates(request.latitude, request.longitude)
        if request.expected_attendees < 0:
            raise DemandValidationError(
                "expected_attendees cannot be negative.",
                details={"expected_attendees": request.expected_attendees},
            )

        impact_radius = request.impact_radius_km or DEFAULT_IMPACT_RADIUS_KM
        validate_positive(impact_radius, "impact_radius_km")

        now = self._clock()
        event = SpecialEvent(
            name=request.name,
            event_type=request.event_type,
            latitude=request.latitude,
            longitude=request.longitude,
            h3_index=self._geo_indexer.cell_from_coordinate(
                request.latitude, request.longitude
            ),
            start_time=start_time,
            end_time=end_time,
            expected_attendees=request.expected_attendees,
            impact_radius_km=impact_radius,
            demand_multiplier=get_event_multiplier(request.expected_attendees),
            is_recurring=request.is_recurring,
            created_at=now,
            updated_at=now,
        )

        try:
            await self._repository.create_event(event)
        except Exception as exc:
            logger.error("event.create_failed", name=event.name, error=str(exc))
            raise DemandOperationError(
                "Failed to create event", details={"name": event.name}
            ) from exc

        logger.info(
            "event.created",
            event_id=str(event.id),
            name=event.name,
            expected_attendees=event.expected_attendees,
        )
        return event

    async def get_upcoming_events(
        self, hours: int = DEFAULT_LOOKAHEAD_HOURS
    ) -> List[SpecialEvent]:
        validate_positive(hours, "hours")
        start_time = self._clock()
        end_time = start_time + timedelta(hours=hours)
        try:
            return await self._repository.get_upcoming_events(start_time, end_time)
        except Exception as exc:
            logger.error("event.list_failed", hours=hours, error=str(exc))
            raise DemandOperationError(
                "Failed to load upcoming events", details={"hours": hours}
            ) from exc
