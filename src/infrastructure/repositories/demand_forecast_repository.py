"""
Infrastructure Repository - Demand Forecast MongoDB Implementation

This module implements the demand forecast repository using MongoDB.
Aggregates (averages, trends, accuracy metrics) are computed client-side
with numpy over the matching documents.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import numpy as np
import structlog
from pymongo import ASCENDING, DESCENDING

from src.domain.entities.demand import (
    DemandLevel,
    DemandPrediction,
    FeatureContributions,
    ForecastAccuracyMetrics,
    HistoricalDemandRecord,
    PredictionTimeframe,
    SpecialEvent,
)
from src.domain.repositories.demand_forecast_repository import (
    IDemandForecastRepository,
)
from src.domain.services.hotspot_ranker import haversine_distance
from src.infrastructure.database.mongo_database import (
    HISTORICAL_DEMAND_COLLECTION,
    PREDICTIONS_COLLECTION,
    SPECIAL_EVENTS_COLLECTION,
    MongoDatabase,
)

logger = structlog.get_logger(__name__)

TREND_SAMPLE_LIMIT = 4
TREND_WINDOW = timedelta(hours=1)
HOTSPOT_MIN_WINDOW = timedelta(hours=1)
BUCKET_PADDING = timedelta(minutes=15)
HEATMAP_WINDOW = timedelta(hours=4)
HEATMAP_LIMIT = 100
NO_LIMIT = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DemandForecastRepository(IDemandForecastRepository):
    """MongoDB implementation of the demand forecast repository."""

    def __init__(
        self,
        database: MongoDatabase,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize repository with database connection."""
        self.database = database
        self._clock = clock or _utcnow

    # Historical data

    async def record_demand(self, record: HistoricalDemandRecord) -> None:
        document = self._record_to_document(record)
        await self.database.replace_one(
            HISTORICAL_DEMAND_COLLECTION,
            {"h3_index": record.h3_index, "timestamp": record.timestamp},
            document,
            upsert=True,
        )

    async def get_historical_demand(
        self, h3_index: str, start_time: datetime, end_time: datetime
    ) -> List[HistoricalDemandRecord]:
        documents = await self.database.find_many(
            HISTORICAL_DEMAND_COLLECTION,
            {
                "h3_index": h3_index,
                "timestamp": {"$gte": start_time, "$lte": end_time},
            },
            sort_by="timestamp",
            sort_direction=DESCENDING,
            limit=NO_LIMIT,
        )
        return [self._record_from_document(doc) for doc in documents]

    async def get_historical_average(
        self, h3_index: str, hour: int, day_of_week: int, weeks_back: int
    ) -> Tuple[float, float]:
        since = self._clock() - timedelta(weeks=weeks_back)
        documents = await self.database.find_many(
            HISTORICAL_DEMAND_COLLECTION,
            {
                "h3_index": h3_index,
                "hour": hour,
                "day_of_week": day_of_week,
                "timestamp": {"$gte": since},
            },
            limit=NO_LIMIT,
        )
        if not documents:
            return 0.0, 0.0

        rides = np.array(
            [doc.get("ride_requests", 0) for doc in documents], dtype=float
        )
        average = float(rides.mean())
        std = float(rides.std(ddof=1)) if rides.size > 1 else 0.0
        return average, std

    async def get_recent_demand(self, h3_index: str, minutes_back: int) -> int:
        since = self._clock() - timedelta(minutes=minutes_back)
        documents = await self.database.find_many(
            HISTORICAL_DEMAND_COLLECTION,
            {"h3_index": h3_index, "timestamp": {"$gte": since}},
            limit=NO_LIMIT,
        )
        return int(sum(doc.get("ride_requests", 0) for doc in documents))

    async def get_recent_demand_trend(self, h3_index: str) -> float:
        since = self._clock() - TREND_WINDOW
        documents = await self.database.find_many(
            HISTORICAL_DEMAND_COLLECTION,
            {"h3_index": h3_index, "timestamp": {"$gte": since}},
            sort_by="timestamp",
            sort_direction=ASCENDING,
            limit=TREND_SAMPLE_LIMIT,
        )
        if len(documents) < 2:
            return 0.0

        demand = np.array(
            [doc.get("ride_requests", 0) for doc in documents], dtype=float
        )
        steps = np.arange(demand.size, dtype=float)
        slope = np.polyfit(steps, demand, 1)[0]
        return float(slope)

    async def get_neighbor_demand_average(
        self, neighbor_indexes: Sequence[str], minutes_back: int
    ) -> float:
        if not neighbor_indexes:
            return 0.0
        since = self._clock() - timedelta(minutes=minutes_back)
        documents = await self.database.find_many(
            HISTORICAL_DEMAND_COLLECTION,
            {"h3_index": {"$in": list(neighbor_indexes)}, "timestamp": {"$gte": since}},
            limit=NO_LIMIT,
        )
        if not documents:
            return 0.0
        return float(np.mean([doc.get("ride_requests", 0) for doc in documents]))

    # Predictions

    async def save_prediction(self, prediction: DemandPrediction) -> None:
        await self.database.replace_one(
            PREDICTIONS_COLLECTION,
            {
                "h3_index": prediction.h3_index,
                "prediction_time": prediction.prediction_time,
                "timeframe": prediction.timeframe.value,
            },
            self._prediction_to_document(prediction),
            upsert=True,
        )

    async def get_prediction(
        self,
        h3_index: str,
        prediction_time: datetime,
        timeframe: PredictionTimeframe,
    ) -> Optional[DemandPrediction]:
        document = await self.database.find_one(
            PREDICTIONS_COLLECTION,
            {
                "h3_index": h3_index,
                "prediction_time": prediction_time,
                "timeframe": PredictionTimeframe(timeframe).value,
            },
        )
        return self._prediction_from_document(document) if document else None

    async def get_latest_prediction(
        self, h3_index: str, timeframe: PredictionTimeframe
    ) -> Optional[DemandPrediction]:
        documents = await self.database.find_many(
            PREDICTIONS_COLLECTION,
            {
                "h3_index": h3_index,
                "timeframe": PredictionTimeframe(timeframe).value,
                "prediction_time": {"$gt": self._clock()},
            },
            sort_by="prediction_time",
            sort_direction=ASCENDING,
            limit=1,
        )
        return self._prediction_from_document(documents[0]) if documents else None

    async def get_predictions_in_bounding_box(
        self,
        timeframe: PredictionTimeframe,
        min_demand_level: Optional[DemandLevel] = None,
    ) -> List[DemandPrediction]:
        now = self._clock()
        query: Dict[str, Any] = {
            "timeframe": PredictionTimeframe(timeframe).value,
            "prediction_time": {"$gt": now, "$lte": now + HEATMAP_WINDOW},
        }
        if min_demand_level is not None:
            minimum = DemandLevel(min_demand_level)
            query["demand_level"] = {
                "$in": [level.value for level in DemandLevel if level.at_least(minimum)]
            }

        documents = await self.database.find_many(
            PREDICTIONS_COLLECTION,
            query,
            sort_by="hotspot_score",
            sort_direction=DESCENDING,
            limit=HEATMAP_LIMIT,
        )
        return self._first_per_cell(documents)

    async def get_top_hotspots(
        self, timeframe: PredictionTimeframe, limit: int
    ) -> List[DemandPrediction]:
        timeframe = PredictionTimeframe(timeframe)
        now = self._clock()
        window = max(HOTSPOT_MIN_WINDOW, timeframe.duration + BUCKET_PADDING)
        documents = await self.database.find_many(
            PREDICTIONS_COLLECTION,
            {
                "timeframe": timeframe.value,
                "prediction_time": {"$gt": now, "$lte": now + window},
            },
            sort_by="hotspot_score",
            sort_direction=DESCENDING,
            limit=NO_LIMIT,
        )
        return self._first_per_cell(documents)[:limit]

    # Special events

    async def create_event(self, event: SpecialEvent) -> None:
        await self.database.insert_one(
            SPECIAL_EVENTS_COLLECTION, self._event_to_document(event)
        )
        logger.info("events.created", event_id=str(event.id), name=event.name)

    async def get_upcoming_events(
        self, start_time: datetime, end_time: datetime
    ) -> List[SpecialEvent]:
        documents = await self.database.find_many(
            SPECIAL_EVENTS_COLLECTION,
            {"start_time": {"$lte": end_time}, "end_time": {"$gte": start_time}},
            sort_by="start_time",
            sort_direction=ASCENDING,
            limit=NO_LIMIT,
        )
        return [self._event_from_document(doc) for doc in documents]

    async def get_events_near_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        time_window: timedelta,
    ) -> List[SpecialEvent]:
        now = self._clock()
        events = await self.get_upcoming_events(now, now + time_window)
        return [
            event
            for event in events
            if haversine_distance(latitude, longitude, event.latitude, event.longitude)
            <= radius_km
        ]

    # Accuracy tracking

    async def record_prediction_accuracy(
        self, prediction_id: UUID, actual_rides: int
    ) -> bool:
        return await self.database.update_one(
            PREDICTIONS_COLLECTION,
            {"id": str(prediction_id)},
            {"actual_rides": actual_rides},
        )

    async def get_accuracy_metrics(
        self, timeframe: PredictionTimeframe, days_back: int
    ) -> ForecastAccuracyMetrics:
        timeframe = PredictionTimeframe(timeframe)
        now = self._clock()
        documents = await self.database.find_many(
            PREDICTIONS_COLLECTION,
            {
                "timeframe": timeframe.value,
                "actual_rides": {"$ne": None},
                "prediction_time": {
                    "$gte": now - timedelta(days=days_back),
                    "$lt": now,
                },
            },
            limit=NO_LIMIT,
        )

        mae = rmse = mape = 0.0
        if documents:
            predicted = np.array(
                [doc["predicted_rides"] for doc in documents], dtype=float
            )
            actual = np.array([doc["actual_rides"] for doc in documents], dtype=float)
            errors = np.abs(predicted - actual)
            mae = float(errors.mean())
            rmse = float(np.sqrt(np.mean(errors**2)))
            # an actual value of 0 contributes 0 to the percentage error
            safe_actual = np.where(actual > 0, actual, 1.0)
            mape = float(np.mean(np.where(actual > 0, errors / safe_actual * 100, 0.0)))

        return ForecastAccuracyMetrics(
            timeframe=timeframe,
            mae=mae,
            rmse=rmse,
            mape=mape,
            samples_evaluated=len(documents),
            evaluation_period=f"last_{days_back}_days",
            updated_at=now,
        )

    async def cleanup_old_predictions(self, days_old: int) -> int:
        cutoff = self._clock() - timedelta(days=days_old)
        deleted = await self.database.delete_many(
            PREDICTIONS_COLLECTION, {"prediction_time": {"$lt": cutoff}}
        )
        logger.info("predictions.cleaned_up", days_old=days_old, deleted=deleted)
        return deleted

    # Document mapping

    def _first_per_cell(
        self, documents: List[Dict[str, Any]]
    ) -> List[DemandPrediction]:
        """Keep the highest-ranked document of each cell, preserving order."""
        seen = set()
        predictions = []
        for document in documents:
            if document["h3_index"] in seen:
                continue
            seen.add(document["h3_index"])
            predictions.append(self._prediction_from_document(document))
        return predictions

    @staticmethod
    def _record_to_document(record: HistoricalDemandRecord) -> Dict[str, Any]:
        return {
            "id": str(record.id),
            "h3_index": record.h3_index,
            "timestamp": record.timestamp,
            "hour": record.hour,
            "day_of_week": record.day_of_week,
            "is_holiday": record.is_holiday,
            "ride_requests": record.ride_requests,
            "completed_rides": record.completed_rides,
            "available_drivers": record.available_drivers,
            "avg_wait_time_min": record.avg_wait_time_min,
            "surge_multiplier": record.surge_multiplier,
            "weather_condition": record.weather_condition,
            "temperature": record.temperature,
            "precipitation_mm": record.precipitation_mm,
            "special_event_type": record.special_event_type,
            "special_event_scale": record.special_event_scale,
            "created_at": record.created_at,
        }

    @staticmethod
    def _record_from_document(document: Dict[str, Any]) -> HistoricalDemandRecord:
        return HistoricalDemandRecord(
            id=UUID(document["id"]),
            h3_index=document["h3_index"],
            timestamp=document["timestamp"],
            hour=document["hour"],
            day_of_week=document["day_of_week"],
            is_holiday=document.get("is_holiday", False),
            ride_requests=document.get("ride_requests", 0),
            completed_rides=document.get("completed_rides", 0),
            available_drivers=document.get("available_drivers", 0),
            avg_wait_time_min=document.get("avg_wait_time_min", 0.0),
            surge_multiplier=document.get("surge_multiplier", 1.0),
            weather_condition=document.get("weather_condition", "unknown"),
            temperature=document.get("temperature"),
            precipitation_mm=document.get("precipitation_mm"),
            special_event_type=document.get("special_event_type"),
            special_event_scale=document.get("special_event_scale"),
            created_at=document.get("created_at", document["timestamp"]),
        )

    @staticmethod
    def _prediction_to_document(prediction: DemandPrediction) -> Dict[str, Any]:
        contributions = prediction.feature_contributions
        return {
            "id": str(prediction.id),
            "h3_index": prediction.h3_index,
            "prediction_time": prediction.prediction_time,
            "generated_at": prediction.generated_at,
            "timeframe": prediction.timeframe.value,
            "predicted_rides": prediction.predicted_rides,
            "demand_level": prediction.demand_level.value,
            "confidence": prediction.confidence,
            "lower_bound": prediction.lower_bound,
            "upper_bound": prediction.upper_bound,
            "recommended_drivers": prediction.recommended_drivers,
            "expected_surge": prediction.expected_surge,
            "hotspot_score": prediction.hotspot_score,
            "reposition_priority": prediction.reposition_priority,
            "feature_contributions": {
                "historical_pattern": contributions.historical_pattern,
                "recent_trend": contributions.recent_trend,
                "time_of_day": contributions.time_of_day,
                "day_of_week": contributions.day_of_week,
                "weather": contributions.weather,
                "special_events": contributions.special_events,
                "seasonal_trend": contributions.seasonal_trend,
            },
            "actual_rides": prediction.actual_rides,
        }

    @staticmethod
    def _prediction_from_document(document: Dict[str, Any]) -> DemandPrediction:
        return DemandPrediction(
            id=UUID(document["id"]),
            h3_index=document["h3_index"],
            prediction_time=document["prediction_time"],
            generated_at=document["generated_at"],
            timeframe=PredictionTimeframe(document["timeframe"]),
            predicted_rides=document["predicted_rides"],
            demand_level=DemandLevel(document["demand_level"]),
            confidence=document["confidence"],
            lower_bound=document.get("lower_bound", 0.0),
            upper_bound=document.get("upper_bound", 0.0),
            recommended_drivers=document["recommended_drivers"],
            expected_surge=document["expected_surge"],
            hotspot_score=document["hotspot_score"],
            reposition_priority=document["reposition_priority"],
            feature_contributions=FeatureContributions(
                **document.get("feature_contributions", {})
            ),
            actual_rides=document.get("actual_rides"),
        )

    @staticmethod
    def _event_to_document(event: SpecialEvent) -> Dict[str, Any]:
        return {
            "id": str(event.id),
            "name": event.name,
            "event_type": event.event_type,
            "latitude": event.latitude,
            "longitude": event.longitude,
            "h3_index": event.h3_index,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "expected_attendees": event.expected_attendees,
            "impact_radius_km": event.impact_radius_km,
            "demand_multiplier": event.demand_multiplier,
            "is_recurring": event.is_recurring,
            "created_at": event.created_at,
            "updated_at": event.updated_at,
        }

    @staticmethod
    def _event_from_document(document: Dict[str, Any]) -> SpecialEvent:
        return SpecialEvent(
            id=UUID(document["id"]),
            name=document["name"],
            event_type=document["event_type"],
            latitude=document["latitude"],
            longitude=document["longitude"],
            h3_index=document["h3_index"],
            start_time=document["start_time"],
            end_time=document["end_time"],
            expected_attendees=document.get("expected_attendees", 0),
            impact_radius_km=document.get("impact_radius_km", 5.0),
            demand_multiplier=document.get("demand_multiplier", 1.0),
            is_recurring=document.get("is_recurring", False),
            created_at=document["created_at"],
            updated_at=document["updated_at"],
        )
