"""
Demand Forecast Repository Interface

This module defines the interface for demand forecast repositories
following the repository pattern. It abstracts the data access operations
for historical demand, predictions, special events and accuracy tracking.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from src.domain.entities.demand import (
    DemandLevel,
    DemandPrediction,
    ForecastAccuracyMetrics,
    HistoricalDemandRecord,
    PredictionTimeframe,
    SpecialEvent,
)


class IDemandForecastRepository(ABC):
    """Interface for demand forecast repository implementations."""

    # Historical data

    @abstractmethod
    async def record_demand(self, record: HistoricalDemandRecord) -> None:
        """
        Upsert a demand observation keyed by cell and timestamp.

        Args:
            record: The observation to store
        """
        pass

    @abstractmethod
    async def get_historical_demand(
        self, h3_index: str, start_time: datetime, end_time: datetime
    ) -> List[HistoricalDemandRecord]:
        """
        Retrieve observations of a cell within a time range, newest first.

        Args:
            h3_index: Cell identifier
            start_time: Inclusive lower bound
            end_time: Inclusive upper bound

        Returns:
            List of observations
        """
        pass

    @abstractmethod
    async def get_historical_average(
        self, h3_index: str, hour: int, day_of_week: int, weeks_back: int
    ) -> Tuple[float, float]:
        """
        Average and standard deviation of ride requests for an hour/day bucket.

        Args:
            h3_index: Cell identifier
            hour: Hour of day (0-23)
            day_of_week: Day of week (0 = Sunday)
            weeks_back: Size of the training window in weeks

        Returns:
            Tuple of (average, standard deviation), zeros when no data exists
        """
        pass

    @abstractmethod
    async def get_recent_demand(self, h3_index: str, minutes_back: int) -> int:
        """Sum of ride requests observed in the last ``minutes_back`` minutes."""
        pass

    @abstractmethod
    async def get_recent_demand_trend(self, h3_index: str) -> float:
        """Least-squares slope of up to four samples from the last hour."""
        pass

    @abstractmethod
    async def get_neighbor_demand_average(
        self, neighbor_indexes: Sequence[str], minutes_back: int
    ) -> float:
        """Average ride requests across the given cells in a recent window."""
        pass

    # Predictions

    @abstractmethod
    async def save_prediction(self, prediction: DemandPrediction) -> None:
        """
        Upsert a prediction keyed by cell, prediction time and timeframe.

        Args:
            prediction: The prediction to store
        """
        pass

    @abstractmethod
    async def get_prediction(
        self,
        h3_index: str,
        prediction_time: datetime,
        timeframe: PredictionTimeframe,
    ) -> Optional[DemandPrediction]:
        """Find the prediction for an exact cell, target time and timeframe."""
        pass

    @abstractmethod
    async def get_latest_prediction(
        self, h3_index: str, timeframe: PredictionTimeframe
    ) -> Optional[DemandPrediction]:
        """Find the nearest upcoming prediction for a cell."""
        pass

    @abstractmethod
    async def get_predictions_in_bounding_box(
        self,
        timeframe: PredictionTimeframe,
        min_demand_level: Optional[DemandLevel] = None,
    ) -> List[DemandPrediction]:
        """
        Upcoming predictions ordered by hotspot score.

        The result is not spatially filtered; callers must discard zones
        outside their area of interest.

        Args:
            timeframe: Timeframe to match
            min_demand_level: Optional lower bound on the demand level

        Returns:
            List of predictions
        """
        pass

    @abstractmethod
    async def get_top_hotspots(
        self, timeframe: PredictionTimeframe, limit: int
    ) -> List[DemandPrediction]:
        """Upcoming predictions with the highest hotspot score."""
        pass

    # Special events

    @abstractmethod
    async def create_event(self, event: SpecialEvent) -> None:
        """Persist a new special event."""
        pass

    @abstractmethod
    async def get_upcoming_events(
        self, start_time: datetime, end_time: datetime
    ) -> List[SpecialEvent]:
        """Events overlapping the given time range, earliest first."""
        pass

    @abstractmethod
    async def get_events_near_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        time_window: timedelta,
    ) -> List[SpecialEvent]:
        """
        Events within ``radius_km`` that are active before ``now + time_window``.

        Args:
            latitude: Latitude of the point of interest
            longitude: Longitude of the point of interest
            radius_km: Search radius in kilometers
            time_window: Lookahead window

        Returns:
            List of events
        """
        pass

    # Accuracy tracking

    @abstractmethod
    async def record_prediction_accuracy(
        self, prediction_id: UUID, actual_rides: int
    ) -> bool:
        """
        Attach the observed ride count to a stored prediction.

        Returns:
            True if the prediction exists and was updated
        """
        pass

    @abstractmethod
    async def get_accuracy_metrics(
        self, timeframe: PredictionTimeframe, days_back: int
    ) -> ForecastAccuracyMetrics:
        """MAE, RMSE and MAPE over evaluated predictions of the window."""
        pass

    @abstractmethod
    async def cleanup_old_predictions(self, days_old: int) -> int:
        """
        Delete predictions older than ``days_old`` days.

        Returns:
            Number of deleted predictions
        """
        pass
