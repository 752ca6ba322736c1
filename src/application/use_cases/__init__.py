"""
Use Cases Package - Application Layer

This package contains use cases that implement the business logic
of the application. Use cases orchestrate the flow of data to and from
the entities and implement the business rules of the application.
"""

from .demand_data_use_case import DemandDataUseCase
from .demand_forecast_use_case import DemandForecastUseCase
from .feature_builder import DemandFeatureBuilder
from .special_event_use_case import SpecialEventUseCase

__all__ = [
    "DemandDataUseCase",
    "DemandFeatureBuilder",
    "DemandForecastUseCase",
    "SpecialEventUseCase",
]
