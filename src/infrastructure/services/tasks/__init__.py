"""Celery task implementations for infrastructure services."""

from .base import CallbackTask, ForecastServices, build_forecast_services, logger
from .cleanup import cleanup_old_predictions
from .forecast_refresh import refresh_area_forecasts

__all__ = [
    "CallbackTask",
    "ForecastServices",
    "build_forecast_services",
    "cleanup_old_predictions",
    "logger",
    "refresh_area_forecasts",
]
