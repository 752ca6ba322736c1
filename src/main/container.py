"""
Dependency container injection module - Main Layer

This module implements the dependency injection container
to simplify the management and lifecycle of dependencies
in the application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from dependency_injector import containers, providers

from src.application.use_cases.demand_data_use_case import DemandDataUseCase
from src.application.use_cases.demand_forecast_use_case import (
    DemandForecastUseCase,
)
from src.application.use_cases.feature_builder import DemandFeatureBuilder
from src.application.use_cases.special_event_use_case import SpecialEventUseCase
from src.domain.entities.forecast_model import ForecastConfig
from src.infrastructure.database import MongoDatabase
from src.infrastructure.gateways.driver_location_gateway import (
    DriverLocationGateway,
)
from src.infrastructure.gateways.weather_gateway import WeatherGateway
from src.infrastructure.geo.h3_cell_indexer import H3CellIndexer
from src.infrastructure.repositories.demand_forecast_repository import (
    DemandForecastRepository,
)
from src.shared import get_logger

from .config import AppSettings, ForecastSettings

logger = get_logger(__name__)


def build_forecast_config(forecast: dict) -> ForecastConfig:
    """Convert the forecast settings section into the engine configuration."""
    return ForecastSettings.model_validate(forecast).to_forecast_config()


def build_weather_gateway(
    base_url: Optional[str], timeout: float
) -> Optional[WeatherGateway]:
    if not base_url:
        return None
    return WeatherGateway(base_url, timeout=timeout)


def build_driver_location_gateway(
    base_url: Optional[str], timeout: float
) -> Optional[DriverLocationGateway]:
    if not base_url:
        return None
    return DriverLocationGateway(base_url, timeout=timeout)


class ForecastContainer(containers.DeclarativeContainer):
    """Providers shared by the HTTP application and the Celery worker."""

    # Settings
    config = providers.Configuration()

    forecast_config = providers.Singleton(build_forecast_config, config.forecast)

    # Infrastructure
    mongo_database = providers.Singleton(
        MongoDatabase,
        mongo_uri=config.database.mongo_uri,
        db_name=config.database.database_name,
    )

    demand_repository = providers.Singleton(
        DemandForecastRepository,
        database=mongo_database,
    )

    geo_indexer = providers.Singleton(
        H3CellIndexer,
        resolution=config.forecast.cell_resolution,
    )

    # Gateways (disabled when no URL is configured)
    weather_gateway = providers.Singleton(
        build_weather_gateway,
        base_url=config.collaborators.weather_url,
        timeout=config.collaborators.request_timeout_seconds,
    )

    driver_location_gateway = providers.Singleton(
        build_driver_location_gateway,
        base_url=config.collaborators.driver_location_url,
        timeout=config.collaborators.request_timeout_seconds,
    )

    # Application (use cases)
    feature_builder = providers.Factory(
        DemandFeatureBuilder,
        repository=demand_repository,
        geo_indexer=geo_indexer,
        config=forecast_config,
        weather_gateway=weather_gateway,
        driver_location_gateway=driver_location_gateway,
    )

    demand_forecast_use_case = providers.Factory(
        DemandForecastUseCase,
        repository=demand_repository,
        feature_builder=feature_builder,
        geo_indexer=geo_indexer,
        config=forecast_config,
    )

    special_event_use_case = providers.Factory(
        SpecialEventUseCase,
        repository=demand_repository,
        geo_indexer=geo_indexer,
        config=forecast_config,
    )

    demand_data_use_case = providers.Factory(
        DemandDataUseCase,
        repository=demand_repository,
        geo_indexer=geo_indexer,
        config=forecast_config,
        weather_gateway=weather_gateway,
    )


class AppContainer(ForecastContainer):
    """Composition Root using dependecy-injector."""

    wiring_config = containers.WiringConfiguration(
        packages=["..presentation", "..application"]
    )


# -------------------------
# Global Container Instance
# -------------------------
_app_container: AppContainer | None = None


def init_container(settings: AppSettings) -> AppContainer:
    """Initialize global container with application settings."""

    global _app_container

    container = AppContainer()
    container.config.from_pydantic(settings)
    _app_container = container
    return container


def get_container() -> AppContainer:
    """Get the initialized global container."""

    if _app_container is None:
        raise RuntimeError("Container has not been initialized yet")

    return _app_container


@asynccontextmanager
async def app_lifespan():
    """
    Centralized lifecycle management for external resources.

    Creates the MongoDB indexes on startup and closes the client on
    shutdown.
    """
    container = get_container()
    mongo_database = container.mongo_database()

    try:
        logger.info("container.mongo.ensure_connection")
        await mongo_database.create_indexes()
        logger.info("container.resources.initialized")
        yield container

    finally:
        logger.info("container.mongo.close")
        mongo_database.close()
        logger.info("container.resources.shutdown")
