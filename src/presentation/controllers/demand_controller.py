"""
Demand Router - Presentation Layer

This module defines the FastAPI router for demand forecast endpoints.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from src.application.dtos.demand_dto import (
    AreaPredictionRequestDTO,
    AreaPredictionResponseDTO,
    DemandHeatmapDTO,
    DemandHeatmapRequestDTO,
    DemandPredictionDTO,
    HotspotsResponseDTO,
    HotspotZoneDTO,
    PredictDemandRequestDTO,
    RepositionRequestDTO,
    RepositionResponseDTO,
)
from src.application.dtos.event_dto import SpecialEventDTO, SpecialEventListDTO
from src.application.use_cases.demand_forecast_use_case import (
    DemandForecastUseCase,
)
from src.application.use_cases.special_event_use_case import SpecialEventUseCase

from .errors import raise_http_error

router = APIRouter(prefix="/demand", tags=["Demand"])


@router.post("/predict", response_model=DemandPredictionDTO)
@inject
async def predict_demand(
    request: PredictDemandRequestDTO,
    forecast_use_case: DemandForecastUseCase = Depends(
        Provide["demand_forecast_use_case"]
    ),
) -> DemandPredictionDTO:
    """Forecast demand for the cell containing a coordinate."""
    try:
        prediction = await forecast_use_case.generate_prediction(
            request.latitude, request.longitude, request.timeframe
        )
    except Exception as exc:
        raise_http_error(
            exc,
            "demand.predict.failed",
            latitude=request.latitude,
            longitude=request.longitude,
        )
    return DemandPredictionDTO.from_domain(prediction)


@router.post("/predict/area", response_model=AreaPredictionResponseDTO)
@inject
async def predict_area(
    request: AreaPredictionRequestDTO,
    forecast_use_case: DemandForecastUseCase = Depends(
        Provide["demand_forecast_use_case"]
    ),
) -> AreaPredictionResponseDTO:
    """
    Forecast every cell covering a bounding box.

    Cells that fail are omitted; the request fails only when none succeeds.
    """
    try:
        predictions = await forecast_use_case.generate_predictions_for_area(
            request.to_domain(), request.timeframe
        )
    except Exception as exc:
        raise_http_error(exc, "demand.predict_area.failed")
    return AreaPredictionResponseDTO(
        timeframe=request.timeframe,
        predictions=[DemandPredictionDTO.from_domain(p) for p in predictions],
    )


@router.get("/hotspots", response_model=HotspotsResponseDTO)
@inject
async def get_hotspots(
    timeframe: str = Query("30min", description="Prediction timeframe"),
    limit: int = Query(10, description="Maximum number of hotspots to return"),
    forecast_use_case: DemandForecastUseCase = Depends(
        Provide["demand_forecast_use_case"]
    ),
) -> HotspotsResponseDTO:
    """Return upcoming hotspots ranked by score."""
    try:
        zones = await forecast_use_case.get_top_hotspots(timeframe, limit)
    except Exception as exc:
        raise_http_error(exc, "demand.hotspots.failed", timeframe=timeframe)
    return HotspotsResponseDTO(
        timeframe=timeframe,
        hotspots=[HotspotZoneDTO.from_domain(zone) for zone in zones],
    )


@router.post("/heatmap", response_model=DemandHeatmapDTO)
@inject
async def get_heatmap(
    request: DemandHeatmapRequestDTO,
    forecast_use_case: DemandForecastUseCase = Depends(
        Provide["demand_forecast_use_case"]
    ),
) -> DemandHeatmapDTO:
    try:
        heatmap = await forecast_use_case.get_demand_heatmap(request)
    except Exception as exc:
        raise_http_error(exc, "demand.heatmap.failed")
    return DemandHeatmapDTO.from_domain(heatmap)


@router.post("/reposition", response_model=RepositionResponseDTO)
@inject
async def get_reposition_recommendations(
    request: RepositionRequestDTO,
    forecast_use_case: DemandForecastUseCase = Depends(
        Provide["demand_forecast_use_case"]
    ),
) -> RepositionResponseDTO:
    """Suggest nearby hotspot cells a driver could move to."""
    try:
        result = await forecast_use_case.get_reposition_recommendations(
            driver_id=request.driver_id,
            latitude=request.latitude,
            longitude=request.longitude,
            max_distance_km=request.max_distance_km,
            limit=request.limit,
        )
    except Exception as exc:
        raise_http_error(
            exc, "demand.reposition.failed", driver_id=str(request.driver_id)
        )
    return RepositionResponseDTO.from_domain(result)


@router.get("/events", response_model=SpecialEventListDTO)
@inject
async def get_upcoming_events(
    hours: int = Query(24, description="Look-ahead window in hours"),
    event_use_case: SpecialEventUseCase = Depends(Provide["special_event_use_case"]),
) -> SpecialEventListDTO:
    try:
        events = await event_use_case.get_upcoming_events(hours)
    except Exception as exc:
        raise_http_error(exc, "demand.events.list_failed", hours=hours)
    return SpecialEventListDTO(
        events=[SpecialEventDTO.from_domain(event) for event in events]
    )
