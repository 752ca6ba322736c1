"""
Admin Router - Presentation Layer

Operational endpoints for special events and forecast accuracy.
"""

from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query, status

from src.application.dtos.demand_dto import RecordActualRidesRequestDTO
from src.application.dtos.event_dto import (
    CreateSpecialEventRequestDTO,
    ForecastAccuracyDTO,
    SpecialEventDTO,
)
from src.application.use_cases.demand_data_use_case import DemandDataUseCase
from src.application.use_cases.special_event_use_case import SpecialEventUseCase

from .errors import raise_http_error

router = APIRouter(prefix="/admin/demand", tags=["Admin"])


@router.post(
    "/events",
    response_model=SpecialEventDTO,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def create_event(
    request: CreateSpecialEventRequestDTO,
    event_use_case: SpecialEventUseCase = Depends(Provide["special_event_use_case"]),
) -> SpecialEventDTO:
    """Register a special event that influences nearby demand."""
    try:
        event = await event_use_case.create_event(request)
    except Exception as exc:
        raise_http_error(exc, "admin.events.create_failed", name=request.name)
    return SpecialEventDTO.from_domain(event)


@router.get("/accuracy", response_model=ForecastAccuracyDTO)
@inject
async def get_accuracy(
    timeframe: str = Query("30min", description="Prediction timeframe"),
    days_back: int = Query(7, description="Evaluation window in days"),
    data_use_case: DemandDataUseCase = Depends(Provide["demand_data_use_case"]),
) -> ForecastAccuracyDTO:
    try:
        metrics = await data_use_case.get_model_accuracy(timeframe, days_back)
    except Exception as exc:
        raise_http_error(exc, "admin.accuracy.failed", timeframe=timeframe)
    return ForecastAccuracyDTO.from_domain(metrics)


@router.post(
    "/predictions/{prediction_id}/actual",
    status_code=status.HTTP_204_NO_CONTENT,
)
@inject
async def record_actual_rides(
    prediction_id: UUID,
    request: RecordActualRidesRequestDTO,
    data_use_case: DemandDataUseCase = Depends(Provide["demand_data_use_case"]),
) -> None:
    """Attach the observed ride count to a stored prediction."""
    try:
        await data_use_case.record_prediction_accuracy(
            prediction_id, request.actual_rides
        )
    except Exception as exc:
        raise_http_error(
            exc, "admin.accuracy.record_failed", prediction_id=str(prediction_id)
        )
