"""
Internal Router - Presentation Layer

Ingestion endpoint used by the trip pipeline to record demand snapshots.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status

from src.application.dtos.demand_dto import HistoricalDemandDTO, RecordDemandRequestDTO
from src.application.use_cases.demand_data_use_case import DemandDataUseCase

from .errors import raise_http_error

router = APIRouter(prefix="/internal/demand", tags=["Internal"])


@router.post(
    "/record",
    response_model=HistoricalDemandDTO,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def record_demand(
    request: RecordDemandRequestDTO,
    data_use_case: DemandDataUseCase = Depends(Provide["demand_data_use_case"]),
) -> HistoricalDemandDTO:
    try:
        record = await data_use_case.record_demand_snapshot(
            h3_index=request.h3_index,
            ride_requests=request.ride_requests,
            completed_rides=request.completed_rides,
            available_drivers=request.available_drivers,
            avg_wait_time=request.avg_wait_time_min,
            surge_multiplier=request.surge_multiplier,
        )
    except Exception as exc:
        raise_http_error(
            exc, "internal.demand.record_failed", h3_index=request.h3_index
        )
    return HistoricalDemandDTO.from_domain(record)
