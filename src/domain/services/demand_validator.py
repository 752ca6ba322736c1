"""Domain service helpers for validating forecasting requests."""

import math
from typing import List

from src.domain.entities.demand import BoundingBox
from src.domain.entities.errors import DemandValidationError

KM_PER_DEGREE = 111.32


def _check_coordinate(latitude: float, longitude: float, errors: List[str]) -> None:
    if not math.isfinite(latitude) or not -90.0 <= latitude <= 90.0:
        errors.append("Latitude must be between -90 and 90.")
    if not math.isfinite(longitude) or not -180.0 <= longitude <= 180.0:
        errors.append("Longitude must be between -180 and 180.")


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Validate a coordinate pair.

    Raises:
        DemandValidationError: If the latitude or longitude is out of range.
    """

    errors: List[str] = []
    _check_coordinate(latitude, longitude, errors)
    if errors:
        raise DemandValidationError(
            "Coordinates are invalid.", details={"errors": errors}
        )


def validate_bounding_box(box: BoundingBox) -> None:
    """Validate the corners and orientation of a bounding box.

    A degenerate (point or line) box is accepted.

    Raises:
        DemandValidationError: If one or more validation rules fail.
    """

    errors: List[str] = []
    _check_coordinate(box.min_latitude, box.min_longitude, errors)
    _check_coordinate(box.max_latitude, box.max_longitude, errors)
    if box.min_latitude > box.max_latitude:
        errors.append("min_latitude cannot be greater than max_latitude.")
    if box.min_longitude > box.max_longitude:
        errors.append("min_longitude cannot be greater than max_longitude.")

    if errors:
        raise DemandValidationError(
            "Bounding box is invalid.", details={"errors": errors}
        )


def bounding_box_area_km2(box: BoundingBox) -> float:
    """Approximate surface of a box, scaling longitude at its mid latitude."""

    mid_latitude = math.radians((box.min_latitude + box.max_latitude) / 2)
    height_km = (box.max_latitude - box.min_latitude) * KM_PER_DEGREE
    width_km = (
        (box.max_longitude - box.min_longitude)
        * KM_PER_DEGREE
        * math.cos(mid_latitude)
    )
    return abs(height_km * width_km)


def validate_bounding_box_area(box: BoundingBox, max_area_km2: float) -> None:
    area_km2 = bounding_box_area_km2(box)
    if area_km2 > max_area_km2:
        raise DemandValidationError(
            "Bounding box is too large.",
            details={
                "errors": [
                    f"Bounding box covers {area_km2:.0f} km2, "
                    f"the limit is {max_area_km2:.0f} km2."
                ],
                "area_km2": round(area_km2, 1),
                "max_area_km2": max_area_km2,
            },
        )


def validate_positive(value: float, field_name: str) -> None:
    if not value > 0:
        raise DemandValidationError(
            f"{field_name} must be greater than 0.",
            details={"errors": [f"{field_name} must be greater than 0."]},
        )
