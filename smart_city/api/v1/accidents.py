"""Accident endpoints: public listing/stats/detail, authenticated reporting and staff moderation."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from smart_city.api.v1.dependencies import (
    get_current_user,
    get_optional_user,
    require_citizen,
    require_operator,
)
from smart_city.core.database import get_db
from smart_city.core.errors import ApiError, ErrorCodes, validation_details
from smart_city.schemas.accident import (
    AccidentCreate,
    AccidentFilters,
    AccidentOut,
    AccidentStats,
    AccidentUpdate,
    DateRangeFilter,
)
from smart_city.schemas.auth import CurrentUser
from smart_city.schemas.common import ApiResponse, Pagination
from smart_city.services import accidents as accident_service
from smart_city.services.accidents import AccidentNotFoundError, AccidentPermissionError

router = APIRouter()


def _not_found(e: AccidentNotFoundError) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, ErrorCodes.ACCIDENT_NOT_FOUND, e.message)


def _validate_query(model: type, **params: object):
    """Validate query params into model; cross-field errors become 400 VALIDATION_ERROR."""
    try:
        return model.model_validate({k: v for k, v in params.items() if v is not None})
    except ValidationError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            ErrorCodes.VALIDATION_ERROR,
            "Query validation failed",
            details=validation_details(e.errors()),
        ) from e


@router.get("", response_model=ApiResponse[list[AccidentOut]])
def list_accidents(
    db: Annotated[Session, Depends(get_db)],
    _user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    type: Annotated[str | None, Query()] = None,
    severity: Annotated[str | None, Query()] = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
    latitude: Annotated[float | None, Query()] = None,
    longitude: Annotated[float | None, Query()] = None,
    radius: Annotated[float | None, Query(description="Radius in km")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
) -> ApiResponse[list[AccidentOut]]:
    """
    List accidents, newest first by default.

    Filters: type, severity, startDate/endDate, and latitude + longitude +
    radius (km) for an approximate bounding-box search. Paginated with page
    and limit (1-100, default 10); sortBy/sortOrder pick the ordering.
    """
    filters: AccidentFilters = _validate_query(
        AccidentFilters,
        type=type,
        severity=severity,
        start_date=start_date,
        end_date=end_date,
        latitude=latitude,
        longitude=longitude,
        radius=radius,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = accident_service.list_accidents(db, filters)
    return ApiResponse(
        message="Accidents retrieved successfully",
        data=[AccidentOut.model_validate(a) for a in result.items],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/stats", response_model=ApiResponse[AccidentStats])
def get_accident_stats(
    db: Annotated[Session, Depends(get_db)],
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
) -> ApiResponse[AccidentStats]:
    """Counts by type and severity, and this month vs last month with a trend."""
    filters: DateRangeFilter = _validate_query(
        DateRangeFilter, start_date=start_date, end_date=end_date
    )
    stats = accident_service.accident_stats(db, filters)
    return ApiResponse(
        message="Accident statistics retrieved successfully",
        data=AccidentStats(**stats),
    )


@router.get("/{accident_id}", response_model=ApiResponse[AccidentOut])
def get_accident(
    accident_id: int,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[AccidentOut]:
    try:
        accident = accident_service.get_accident(db, accident_id)
    except AccidentNotFoundError as e:
        raise _not_found(e) from e
    return ApiResponse(
        message="Accident retrieved successfully",
        data=AccidentOut.model_validate(accident),
    )


@router.post(
    "",
    response_model=ApiResponse[AccidentOut],
    status_code=status.HTTP_201_CREATED,
)
def create_accident(
    body: AccidentCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(require_citizen)],
) -> ApiResponse[AccidentOut]:
    """Report an accident; the reporter is the authenticated user."""
    accident = accident_service.create_accident(db, body, reported_by=current_user.id)
    return ApiResponse(
        message="Accident reported successfully",
        data=AccidentOut.model_validate(accident),
    )


@router.put("/{accident_id}", response_model=ApiResponse[AccidentOut])
def update_accident(
    accident_id: int,
    body: AccidentUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[AccidentOut]:
    """Partially update a report. Allowed for admins, operators and the original reporter."""
    try:
        accident = accident_service.update_accident(
            db, accident_id, body, current_user.id, current_user.role
        )
    except AccidentNotFoundError as e:
        raise _not_found(e) from e
    except AccidentPermissionError as e:
        raise ApiError(status.HTTP_403_FORBIDDEN, ErrorCodes.FORBIDDEN, e.message) from e
    return ApiResponse(
        message="Accident updated successfully",
        data=AccidentOut.model_validate(accident),
    )


@router.delete("/{accident_id}", response_model=ApiResponse[None])
def delete_accident(
    accident_id: int,
    db: Annotated[Session, Depends(get_db)],
    _staff: Annotated[CurrentUser, Depends(require_operator)],
) -> ApiResponse[None]:
    """Delete a report (admins and operators only; reporters cannot delete their own)."""
    try:
        accident_service.delete_accident(db, accident_id)
    except AccidentNotFoundError as e:
        raise _not_found(e) from e
    return ApiResponse(message="Accident deleted successfully")
