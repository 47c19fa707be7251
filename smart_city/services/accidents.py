"""Accident reports: filtered listing, CRUD with ownership checks, and aggregate statistics."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, and_, func
from sqlalchemy.orm import Query, Session, joinedload

from smart_city.core.roles import can_modify_accident
from smart_city.models import Accident

if TYPE_CHECKING:
    from smart_city.schemas.accident import (
        AccidentCreate,
        AccidentFilters,
        AccidentUpdate,
        DateRangeFilter,
    )

logger = logging.getLogger(__name__)

# Kilometres per degree of latitude (flat-earth approximation used by the radius filter).
KM_PER_DEGREE = 111

# sortBy value -> column; anything else is rejected by the filter schema.
SORT_COLUMNS = {
    "createdAt": Accident.created_at,
    "updatedAt": Accident.updated_at,
    "date": Accident.date,
    "type": Accident.type,
    "severity": Accident.severity,
    "location": Accident.location,
}


class AccidentNotFoundError(Exception):
    """Raised when an accident id does not exist."""

    def __init__(self, accident_id: int) -> None:
        self.message = "Accident not found"
        self.accident_id = accident_id
        super().__init__(self.message)


class AccidentPermissionError(Exception):
    """Raised when the caller may not modify the accident."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def clause(self) -> ColumnElement[bool]:
        """Inclusive SQL predicate on Accident.latitude and Accident.longitude."""
        return and_(
            Accident.latitude.between(self.min_lat, self.max_lat),
            Accident.longitude.between(self.min_lng, self.max_lng),
        )


@dataclass
class AccidentPage:
    items: list[Accident]
    page: int
    limit: int
    total: int
    total_pages: int


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """
    Approximate a radius around a point by a lat/lng box.

    Latitude half-width is radius/111 degrees; longitude half-width is
    radius / (111 * cos(latitude)). The box is crude at high latitudes and
    grows without bound near the poles.
    """
    lat_range = radius_km / KM_PER_DEGREE
    lng_range = radius_km / (KM_PER_DEGREE * math.cos(latitude * math.pi / 180))
    return BoundingBox(
        min_lat=latitude - lat_range,
        max_lat=latitude + lat_range,
        min_lng=longitude - lng_range,
        max_lng=longitude + lng_range,
    )


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def _apply_date_range(query: Query, filters: DateRangeFilter) -> Query:
    if filters.start_date is not None:
        query = query.filter(Accident.date >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Accident.date <= filters.end_date)
    return query


def _apply_filters(query: Query, filters: AccidentFilters) -> Query:
    if filters.type is not None:
        query = query.filter(Accident.type == filters.type)
    if filters.severity is not None:
        query = query.filter(Accident.severity == filters.severity)
    query = _apply_date_range(query, filters)
    if (
        filters.latitude is not None
        and filters.longitude is not None
        and filters.radius
    ):
        box = bounding_box(filters.latitude, filters.longitude, filters.radius)
        query = query.filter(box.clause())
    return query


def list_accidents(db: Session, filters: AccidentFilters) -> AccidentPage:
    """Return one page of accidents matching filters plus the total match count."""
    base = _apply_filters(db.query(Accident), filters)
    total = base.count()

    column = SORT_COLUMNS[filters.sort_by]
    order = column.asc() if filters.sort_order == "asc" else column.desc()
    items = (
        base.options(joinedload(Accident.reporter))
        .order_by(order, Accident.id.asc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )
    return AccidentPage(
        items=items,
        page=filters.page,
        limit=filters.limit,
        total=total,
        total_pages=total_pages(total, filters.limit),
    )


def get_accident(db: Session, accident_id: int) -> Accident:
    accident = (
        db.query(Accident)
        .options(joinedload(Accident.reporter))
        .filter(Accident.id == accident_id)
        .first()
    )
    if accident is None:
        raise AccidentNotFoundError(accident_id)
    return accident


def create_accident(db: Session, data: AccidentCreate, reported_by: int | None) -> Accident:
    """Persist a new report stamped with the reporting user's id."""
    accident = Accident(**data.model_dump(), reported_by=reported_by)
    db.add(accident)
    db.commit()
    logger.info(
        "Accident reported",
        extra={"accident_id": accident.id, "reported_by": reported_by},
    )
    return get_accident(db, accident.id)


def update_accident(
    db: Session,
    accident_id: int,
    data: AccidentUpdate,
    user_id: int,
    role: str,
) -> Accident:
    """Apply a partial update if the caller is staff or the original reporter."""
    accident = get_accident(db, accident_id)
    if not can_modify_accident(user_id, role, accident.reported_by):
        raise AccidentPermissionError("Insufficient permissions to update this accident")
    for name, value in data.model_dump(exclude_unset=True).items():
        setattr(accident, name, value)
    db.commit()
    return get_accident(db, accident_id)


def delete_accident(db: Session, accident_id: int) -> None:
    """Delete a report. Callers must already be gated to staff roles."""
    accident = get_accident(db, accident_id)
    db.delete(accident)
    db.commit()
    logger.info("Accident deleted", extra={"accident_id": accident_id})


def month_windows(now: datetime) -> tuple[datetime, datetime]:
    """Return (start of previous calendar month, start of current calendar month) in UTC."""
    now = now.astimezone(UTC)
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if this_month.month == 1:
        last_month = this_month.replace(year=this_month.year - 1, month=12)
    else:
        last_month = this_month.replace(month=this_month.month - 1)
    return last_month, this_month


def compute_trend(this_month: int, last_month: int) -> str:
    if this_month > last_month:
        return "up"
    if this_month < last_month:
        return "down"
    return "stable"


def _count_by(db: Session, column: Any, filters: DateRangeFilter) -> dict[str, int]:
    query = _apply_date_range(db.query(column, func.count(Accident.id)), filters)
    return {key: count for key, count in query.group_by(column).all()}


def accident_stats(
    db: Session, filters: DateRangeFilter, now: datetime | None = None
) -> dict[str, Any]:
    """
    Totals by type and severity within the optional date range, plus this
    month vs last month counts (the month window replaces the date range).
    """
    now = now or datetime.now(UTC)
    last_month_start, this_month_start = month_windows(now)

    total = _apply_date_range(db.query(Accident), filters).count()
    this_month = db.query(Accident).filter(Accident.date >= this_month_start).count()
    last_month = (
        db.query(Accident)
        .filter(Accident.date >= last_month_start, Accident.date < this_month_start)
        .count()
    )
    return {
        "total": total,
        "by_type": _count_by(db, Accident.type, filters),
        "by_severity": _count_by(db, Accident.severity, filters),
        "this_month": this_month,
        "last_month": last_month,
        "trend": compute_trend(this_month, last_month),
    }
