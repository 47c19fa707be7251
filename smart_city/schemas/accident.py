"""Pydantic schemas for accident reports: create/update payloads, list filters, stats."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator

from smart_city.schemas.common import CamelModel

AccidentType = Literal["COLLISION", "PEDESTRIAN", "ROLLOVER", "MOTORCYCLE", "BICYCLE", "OTHER"]
AccidentSeverity = Literal["MINOR", "MODERATE", "SEVERE", "FATAL"]
SortField = Literal["createdAt", "updatedAt", "date", "type", "severity", "location"]
SortOrder = Literal["asc", "desc"]
Trend = Literal["up", "down", "stable"]

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100
MAX_RADIUS_KM = 100


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _validate_not_future(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    value = as_utc(value)
    if value > datetime.now(UTC):
        raise ValueError("date must not be in the future")
    return value


class AccidentCreate(CamelModel):
    """Payload for reporting an accident. reportedBy is set by the server."""

    location: str = Field(..., min_length=5, max_length=200)
    type: AccidentType
    severity: AccidentSeverity
    date: datetime
    description: str | None = Field(default=None, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    zone_id: int | None = Field(default=None, ge=1)

    check_date = field_validator("date")(_validate_not_future)


# Columns that may be cleared by sending an explicit null.
NULLABLE_UPDATE_FIELDS = frozenset({"description", "zone_id"})


class AccidentUpdate(CamelModel):
    """Partial update: every field optional, each validated like on create."""

    location: str | None = Field(default=None, min_length=5, max_length=200)
    type: AccidentType | None = None
    severity: AccidentSeverity | None = None
    date: datetime | None = None
    description: str | None = Field(default=None, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    zone_id: int | None = Field(default=None, ge=1)

    check_date = field_validator("date")(_validate_not_future)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "AccidentUpdate":
        for name in self.model_fields_set:
            if name not in NULLABLE_UPDATE_FIELDS and getattr(self, name) is None:
                raise ValueError(f"{name} may not be null")
        return self


class DateRangeFilter(CamelModel):
    """Optional [start_date, end_date] window on the accident date."""

    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def check_range(self) -> "DateRangeFilter":
        if self.start_date is not None:
            self.start_date = as_utc(self.start_date)
        if self.end_date is not None:
            self.end_date = as_utc(self.end_date)
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        ):
            raise ValueError("endDate must be greater than or equal to startDate")
        return self


class AccidentFilters(DateRangeFilter):
    """Query parameters for GET /accidents."""

    type: AccidentType | None = None
    severity: AccidentSeverity | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    radius: float | None = Field(default=None, ge=0, le=MAX_RADIUS_KM, description="km")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT)
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"


class ReporterOut(CamelModel):
    """Public profile of the user who reported an accident."""

    id: int
    first_name: str
    last_name: str
    email: str


class AccidentOut(CamelModel):
    id: int
    location: str
    type: AccidentType
    severity: AccidentSeverity
    date: datetime
    description: str | None = None
    latitude: float
    longitude: float
    reported_by: int | None = None
    zone_id: int | None = None
    created_at: datetime
    updated_at: datetime
    # Read from the ORM "reporter" relationship, serialized as "user".
    user: ReporterOut | None = Field(
        default=None,
        validation_alias=AliasChoices("reporter", "user"),
        serialization_alias="user",
    )


class AccidentStats(CamelModel):
    total: int
    by_type: dict[str, int]
    by_severity: dict[str, int]
    this_month: int
    last_month: int
    trend: Trend
