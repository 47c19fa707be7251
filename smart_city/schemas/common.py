"""Response envelope and shared base model for camelCase JSON."""

from typing import Generic, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire (either accepted on input)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Paging metadata for list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class ApiResponse(CamelModel, Generic[T]):
    """Envelope for every successful response: {success, message, data?, pagination?}."""

    success: bool = True
    message: str
    data: T | None = None
    pagination: Pagination | None = None

    @model_serializer(mode="wrap")
    def omit_absent_sections(self, handler: SerializerFunctionWrapHandler):
        # Only the envelope's own optional keys are dropped; nulls inside data are kept.
        body = handler(self)
        for key in ("data", "pagination"):
            if body.get(key) is None:
                body.pop(key, None)
        return body
