from datetime import datetime, timezone
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _iso_utc(dt: datetime) -> str:
    # timestamps are stored as naive UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


UtcDatetime = Annotated[datetime, PlainSerializer(_iso_utc, return_type=str)]


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    errors: Optional[List[str]] = None


# documented error responses shared by the API routers
ERROR_RESPONSES = {
    code: {"model": ErrorEnvelope}
    for code in (400, 401, 403, 404, 409)
}
