"""
Shared schema building blocks for marketplace API payloads.
The API owns every entity, so schemas accept unknown fields and coerce numerics.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Generic, List, Optional, Type, TypeVar


T = TypeVar("T")


def coerce_number(value: Any, default: float = 0) -> float:
    """
    Coerce an API numeric column into a number.

    The API returns NUMERIC columns as strings and missing values as null;
    both render as numbers on the page.

    Args:
        value: Raw value from the API
        default: Value used for null, empty or unparseable input

    Returns:
        Float value
    """
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce an API count column into an int."""
    return int(coerce_number(value, default))


def coerce_list(value: Any) -> List[Any]:
    """Coerce a nullable JSON array column into a list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class APIModel(BaseModel):
    """Base model for entities returned by the marketplace API."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Pagination(APIModel):
    """Pagination envelope returned by list endpoints."""

    total: int = 0
    limit: int = 20
    offset: int = 0
    has_more: bool = False

    @property
    def page(self) -> int:
        """Current 1-based page number."""
        if self.limit <= 0:
            return 1
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> int:
        """Total number of pages (0 when there are no results)."""
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


class Page(APIModel, Generic[T]):
    """A page of results with its pagination envelope."""

    data: List[T] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @property
    def is_empty(self) -> bool:
        return not self.data


def parse_page(payload: Any, item_model: Type[BaseModel]) -> Page:
    """
    Parse a list endpoint response.

    List endpoints answer either `{data: [...], pagination: {...}}` or a
    bare JSON array.

    Args:
        payload: Decoded JSON
        item_model: Schema of the items

    Returns:
        Page of parsed items
    """
    if isinstance(payload, list):
        items = payload
        pagination = {"total": len(items), "limit": len(items), "offset": 0, "has_more": False}
    elif isinstance(payload, dict):
        items = payload.get("data") or []
        pagination = payload.get("pagination") or {"total": len(items), "limit": len(items)}
    else:
        items, pagination = [], {}
    return Page[item_model](
        data=[item_model.model_validate(item) for item in items],
        pagination=Pagination.model_validate(pagination),
    )


def parse_list(payload: Any, item_model: Type[BaseModel]) -> List[Any]:
    """Parse a list endpoint response, discarding pagination."""
    return parse_page(payload, item_model).data


class MessageResponse(APIModel):
    """Generic `{success, message}` acknowledgement."""

    success: bool = True
    message: Optional[str] = None
