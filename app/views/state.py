"""
View state for data driven page sections.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
import logging

from app.services.api_client import GENERIC_ERROR_MESSAGE
from app.utils.exceptions import APIException, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ViewStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    POPULATED = "populated"


@dataclass
class ViewState(Generic[T]):
    """
    One of loading, error, empty or populated, as rendered by a page section.

    Retrying an errored section re-issues the fetch by reloading `retry_url`.
    """
    status: ViewStatus = ViewStatus.LOADING
    data: Optional[T] = None
    error: Optional[str] = None
    retry_url: Optional[str] = None

    @classmethod
    def loading(cls) -> "ViewState[T]":
        return cls(status=ViewStatus.LOADING)

    @classmethod
    def failed(cls, message: str, retry_url: Optional[str] = None) -> "ViewState[T]":
        return cls(status=ViewStatus.ERROR, error=message, retry_url=retry_url)

    @classmethod
    def of(cls, data: T, is_empty: Optional[Callable[[T], bool]] = None) -> "ViewState[T]":
        check = is_empty or _default_is_empty
        status = ViewStatus.EMPTY if check(data) else ViewStatus.POPULATED
        return cls(status=status, data=data)

    @property
    def is_loading(self) -> bool:
        return self.status == ViewStatus.LOADING

    @property
    def is_error(self) -> bool:
        return self.status == ViewStatus.ERROR

    @property
    def is_empty(self) -> bool:
        return self.status == ViewStatus.EMPTY

    @property
    def is_populated(self) -> bool:
        return self.status == ViewStatus.POPULATED


def _default_is_empty(data: Any) -> bool:
    if data is None:
        return True
    if hasattr(data, "is_empty"):
        return bool(data.is_empty)
    try:
        return len(data) == 0
    except TypeError:
        return False


async def load_view(
    fetch: Callable[[], Awaitable[T]],
    is_empty: Optional[Callable[[T], bool]] = None,
    retry_url: Optional[str] = None,
    reraise_not_found: bool = False
) -> ViewState[T]:
    """
    Await a fetch and map the outcome onto a view state.

    Args:
        fetch: Zero-argument coroutine function issuing the API calls
        is_empty: Emptiness check, defaults to `len(data) == 0`
        retry_url: URL the error branch links to for a retry
        reraise_not_found: Let NotFoundError propagate so the page renders a 404

    Returns:
        ViewState in the error, empty or populated branch
    """
    try:
        data = await fetch()
    except NotFoundError:
        if reraise_not_found:
            raise
        return ViewState.failed("Not found", retry_url)
    except APIException as e:
        logger.warning(f"View data failed to load: {e.message}", extra={"retry_url": retry_url})
        return ViewState.failed(e.message or GENERIC_ERROR_MESSAGE, retry_url)
    return ViewState.of(data, is_empty)
