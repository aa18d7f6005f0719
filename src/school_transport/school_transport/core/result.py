from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from .exceptions import DomainError, NotFoundError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success/failure wrapper returned by every service use case."""

    is_success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    errors: tuple[str, ...] = ()
    not_found: bool = False

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def failure(cls, error: str, *, errors: Sequence[str] = (), not_found: bool = False) -> "Result[T]":
        return cls(is_success=False, error=error, errors=tuple(errors), not_found=not_found)


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages


def service_result(default_message: str) -> Callable[[Callable[..., Any]], Callable[..., Result[Any]]]:
    """Decorator: wrap a use case so it always returns a Result.

    - DomainError -> Result.failure(str(e)) (NotFoundError also sets not_found).
    - anything else is logged with traceback and mapped to default_message.
    - a returned Result is passed through untouched, any other value is wrapped.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Result[Any]]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> Result[Any]:
            try:
                value = fn(*args, **kwargs)
            except NotFoundError as e:
                return Result.failure(str(e), not_found=True)
            except DomainError as e:
                return Result.failure(str(e))
            except Exception:
                logger.exception("%s (%s)", default_message, fn.__qualname__)
                return Result.failure(default_message)
            if isinstance(value, Result):
                return value
            return Result.success(value)

        return wrapper

    return decorator
