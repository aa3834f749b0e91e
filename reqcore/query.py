"""Query result shaping: filtering, pagination, transforms, caching and page parameters."""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Generic, TypeVar

T = TypeVar("T")
Row = TypeVar("Row")

ASC = "asc"
DSC = "desc"

DEFAULT_PAGE_TEXT = "page"
DEFAULT_SIZE_TEXT = "size"
DEFAULT_PAGE = "1"
DEFAULT_PAGE_SIZE = "10"
DEFAULT_MIN_PAGESIZE = 10
DEFAULT_MAX_PAGESIZE = 100

TOTAL_COUNT_HEADER = "X-Total-Count"

_INTEGER = re.compile(r"[+-]?[0-9]+")


class PaginationError(ValueError):
    """Invalid pagination or filter input; ``status`` is the HTTP status to answer with."""

    def __init__(self, message: str, status: int = HTTPStatus.BAD_REQUEST) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class PaginationData:
    """Requested window, sort field, order and filter expression."""

    start: int = 0
    end: int = 0
    sort: str = ""
    order: str = ""
    filters: str = ""


@dataclass(frozen=True)
class Filter:
    """One ``field operator value value2`` filter clause."""

    field: str
    operator: str
    value: str
    value_2nd: str


@dataclass
class QueryResp(Generic[T]):
    """A translated query response and the number of rows it stands for."""

    total_rows: int
    resp: T


@dataclass
class CommandReplacer(Generic[T]):
    """Replaces the first occurrence of ``token`` in a command with ``builder(data)``."""

    token: str
    builder: Callable[[T], str]

    def replace(self, command: str, data: T) -> str:
        return command.replace(self.token, self.builder(data), 1)


@dataclass
class QueryCache(Generic[Row]):
    """Rows cached per argument list for ``max_age`` seconds."""

    title: str
    max_age: float
    clock: Callable[[], float] = time.monotonic
    _data: dict[str, tuple[float, list[Row]]] = field(default_factory=dict, repr=False)

    def key(self, args: Iterable[Any]) -> str:
        return f"{self.title}-[{' '.join(str(arg) for arg in args)}]"

    def check(self, args: Iterable[Any]) -> list[Row] | None:
        """Cached rows for ``args`` if still fresh; stale entries are dropped."""
        key = self.key(args)
        entry = self._data.get(key)
        if entry is None:
            return None
        stored_at, rows = entry
        if self.clock() - stored_at <= self.max_age:
            return rows
        del self._data[key]
        return None

    def store(self, args: Iterable[Any], rows: list[Row]) -> None:
        self._data[self.key(args)] = (self.clock(), rows)


def filterate(
    pagination: PaginationData,
    data: Sequence[Row],
    filter_func: Callable[[Filter], Callable[[Row], bool]],
) -> list[Row]:
    """Drop every row that a filter clause's predicate matches.

    Clauses are separated by `` and `` and each holds four space-separated parts.
    """
    if not pagination.filters:
        return list(data)
    result = list(data)
    for clause in pagination.filters.split(" and "):
        parts = clause.split(" ")
        if len(parts) < 4:
            raise PaginationError(f"invalid filter clause: {clause!r}")
        predicate = filter_func(Filter(parts[0], parts[1], parts[2], parts[3]))
        result = [row for row in result if not predicate(row)]
    return result


def paginate(
    pagination: PaginationData,
    data: Sequence[Row],
    key: Callable[[str], Callable[[Row], Any]],
) -> list[Row]:
    """Sort by ``pagination.sort`` (via ``key``), apply the order, then cut the window."""
    start = max(pagination.start, 0)
    end = max(pagination.end, start)
    if end == start == 0 and len(data) > 1:
        end = len(data)
    end = min(end, len(data))
    result = list(data)
    if pagination.sort:
        result.sort(key=key(pagination.sort))
    if pagination.order == DSC:
        result.reverse()
    return result[start:end]


def single_transform(rows: Sequence[Row]) -> QueryResp[list[Row]]:
    """Keep only the first row."""
    if not rows:
        raise ValueError("no rows to transform")
    return QueryResp(total_rows=1, resp=[rows[0]])


def all_transform(rows: Sequence[Row]) -> QueryResp[list[Row]]:
    """Keep every row."""
    return QueryResp(total_rows=len(rows), resp=list(rows))


def _to_int(text: str) -> int | None:
    if _INTEGER.fullmatch(text) is None:
        return None
    return int(text)


def parse_page_params(
    query: Mapping[str, str],
    page_text: str = DEFAULT_PAGE_TEXT,
    size_text: str = DEFAULT_SIZE_TEXT,
    default_page: str = DEFAULT_PAGE,
    default_page_size: str = DEFAULT_PAGE_SIZE,
    min_page_size: int = DEFAULT_MIN_PAGESIZE,
    max_page_size: int = DEFAULT_MAX_PAGESIZE,
) -> dict[str, int]:
    """Read and check page number and size from query parameters."""
    page = _to_int(query.get(page_text, default_page))
    if page is None:
        raise PaginationError("page number must be an integer")
    if page < 0:
        raise PaginationError("page number must be positive")
    size = _to_int(query.get(size_text, default_page_size))
    if size is None:
        raise PaginationError("page size must be an integer")
    if size < min_page_size or size > max_page_size:
        raise PaginationError(
            f"page size must be between {min_page_size} and {max_page_size}"
        )
    return {page_text: page, size_text: size}