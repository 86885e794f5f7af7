"""
In-memory list handling: search, sort, paginate.

These functions operate on plain sequences so the same rules apply to every
list endpoint regardless of how the rows were loaded.
"""

import math
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One slice of a filtered list."""

    items: list[T]
    page: int
    limit: int
    total: int
    pages: int

    def meta(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
        }


def format_number(value: float | int) -> str:
    """Render a number the way it is displayed, so 150.0 searches as "150"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_text(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def matches_query(term: str | None, values: Iterable[Any]) -> bool:
    """Case-insensitive substring match of ``term`` against any value.

    A blank term matches everything. ``None`` values never match.
    """
    if term is None or not term.strip():
        return True
    needle = term.strip().lower()
    return any(
        needle in _as_text(value).lower()
        for value in values
        if value is not None
    )


def filter_items(
    items: Iterable[T],
    term: str | None,
    fields: Callable[[T], Iterable[Any]],
) -> list[T]:
    """Keep the items whose searchable fields contain ``term``."""
    return [item for item in items if matches_query(term, fields(item))]


def sort_items(
    items: Iterable[T],
    key: Callable[[T], Any],
    descending: bool = False,
) -> list[T]:
    """Stable sort with ``None`` keys always placed last.

    Strings compare case-insensitively; everything else uses its natural order.
    """
    present: list[tuple[Any, T]] = []
    missing: list[T] = []
    for item in items:
        value = key(item)
        if value is None:
            missing.append(item)
        else:
            present.append((value.lower() if isinstance(value, str) else value, item))

    present.sort(key=lambda pair: pair[0], reverse=descending)
    return [item for _, item in present] + missing


def paginate(items: Sequence[T], page: int, limit: int) -> Page[T]:
    """Slice ``items`` into the requested page.

    Raises:
        ValueError: If limit is below 1.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    page = max(page, 1)
    total = len(items)
    start = (page - 1) * limit
    return Page(
        items=list(items[start:start + limit]),
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )


@dataclass
class ListView(Generic[T]):
    """A searchable, paginated view over a full list.

    The visible page is always derived from ``items`` so edits made through
    ``replace``/``add``/``remove`` show up on the current page immediately.
    """

    items: list[T]
    fields: Callable[[T], Iterable[Any]]
    key: Callable[[T], Hashable]
    limit: int = 12
    search: str = ""
    page: int = 1
    sort_key: Callable[[T], Any] | None = field(default=None)
    descending: bool = False

    def set_search(self, term: str) -> None:
        self.search = term
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = max(page, 1)

    def filtered(self) -> list[T]:
        rows = filter_items(self.items, self.search, self.fields)
        if self.sort_key is not None:
            rows = sort_items(rows, self.sort_key, self.descending)
        return rows

    def current(self) -> Page[T]:
        return paginate(self.filtered(), self.page, self.limit)

    def replace(self, item: T) -> bool:
        """Swap the item sharing ``item``'s key. Returns False if absent."""
        target = self.key(item)
        for index, existing in enumerate(self.items):
            if self.key(existing) == target:
                self.items[index] = item
                return True
        return False

    def add(self, item: T) -> None:
        self.items.insert(0, item)

    def remove(self, key: Hashable) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if self.key(item) != key]
        return len(self.items) != before
