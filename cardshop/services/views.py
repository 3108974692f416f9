# cardshop/services/views.py
"""Pure derived views over a container's items."""
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def find_by_id(items: Iterable[T], item_id: str) -> Optional[T]:
    return next((i for i in items if i.id == item_id), None)


def search(items: Sequence[T], query: str, field: str = "name") -> List[T]:
    """Case-insensitive substring match on `field`; a blank query matches everything."""
    if not query or not query.strip():
        return list(items)
    needle = query.strip().lower()
    return [
        i for i in items
        if needle in (getattr(i, field, None) or "").lower()
    ]


def filter_by(items: Iterable[T], field: str, value: Any) -> List[T]:
    return [i for i in items if getattr(i, field, None) == value]


def filter_by_range(items: Iterable[T], field: str, low, high) -> List[T]:
    # missing values count as 0, bounds inclusive
    low, high = Decimal(str(low)), Decimal(str(high))
    out = []
    for i in items:
        value = getattr(i, field, None) or 0
        if low <= Decimal(str(value)) <= high:
            out.append(i)
    return out


def partition_by_flag(items: Iterable[T], field: str, default: bool = False) -> Tuple[List[T], List[T]]:
    """(flag set, flag unset); rows without a value take `default`."""
    on, off = [], []
    for i in items:
        value = getattr(i, field, None)
        (on if (default if value is None else value) else off).append(i)
    return on, off
