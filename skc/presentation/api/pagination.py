"""Paging helpers: sort parsing and the ``X-Total-Count`` / ``Link`` headers."""

import re
from typing import Dict, List, Sequence, Tuple

from starlette.datastructures import URL

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 2000

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_column(field: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", field.strip()).lower()


def parse_sort(values: Sequence[str], allowed: Sequence[str]) -> List[Tuple[str, bool]]:
    """
    Turn ``sort=field,asc`` parameters into ``(column, ascending)`` pairs.

    Raises:
        ValueError: if a field is not one of ``allowed``
    """
    orders: List[Tuple[str, bool]] = []
    for value in values:
        parts = [part.strip() for part in value.split(",") if part.strip()]
        if not parts:
            continue
        direction = parts[-1].lower() if len(parts) > 1 else "asc"
        if direction in ("asc", "desc"):
            fields = parts[:-1] if len(parts) > 1 else parts
        else:
            direction = "asc"
            fields = parts
        for field in fields:
            column = to_column(field)
            if column not in allowed:
                raise ValueError(f"Unknown sort property '{field}'")
            orders.append((column, direction == "asc"))
    return orders


def pagination_headers(url: URL, page: int, size: int, total: int) -> Dict[str, str]:
    total_pages = (total + size - 1) // size if size else 0
    links = []
    if page + 1 < total_pages:
        links.append(_link(url, page + 1, size, "next"))
    if page > 0:
        links.append(_link(url, page - 1, size, "prev"))
    links.append(_link(url, max(total_pages - 1, 0), size, "last"))
    links.append(_link(url, 0, size, "first"))
    return {"X-Total-Count": str(total), "Link": ",".join(links)}


def _link(url: URL, page: int, size: int, rel: str) -> str:
    target = url.include_query_params(page=page, size=size)
    return f'<{target}>; rel="{rel}"'
