import math
from typing import Any


def clamp_page(page: int, limit: int, max_limit: int = 100) -> tuple[int, int]:
    return max(1, page), max(1, min(limit, max_limit))


def page_payload(data: list[Any], total: int, page: int, limit: int) -> dict[str, Any]:
    """The list envelope every paginated endpoint returns."""
    return {
        "data": data,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
