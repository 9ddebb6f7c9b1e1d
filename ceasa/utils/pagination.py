"""Pagination helpers shared by every list operation."""
import math

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def paginate(page=1, limit=DEFAULT_LIMIT, max_limit=MAX_LIMIT):
    """
    Normalize page/limit and compute the offset.

    Returns:
        (page, limit, offset) with page >= 1 and 1 <= limit <= max_limit
    """
    try:
        page = int(page or 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or DEFAULT_LIMIT)
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT

    page = max(page, 1)
    limit = min(max(limit, 1), max_limit)
    return page, limit, (page - 1) * limit


def pagination_envelope(page: int, limit: int, total: int) -> dict:
    """Pagination envelope returned next to every list."""
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': math.ceil(total / limit) if limit else 0,
    }


def paginate_query(query, page=1, limit=DEFAULT_LIMIT):
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        (items, envelope)
    """
    page, limit, offset = paginate(page, limit)
    total = query.order_by(None).count()
    items = query.limit(limit).offset(offset).all()
    return items, pagination_envelope(page, limit, total)
