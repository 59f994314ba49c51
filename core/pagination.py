import math

from .errors import ValidationError


def page_params(request, default_limit=10, max_limit=100):
    try:
        page = int(request.query_params.get("page", 1))
        limit = int(request.query_params.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    return page, min(limit, max_limit)


def paginate(queryset, page, limit):
    """Slice a queryset and return (rows, pagination dict)."""
    total = queryset.count()
    offset = (page - 1) * limit
    rows = list(queryset[offset:offset + limit])
    return rows, {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if total else 0,
        "total": total,
        "limit": limit,
    }
