from flask import current_app

from utils.errors import ValidationError


def page_args(args, default_limit_key: str):
    """Read ``page``/``limit`` query args, clamped to the configured bounds."""
    default_limit = current_app.config.get(default_limit_key, 25)
    max_limit = current_app.config.get("MAX_PAGE_LIMIT", 500)

    page = args.get("page", type=int) or 1
    limit = args.get("limit", type=int) or default_limit
    return max(page, 1), max(1, min(limit, max_limit))


def apply_sort(query, model, sort: str, allowed, default: str):
    """
    Apply a comma-separated sort spec like ``-start_date,id``.
    Only fields in ``allowed`` may be used.
    """
    spec = [part.strip() for part in (sort or default).split(",") if part.strip()]
    clauses = []
    for part in spec:
        descending = part.startswith("-")
        field = part.lstrip("-+")
        if field not in allowed:
            raise ValidationError(f"Cannot sort by '{field}'", allowed=sorted(allowed))
        column = getattr(model, field)
        clauses.append(column.desc() if descending else column.asc())
    return query.order_by(*clauses)


def paginate(query, page: int, limit: int):
    """Returns (rows, total, pagination) where pagination has optional next/prev links."""
    total = query.order_by(None).count()
    start_index = (page - 1) * limit
    rows = query.offset(start_index).limit(limit).all()

    pagination = {}
    if page * limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return rows, total, pagination
