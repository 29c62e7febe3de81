from typing import Callable, Optional

from sqlalchemy import func
from sqlmodel import Session, select

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def paginate(
    *,
    session: Session,
    query,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    serializer: Optional[Callable] = None,
) -> dict:
    """
    Run ``query`` for one page. ``serializer`` converts each row (admin
    listings hand back response models instead of table rows).
    """
    page = max(page, 1)
    limit = min(limit if limit >= 1 else DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)

    total = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()
    total_pages = (total + limit - 1) // limit

    rows = session.exec(
        query.offset((page - 1) * limit).limit(limit)
    ).all()
    if serializer:
        rows = [serializer(row) for row in rows]

    return {
        "total_items": total,
        "total_pages": total_pages,
        "current_page": page,
        "limit": limit,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "results": rows,
    }
