import math
from typing import Tuple


def paginate(query, page: int, limit: int) -> Tuple[list, int]:
    """Apply page/limit to a query and return the page items with the unpaged total"""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
