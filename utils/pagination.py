import math

from schemas.common import CamelModel


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_items=total,
        items_per_page=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
