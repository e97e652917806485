"""Shared schema pieces - pagination."""

from math import ceil

from pydantic import BaseModel

MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    limit: int


def clamp_page(page: int | None, limit: int | None, default_limit: int) -> tuple[int, int, int]:
    """Normalize page/limit query values. Returns (page, limit, offset)."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or default_limit))
    return page, limit, (page - 1) * limit


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(current_page=page, total_pages=ceil(total / limit), limit=limit)
