"""Success envelope and pagination helpers shared by the routers."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Query
from pydantic import BaseModel


class PageParams(BaseModel):
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PageParams:
    """FastAPI dependency reading `page`/`limit` query parameters."""
    return PageParams(page=page, limit=limit)


def audit_page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PageParams:
    return PageParams(page=page, limit=limit)


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, params: PageParams, total: int) -> "PageMeta":
        total_pages = math.ceil(total / params.limit) if total else 0
        return cls(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_previous=params.page > 1,
        )


def envelope(data: Any = None, meta: Optional[PageMeta] = None) -> dict:
    body = {"success": True, "data": data, "timestamp": datetime.now(timezone.utc).isoformat()}
    if meta is not None:
        body["meta"] = meta
    return body


def paginated(items: list, total: int, params: PageParams) -> dict:
    return envelope(items, PageMeta.build(params, total))


def page_of(schema, result, params: PageParams) -> dict:
    """Envelope a `(rows, total)` repository result, serialising rows with `schema`."""
    rows, total = result
    return paginated([schema.model_validate(r) for r in rows], total, params)
