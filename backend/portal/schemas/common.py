"""Shared request/response building blocks."""

import math

from pydantic import BaseModel, Field


class Pagination(BaseModel):
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Items per page")
    total: int = Field(description="Total matching items")
    total_pages: int = Field(description="Number of pages for this limit")
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
