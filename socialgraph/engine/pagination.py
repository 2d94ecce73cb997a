"""Offset/limit paging shared by every listing operation."""
from dataclasses import dataclass

from socialgraph.config import settings
from socialgraph.errors import ValidationError


@dataclass(frozen=True)
class PageWindow:
    offset: int
    limit: int

    @classmethod
    def of(cls, offset: int, limit: int) -> "PageWindow":
        if offset < 0:
            raise ValidationError("offset must be >= 0")
        if limit < 1 or limit > settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {settings.max_page_size}")
        return cls(offset=offset, limit=limit)

    @classmethod
    def from_page(cls, page: int, limit: int) -> "PageWindow":
        if page < 1:
            raise ValidationError("page must be >= 1")
        return cls.of((page - 1) * limit, limit)

    def has_more(self, total: int) -> bool:
        # Exact: the total is always counted alongside the page
        return self.offset + self.limit < total

    def page_fields(self, total: int) -> dict:
        return {
            "total": total,
            "has_more": self.has_more(total),
            "offset": self.offset,
            "limit": self.limit,
        }
