"""
Keyset (cursor) pagination over articles.

Rows are ordered by ``updated_at DESC, id DESC``; ``id`` breaks ties between
rows written in the same instant (bulk inserts routinely share a timestamp).
A cursor is the exclusive ``(updated_at, id)`` lower bound of the next page.

The caller asks for ``size`` rows and ``fetch_page`` over-fetches one: if
the extra row arrives it is dropped, ``has_next`` is set, and the cursor
points at the last row that was kept.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import Article, ArticleStatus, KeywordMapping


class SearchCriteria(BaseModel):
    """
    Immutable article filter.

    Everything is ANDed except ``keyword_ids``, which matches an article
    mapped to *any* of the ids.  ``status`` falls back to ACTIVE when it is
    missing or not a known status, so the status filter is always present.
    """

    model_config = ConfigDict(frozen=True)

    board_id: Optional[int] = None
    keyword_ids: Optional[frozenset[int]] = None
    title: Optional[str] = None
    content: Optional[str] = None
    writer_ids: Optional[frozenset[str]] = None
    status: ArticleStatus = ArticleStatus.ACTIVE

    @field_validator("title", "content", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("keyword_ids", "writer_ids", mode="before")
    @classmethod
    def _empty_is_none(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, int)):
            value = [value]
        values = frozenset(v for v in value if v is not None and v != "")
        return values or None

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> ArticleStatus:
        if isinstance(value, ArticleStatus):
            return value
        if isinstance(value, str):
            try:
                return ArticleStatus(value.strip().upper())
            except ValueError:
                pass
        return ArticleStatus.ACTIVE


@dataclass(frozen=True)
class Cursor:
    updated_at: datetime
    article_id: Optional[str] = None


@dataclass
class CursorPage:
    items: List[Article]
    has_next: bool
    size: int
    next_cursor: Optional[Cursor] = None

    @property
    def next_cursor_id(self) -> Optional[str]:
        return self.next_cursor.article_id if self.next_cursor else None

    @property
    def next_cursor_updated_at(self) -> Optional[datetime]:
        return self.next_cursor.updated_at if self.next_cursor else None


def clamp_page_size(size: Optional[int]) -> int:
    if size is None or size <= 0:
        return settings.DEFAULT_PAGE_SIZE
    return min(size, settings.MAX_PAGE_SIZE)


def _criteria_filters(criteria: SearchCriteria) -> list:
    filters = [Article.status == criteria.status]
    if criteria.board_id is not None:
        filters.append(Article.board_id == criteria.board_id)
    if criteria.title:
        filters.append(Article.title.icontains(criteria.title, autoescape=True))
    if criteria.content:
        filters.append(Article.content.icontains(criteria.content, autoescape=True))
    if criteria.writer_ids:
        filters.append(Article.writer_id.in_(sorted(criteria.writer_ids)))
    if criteria.keyword_ids:
        # Subquery rather than a join: no duplicate rows for multi-keyword hits.
        mapped = select(KeywordMapping.article_id).where(
            KeywordMapping.keyword_id.in_(sorted(criteria.keyword_ids))
        )
        filters.append(Article.id.in_(mapped))
    return filters


def _cursor_filter(cursor: Optional[Cursor]):
    if cursor is None:
        return None
    if cursor.article_id is None:
        return Article.updated_at < cursor.updated_at
    return or_(
        Article.updated_at < cursor.updated_at,
        and_(Article.updated_at == cursor.updated_at, Article.id < cursor.article_id),
    )


def build_search_query(
    criteria: SearchCriteria, cursor: Optional[Cursor], limit: int
) -> Select:
    filters = _criteria_filters(criteria)
    bound = _cursor_filter(cursor)
    if bound is not None:
        filters.append(bound)
    return (
        select(Article)
        .where(*filters)
        .order_by(Article.updated_at.desc(), Article.id.desc())
        .limit(limit)
    )


def split_page(rows: Iterable[Article], size: int) -> tuple[list[Article], bool, Optional[Cursor]]:
    """Apply the N+1 protocol to *rows* fetched with ``limit=size + 1``."""
    rows = list(rows)
    has_next = len(rows) > size
    if not has_next:
        return rows, False, None
    kept = rows[:size]
    last = kept[-1]
    return kept, True, Cursor(updated_at=last.updated_at, article_id=last.id)


async def fetch_page(
    db: AsyncSession,
    criteria: SearchCriteria,
    cursor: Optional[Cursor] = None,
    size: Optional[int] = None,
) -> CursorPage:
    size = clamp_page_size(size)
    result = await db.execute(build_search_query(criteria, cursor, size + 1))
    items, has_next, next_cursor = split_page(result.scalars().all(), size)
    return CursorPage(
        items=items,
        has_next=has_next,
        size=size,
        next_cursor=next_cursor,
    )
