"""
Read service: single-article fetch, cursor search and the typed listings.

Visibility
----------
- DELETED articles read as missing (``ArticleNotFoundError``).
- BLOCKED articles exist but are refused with ``ArticleBlockedError`` so
  callers can tell the two apart.
- Search always filters on a status (ACTIVE unless the criteria say
  otherwise).

An id-only cursor is resolved with a point lookup before the range query.
The two reads do not share a snapshot; if the cursor row changes status in
between, the caller gets ``InvalidCursorError`` and restarts the walk.
"""
import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    ArticleBlockedError,
    ArticleNotFoundError,
    InvalidCursorError,
    TypeMismatchError,
)
from app.models import Article, ArticleStatus, ArticleType, EventArticle, NoticeArticle, utcnow
from app.pagination import Cursor, CursorPage, SearchCriteria, fetch_page
from app.schemas import PaginatedResponse
from app.services.serializers import article_to_dict, article_to_simple_dict

logger = logging.getLogger(__name__)

EVENT_PHASES = ("all", "ongoing", "ended", "upcoming")


def ensure_visible(article: Optional[Article], article_id: str) -> Article:
    if article is None or article.is_deleted:
        raise ArticleNotFoundError(article_id)
    if article.is_blocked:
        raise ArticleBlockedError(article_id)
    return article


async def fetch_article_by_id(db: AsyncSession, article_id: str) -> Article:
    logger.debug("Fetching article %s", article_id)
    article = await db.get(Article, article_id)
    return ensure_visible(article, article_id)


async def fetch_typed_article(
    db: AsyncSession, article_id: str, article_type: ArticleType
) -> Article:
    article = await fetch_article_by_id(db, article_id)
    if article.article_type != article_type.value:
        raise TypeMismatchError(article_id, article_type.value, article.article_type)
    return article


async def resolve_cursor(
    db: AsyncSession, criteria: SearchCriteria, cursor_id: str
) -> Cursor:
    """Look up the ``updated_at`` for an id-only cursor."""
    row = (
        await db.execute(
            select(Article.updated_at, Article.status).where(Article.id == cursor_id)
        )
    ).one_or_none()
    if row is None or row.status != criteria.status:
        raise InvalidCursorError(cursor_id)
    return Cursor(updated_at=row.updated_at, article_id=cursor_id)


async def search_articles(
    db: AsyncSession,
    criteria: SearchCriteria,
    size: Optional[int] = None,
    cursor_id: Optional[str] = None,
    cursor_updated_at: Optional[datetime] = None,
) -> CursorPage:
    cursor: Optional[Cursor] = None
    if cursor_updated_at is not None:
        cursor = Cursor(updated_at=cursor_updated_at, article_id=cursor_id or None)
    elif cursor_id:
        cursor = await resolve_cursor(db, criteria, cursor_id)
    page = await fetch_page(db, criteria, cursor, size)
    logger.debug(
        "Search %s returned %d item(s), has_next=%s", criteria, len(page.items), page.has_next
    )
    return page


def page_to_dict(page: CursorPage) -> dict:
    return {
        "items": [article_to_dict(a) for a in page.items],
        "has_next": page.has_next,
        "size": page.size,
        "next_cursor_id": page.next_cursor_id,
        "next_cursor_updated_at": (
            page.next_cursor_updated_at.isoformat() if page.next_cursor_updated_at else None
        ),
    }


# ---------------------------------------------------------------------------
# Typed listings (offset paginated, newest first)
# ---------------------------------------------------------------------------

async def _paginate(db: AsyncSession, model, filters: list, page: int, page_size: int) -> PaginatedResponse:
    total: int = (
        await db.execute(select(func.count()).select_from(model).where(*filters))
    ).scalar_one()
    rows = (
        await db.execute(
            select(model)
            .where(*filters)
            .order_by(model.created_at.desc(), model.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).scalars().all()
    return PaginatedResponse(
        items=[article_to_dict(a) for a in rows],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


async def list_notices(db: AsyncSession, page: int = 1, page_size: int = 20) -> PaginatedResponse:
    filters = [
        NoticeArticle.article_type == ArticleType.NOTICE.value,
        NoticeArticle.status == ArticleStatus.ACTIVE,
    ]
    return await _paginate(db, NoticeArticle, filters, page, page_size)


async def list_events(
    db: AsyncSession,
    phase: str = "all",
    page: int = 1,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> PaginatedResponse:
    """
    List ACTIVE events.  *phase* narrows by the event window relative to
    *now*: ``ongoing`` (start <= now <= end), ``ended`` (end < now),
    ``upcoming`` (start > now); anything else lists every event.
    """
    now = now or utcnow()
    filters = [
        EventArticle.article_type == ArticleType.EVENT.value,
        EventArticle.status == ArticleStatus.ACTIVE,
    ]
    phase = (phase or "all").lower()
    if phase == "ongoing":
        filters += [EventArticle.event_start_date <= now, EventArticle.event_end_date >= now]
    elif phase == "ended":
        filters.append(EventArticle.event_end_date < now)
    elif phase == "upcoming":
        filters.append(EventArticle.event_start_date > now)
    return await _paginate(db, EventArticle, filters, page, page_size)


async def fetch_simple_by_ids(db: AsyncSession, ids: list[str]) -> list[dict]:
    """
    Fetch lightweight summaries for *ids* in request order.

    Duplicates are collapsed (first occurrence wins) and the list is cut at
    ``settings.BULK_FETCH_LIMIT``.  Unknown or non-ACTIVE ids are skipped.
    """
    unique_ids = list(dict.fromkeys(i for i in ids or [] if i))[: settings.BULK_FETCH_LIMIT]
    if not unique_ids:
        return []
    rows = (
        await db.execute(
            select(Article).where(
                Article.id.in_(unique_ids), Article.status == ArticleStatus.ACTIVE
            )
        )
    ).scalars().all()
    by_id = {a.id: a for a in rows}
    return [article_to_simple_dict(by_id[i]) for i in unique_ids if i in by_id]
