"""
Board and keyword administration plus the enum lookups clients use to
build their filters.

Board and keyword lists are served cache-aside from Redis with
``CACHE_TTL_ENUMS``; writes that change them drop the cached copy once
the transaction commits.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.article_types import ARTICLE_TYPE_DESCRIPTIONS
from app.cache import BOARDS_KEY, KEYWORDS_KEY, cache, schedule_invalidation
from app.config import settings
from app.exceptions import BoardNotFoundError, DuplicateBoardError, DuplicateKeywordError
from app.models import ArticleStatus, Board, Keyword
from app.schemas import BoardCreate, KeywordCreate
from app.services.read_service import EVENT_PHASES

logger = logging.getLogger(__name__)


async def create_board(db: AsyncSession, data: BoardCreate) -> Board:
    existing = await db.execute(select(Board.id).where(Board.name == data.name))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateBoardError(data.name)

    board = Board(
        name=data.name,
        description=data.description,
        display_order=data.display_order,
        is_active=True,
    )
    db.add(board)
    await db.flush()
    schedule_invalidation(db, BOARDS_KEY)
    logger.info("Board created id=%s name=%s", board.id, board.name)
    return board


async def create_keyword(db: AsyncSession, data: KeywordCreate) -> Keyword:
    """
    Create a keyword scoped to ``data.board_id``, or a global keyword when
    it is None.  Names are unique within a scope; every global keyword
    shares one scope.
    """
    if data.board_id is not None and await db.get(Board, data.board_id) is None:
        raise BoardNotFoundError(board_id=data.board_id)

    scope = (
        Keyword.board_id.is_(None)
        if data.board_id is None
        else Keyword.board_id == data.board_id
    )
    existing = await db.execute(select(Keyword.id).where(scope, Keyword.name == data.name))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateKeywordError(data.name, data.board_id)

    keyword = Keyword(name=data.name, board_id=data.board_id, usage_count=0, is_active=True)
    db.add(keyword)
    await db.flush()
    schedule_invalidation(db, KEYWORDS_KEY)
    logger.info("Keyword created id=%s name=%s board=%s", keyword.id, keyword.name, keyword.board_id)
    return keyword


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

def get_available_enums() -> dict:
    return {
        "article_types": [
            {"name": t.value, "description": d} for t, d in ARTICLE_TYPE_DESCRIPTIONS.items()
        ],
        "article_statuses": [s.value for s in ArticleStatus],
        "event_phases": [p for p in EVENT_PHASES if p != "all"],
    }


async def get_boards(db: AsyncSession) -> list[dict]:
    cached = await cache.get(BOARDS_KEY)
    if cached is not None:
        return cached

    rows = (
        await db.execute(
            select(Board)
            .where(Board.is_active.is_(True))
            .order_by(Board.display_order.is_(None), Board.display_order, Board.id)
        )
    ).scalars().all()
    boards = [
        {
            "board_id": b.id,
            "board_name": b.name,
            "description": b.description,
            "display_order": b.display_order,
            "url": f"/api/v1/articles/search?board_id={b.id}",
        }
        for b in rows
    ]
    await cache.set(BOARDS_KEY, boards, ttl=settings.CACHE_TTL_ENUMS)
    return boards


async def get_keywords(db: AsyncSession, board_id: Optional[int] = None) -> list[dict]:
    """
    Active keywords with their usage counts.  With *board_id*, only that
    board's keywords plus the global ones; the filtered view is not cached.
    """
    if board_id is None:
        cached = await cache.get(KEYWORDS_KEY)
        if cached is not None:
            return cached

    q = select(Keyword).where(Keyword.is_active.is_(True)).order_by(Keyword.id)
    if board_id is not None:
        q = q.where((Keyword.board_id == board_id) | Keyword.board_id.is_(None))
    rows = (await db.execute(q)).scalars().all()
    keywords = [
        {
            "keyword_id": k.id,
            "keyword_name": k.name,
            "is_global": k.is_global,
            "board_id": k.board_id,
            "usage_count": k.usage_count,
            "url": f"/api/v1/articles/search?keyword={k.id}",
        }
        for k in rows
    ]
    if board_id is None:
        await cache.set(KEYWORDS_KEY, keywords, ttl=settings.CACHE_TTL_ENUMS)
    return keywords
