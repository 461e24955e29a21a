"""
Article service: write-side business logic for the Article aggregate.

Design notes
------------
- Every write is a read-modify-write on a row loaded with
  ``SELECT ... FOR UPDATE`` and ``populate_existing`` so the aggregate the
  methods see is the committed one, not a stale identity-map copy.  The
  mapper's ``version_id_col`` is the second line: a flush that hits a moved
  version raises ``StaleDataError``, surfaced as ``ConflictError``.
- Keyword rows are locked the same way before their usage counters move.
  The counter is shared by unrelated articles, so two writers tagging
  different articles with the same keyword serialise on the keyword row.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.  Article events
  are queued on the session and only published once that commit succeeds.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app import events
from app.article_types import build_article, classify, fixed_board_name
from app.cache import KEYWORDS_KEY, schedule_invalidation
from app.exceptions import (
    ArticleNotFoundError,
    BoardNotFoundError,
    ConflictError,
    KeywordNotFoundError,
    TypeMismatchError,
)
from app.id_generator import id_generator
from app.models import Article, ArticleType, Board, EventArticle, Keyword
from app.schemas import ArticleCreate, ArticleUpdate, EventArticleUpdate, ImageIn
from app.services.read_service import ensure_visible

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def flush_or_conflict(db: AsyncSession, article_id: Optional[str] = None) -> None:
    """Flush pending changes, turning a version mismatch into ``ConflictError``."""
    try:
        await db.flush()
    except StaleDataError as exc:
        logger.warning("Version conflict while writing article %s", article_id)
        raise ConflictError(article_id) from exc


async def _load_for_update(
    db: AsyncSession, article_id: str, include_deleted: bool = False
) -> Article:
    q = (
        select(Article)
        .where(Article.id == article_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    article = (await db.execute(q)).scalar_one_or_none()
    if article is None or (article.is_deleted and not include_deleted):
        raise ArticleNotFoundError(article_id)
    return article


async def lock_keywords(db: AsyncSession, keyword_ids: Iterable[int]) -> list[Keyword]:
    """
    Lock and refresh the keyword rows for *keyword_ids*, returned in the
    order first requested.  Raises ``KeywordNotFoundError`` listing every
    id that does not exist.
    """
    wanted = list(dict.fromkeys(keyword_ids or []))
    if not wanted:
        return []
    q = (
        select(Keyword)
        .where(Keyword.id.in_(wanted))
        .order_by(Keyword.id)  # stable lock order
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    found = {k.id: k for k in (await db.execute(q)).scalars().all()}
    missing = [kid for kid in wanted if kid not in found]
    if missing:
        raise KeywordNotFoundError(missing)
    return [found[kid] for kid in wanted]


async def _resolve_board(db: AsyncSession, board_id: int) -> Board:
    board = await db.get(Board, board_id)
    if board is None:
        raise BoardNotFoundError(board_id=board_id)
    return board


async def _board_by_name(db: AsyncSession, name: str) -> Board:
    board = (await db.execute(select(Board).where(Board.name == name))).scalar_one_or_none()
    if board is None:
        raise BoardNotFoundError(name=name)
    return board


def _require_event(article: Article) -> EventArticle:
    if not isinstance(article, EventArticle):
        raise TypeMismatchError(article.id, ArticleType.EVENT.value, article.article_type)
    return article


async def _finish(
    db: AsyncSession, article: Article, event_type: str, keywords_changed: bool = False
) -> Article:
    await flush_or_conflict(db, article.id)
    events.enqueue_article_event(db, article, event_type)
    if keywords_changed:
        schedule_invalidation(db, KEYWORDS_KEY)
    return article


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, data: ArticleCreate) -> Article:
    """
    Create an article of the variant implied by *data* and return it.

    EVENT and NOTICE articles are placed on their well-known board whatever
    ``board_id`` the request named; the named board must still exist.
    """
    board = await _resolve_board(db, data.board_id)
    article_type = classify(board.id, board.name, data.has_event_period)
    pinned = fixed_board_name(article_type)
    if pinned is not None and board.name != pinned:
        board = await _board_by_name(db, pinned)

    keywords = await lock_keywords(db, data.keyword_ids)

    article = build_article(
        article_type,
        article_id=id_generator.generate_key(),
        title=data.title,
        content=data.content,
        writer_id=data.writer_id,
        board_id=board.id,
        event_start_date=data.event_start_date,
        event_end_date=data.event_end_date,
    )
    db.add(article)
    for image in data.images:
        article.add_image(image.image_id, image.image_url)
    article.add_keywords(keywords)

    await _finish(db, article, events.CREATED, keywords_changed=bool(keywords))
    logger.info(
        "Article created id=%s type=%s board=%s", article.id, article_type.value, board.id
    )
    return article


async def update_article(db: AsyncSession, article_id: str, data: ArticleUpdate) -> Article:
    """
    Apply a partial update.  ``None`` means "unchanged" for every field;
    ``keyword_ids`` and ``images`` replace the whole collection when given.

    Every lookup runs before the aggregate is touched, so the single flush
    in ``_finish`` is the only one that writes the article row.
    """
    article = await _load_for_update(db, article_id)

    if data.has_event_period:
        _require_event(article)
    board = None
    if data.board_id is not None and data.board_id != article.board_id:
        if article.article_type != ArticleType.REGULAR.value:
            raise TypeMismatchError(
                article.id, ArticleType.REGULAR.value, article.article_type
            )
        board = await _resolve_board(db, data.board_id)

    keywords_changed = data.keyword_ids is not None
    if keywords_changed:
        current = [m.keyword_id for m in article.keyword_mappings]
        locked = await lock_keywords(db, list(data.keyword_ids) + current)
        by_id = {k.id: k for k in locked}

    if board is not None:
        article.move_to_board(board.id)
    article.update_content(data.title, data.content)
    if data.has_event_period:
        article.reschedule(data.event_start_date, data.event_end_date)
    if keywords_changed:
        article.replace_keywords([by_id[kid] for kid in dict.fromkeys(data.keyword_ids)])
    if data.images is not None:
        article.replace_images((i.image_id, i.image_url) for i in data.images)

    await _finish(db, article, events.UPDATED, keywords_changed=keywords_changed)
    logger.info("Article updated id=%s version=%s", article.id, article.version)
    return article


async def update_event_article(
    db: AsyncSession, article_id: str, data: EventArticleUpdate
) -> Article:
    article = _require_event(await _load_for_update(db, article_id))
    article.update_content(data.title, data.content)
    if data.has_event_period:
        article.reschedule(data.event_start_date, data.event_end_date)
    await _finish(db, article, events.UPDATED)
    logger.info("Event article updated id=%s", article.id)
    return article


async def delete_article(db: AsyncSession, article_id: str) -> None:
    """Soft delete.  An article that is already DELETED reads as missing."""
    article = await _load_for_update(db, article_id)
    article.delete()
    await _finish(db, article, events.DELETED)
    logger.info("Article deleted id=%s", article_id)


# ---------------------------------------------------------------------------
# Status transitions and views
# ---------------------------------------------------------------------------

async def _set_status(db: AsyncSession, article_id: str, transition: str) -> Article:
    article = await _load_for_update(db, article_id, include_deleted=True)
    previous = article.status
    if getattr(article, transition)():
        await _finish(db, article, events.STATUS_CHANGED)
        logger.info(
            "Article %s status %s -> %s", article_id, previous.value, article.status.value
        )
    return article


async def activate_article(db: AsyncSession, article_id: str) -> Article:
    return await _set_status(db, article_id, "activate")


async def block_article(db: AsyncSession, article_id: str) -> Article:
    return await _set_status(db, article_id, "block")


async def record_view(db: AsyncSession, article_id: str) -> int:
    article = await _load_for_update(db, article_id, include_deleted=True)
    ensure_visible(article, article_id)
    count = article.increment_view_count()
    await flush_or_conflict(db, article_id)
    return count


# ---------------------------------------------------------------------------
# Image collection
# ---------------------------------------------------------------------------

async def add_image(db: AsyncSession, article_id: str, image: ImageIn) -> Article:
    article = await _load_for_update(db, article_id)
    article.add_image(image.image_id, image.image_url)
    return await _finish(db, article, events.UPDATED)


async def remove_image(db: AsyncSession, article_id: str, image_id: str) -> Article:
    article = await _load_for_update(db, article_id)
    if not article.remove_image(article.find_image(image_id)):
        logger.debug("Image %s not attached to article %s", image_id, article_id)
        return article
    return await _finish(db, article, events.UPDATED)


async def remove_images(db: AsyncSession, article_id: str) -> Article:
    article = await _load_for_update(db, article_id)
    article.remove_images()
    return await _finish(db, article, events.UPDATED)


async def replace_images(db: AsyncSession, article_id: str, images: list[ImageIn]) -> Article:
    article = await _load_for_update(db, article_id)
    article.replace_images((i.image_id, i.image_url) for i in images)
    return await _finish(db, article, events.UPDATED)


# ---------------------------------------------------------------------------
# Keyword membership
# ---------------------------------------------------------------------------

async def add_keyword(db: AsyncSession, article_id: str, keyword_id: int) -> Article:
    article = await _load_for_update(db, article_id)
    (keyword,) = await lock_keywords(db, [keyword_id])
    if not article.add_keyword(keyword):
        return article
    return await _finish(db, article, events.UPDATED, keywords_changed=True)


async def remove_keyword(db: AsyncSession, article_id: str, keyword_id: int) -> Article:
    article = await _load_for_update(db, article_id)
    (keyword,) = await lock_keywords(db, [keyword_id])
    if not article.remove_keyword(keyword):
        return article
    return await _finish(db, article, events.UPDATED, keywords_changed=True)
