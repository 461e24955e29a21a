"""
Article variant classification and construction.

``classify`` is a pure function of the request's board and event window;
``build_article`` looks the variant up in a fixed constructor table.  EVENT
and NOTICE articles always live on a well-known board, resolved by name
through ``fixed_board_name``.
"""
from datetime import datetime
from typing import Optional

from app.config import settings
from app.models import (
    Article,
    ArticleType,
    EventArticle,
    NoticeArticle,
    RegularArticle,
    utcnow,
)

_CONSTRUCTORS: dict[ArticleType, type[Article]] = {
    ArticleType.REGULAR: RegularArticle,
    ArticleType.EVENT: EventArticle,
    ArticleType.NOTICE: NoticeArticle,
}

ARTICLE_TYPE_DESCRIPTIONS: dict[ArticleType, str] = {
    ArticleType.REGULAR: "Regular article",
    ArticleType.EVENT: "Event article",
    ArticleType.NOTICE: "Notice",
}


def classify(
    board_id: Optional[int],
    board_name: Optional[str],
    has_event_period: bool,
) -> ArticleType:
    if has_event_period:
        return ArticleType.EVENT
    if board_name is not None and board_name == settings.NOTICE_BOARD_NAME:
        return ArticleType.NOTICE
    return ArticleType.REGULAR


def fixed_board_name(article_type: ArticleType) -> Optional[str]:
    """Name of the board a variant is pinned to, or None for REGULAR."""
    if article_type is ArticleType.EVENT:
        return settings.EVENT_BOARD_NAME
    if article_type is ArticleType.NOTICE:
        return settings.NOTICE_BOARD_NAME
    return None


def build_article(
    article_type: ArticleType,
    *,
    article_id: str,
    title: str,
    content: str,
    writer_id: str,
    board_id: int,
    event_start_date: Optional[datetime] = None,
    event_end_date: Optional[datetime] = None,
) -> Article:
    """
    Construct a fresh ACTIVE article of *article_type* with an empty image
    list, no keywords and a zero view count.
    """
    now = utcnow()
    fields = dict(
        id=article_id,
        title=title,
        content=content,
        writer_id=writer_id,
        board_id=board_id,
        view_count=0,
        created_at=now,
        updated_at=now,
    )
    if article_type is ArticleType.EVENT:
        fields.update(event_start_date=event_start_date, event_end_date=event_end_date)
    return _CONSTRUCTORS[article_type](**fields)
