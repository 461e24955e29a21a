"""
Post-commit article events.

Services call ``enqueue_article_event`` while they still hold the session;
the snapshot is taken at that point (after the flush, so ``version`` is
current).  ``get_db`` hands the queue to ``publish_pending`` once the
transaction has committed.  Publishing is fire-and-forget: a Redis failure
is logged and never reaches the write path.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import redis.asyncio as redis
from pydantic import BaseModel

from app.config import settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models import Article

logger = logging.getLogger(__name__)

PENDING_EVENTS_KEY = "pending_article_events"

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"
STATUS_CHANGED = "status_changed"


class ArticleEvent(BaseModel):
    event_type: str
    article_id: str
    article_type: str
    writer_id: str
    board_id: int
    title: str
    status: str
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_article(cls, article: "Article", event_type: str) -> "ArticleEvent":
        return cls(
            event_type=event_type,
            article_id=article.id,
            article_type=article.article_type,
            writer_id=article.writer_id,
            board_id=article.board_id,
            title=article.title,
            status=article.status.value,
            version=article.version,
            created_at=article.created_at,
            updated_at=article.updated_at,
        )


class EventPublisher:
    """
    Redis pub/sub publisher for article events.

    Like the cache, it degrades to a no-op when Redis is unavailable, so
    the service keeps accepting writes with the event stream down.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._published: int = 0
        self._failed: int = 0

    async def connect(self) -> None:
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Event publisher connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, article events will be dropped: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, event: ArticleEvent, channel: str | None = None) -> bool:
        """Publish *event*; returns False (and logs) instead of raising."""
        channel = channel or settings.ARTICLE_EVENT_CHANNEL
        if not self._redis:
            logger.debug("Event publisher offline, dropping %s for %s", event.event_type, event.article_id)
            return False
        try:
            await self._redis.publish(channel, json.dumps(event.model_dump(mode="json")))
        except Exception as exc:
            self._failed += 1
            logger.error(
                "Failed to publish %s event for article %s: %s",
                event.event_type,
                event.article_id,
                exc,
            )
            return False
        self._published += 1
        return True

    @property
    def stats(self) -> dict:
        return {"published": self._published, "failed": self._failed}


# Module-level singleton shared across all request handlers.
publisher = EventPublisher()


def enqueue_article_event(db: "AsyncSession", article: "Article", event_type: str) -> ArticleEvent:
    event = ArticleEvent.from_article(article, event_type)
    db.info.setdefault(PENDING_EVENTS_KEY, []).append(event)
    return event


def pending_events(db: "AsyncSession") -> list[ArticleEvent]:
    return list(db.info.get(PENDING_EVENTS_KEY, []))


def discard_pending(db: "AsyncSession") -> None:
    db.info.pop(PENDING_EVENTS_KEY, None)


async def publish_pending(db: "AsyncSession") -> int:
    """Publish and clear every event queued on *db*; returns the number sent."""
    events = db.info.pop(PENDING_EVENTS_KEY, [])
    sent = 0
    for event in events:
        if await publisher.publish(event):
            sent += 1
    return sent
