from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArticleStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    DELETED = "DELETED"


class ArticleType(str, enum.Enum):
    REGULAR = "REGULAR"
    EVENT = "EVENT"
    NOTICE = "NOTICE"


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------
class Board(Base):
    __tablename__ = "boards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Keyword
# ---------------------------------------------------------------------------
class Keyword(Base):
    __tablename__ = "keywords"

    __table_args__ = (
        # One name per board; all global keywords (board_id NULL) share one scope.
        UniqueConstraint(
            "board_id",
            "name",
            name="uq_keywords_board_id_name",
            postgresql_nulls_not_distinct=True,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    board_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=True, index=True
    )
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_global(self) -> bool:
        return self.board_id is None

    def increment_usage(self) -> None:
        self.usage_count = (self.usage_count or 0) + 1

    def decrement_usage(self) -> None:
        """Decrement the usage counter, never going below zero."""
        current = self.usage_count or 0
        self.usage_count = current - 1 if current > 0 else 0


# ---------------------------------------------------------------------------
# KeywordMapping: Article <-> Keyword join with a composite key
# ---------------------------------------------------------------------------
class KeywordMapping(Base):
    __tablename__ = "keyword_mappings"

    article_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    keyword_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    keyword: Mapped[Keyword] = relationship("Keyword", lazy="selectin")


# ---------------------------------------------------------------------------
# ArticleImage
# ---------------------------------------------------------------------------
class ArticleImage(Base):
    __tablename__ = "article_images"

    article_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True)
    image_id: Mapped[str] = mapped_column(String(100), nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)


# ---------------------------------------------------------------------------
# Article aggregate (single table, discriminated by article_type)
# ---------------------------------------------------------------------------
class Article(Base):
    """
    Article aggregate root.

    Owns its ordered image list and its keyword mappings; every mutation of
    those collections goes through the methods below so that the cover image
    and the keyword usage counters stay consistent.  ``version`` is the
    mapper's optimistic-lock column: a flush against a row whose version
    moved on raises ``StaleDataError``.
    """

    __tablename__ = "articles"

    __table_args__ = (
        # Cursor search (status filter + updated_at/id keyset order)
        Index("ix_articles_status_updated_at_id", "status", "updated_at", "id"),
        Index("ix_articles_board_id_status_updated_at", "board_id", "status", "updated_at"),
        Index("ix_articles_writer_id_status_updated_at", "writer_id", "status", "updated_at"),
        # Notice / event listings
        Index("ix_articles_type_status_created_at", "article_type", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    article_type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    writer_id: Mapped[str] = mapped_column(String(50), nullable=False)
    board_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("boards.id"), nullable=False
    )
    status: Mapped[ArticleStatus] = mapped_column(
        Enum(ArticleStatus, native_enum=False, length=20), nullable=False
    )
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cover_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    images: Mapped[List[ArticleImage]] = relationship(
        "ArticleImage",
        order_by="ArticleImage.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    keyword_mappings: Mapped[List[KeywordMapping]] = relationship(
        "KeywordMapping",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {
        "polymorphic_on": article_type,
        # Load the variant columns with every base query; there is no lazy
        # load under asyncio.
        "with_polymorphic": "*",
        "version_id_col": version,
    }

    def __init__(self, **kwargs) -> None:
        now = utcnow()
        kwargs.setdefault("status", ArticleStatus.ACTIVE)
        kwargs.setdefault("image_sequence", 0)
        kwargs.setdefault("created_at", now)
        kwargs.setdefault("updated_at", now)
        kwargs.setdefault("images", [])
        kwargs.setdefault("keyword_mappings", [])
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self.id!r} status={self.status} "
            f"images={len(self.images)} keywords={len(self.keyword_mappings)}>"
        )

    def _touch(self) -> None:
        self.updated_at = utcnow()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status == ArticleStatus.ACTIVE

    @property
    def is_blocked(self) -> bool:
        return self.status == ArticleStatus.BLOCKED

    @property
    def is_deleted(self) -> bool:
        return self.status == ArticleStatus.DELETED

    def _transition(self, target: ArticleStatus) -> bool:
        if self.status == target:
            return False
        self.status = target
        self._touch()
        return True

    def activate(self) -> bool:
        return self._transition(ArticleStatus.ACTIVE)

    def block(self) -> bool:
        return self._transition(ArticleStatus.BLOCKED)

    def delete(self) -> bool:
        """Soft delete; the row is kept and hidden by visibility rules."""
        return self._transition(ArticleStatus.DELETED)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def update_content(self, title: Optional[str] = None, content: Optional[str] = None) -> bool:
        """
        Replace title and/or content.  ``None`` or blank arguments mean
        "leave unchanged", never "clear".
        """
        changed = False
        if title is not None and title.strip() and title != self.title:
            self.title = title
            changed = True
        if content is not None and content.strip() and content != self.content:
            self.content = content
            changed = True
        if changed:
            self._touch()
        return changed

    def move_to_board(self, board_id: int) -> bool:
        if board_id == self.board_id:
            return False
        self.board_id = board_id
        self._touch()
        return True

    def increment_view_count(self) -> int:
        self.view_count = (self.view_count or 0) + 1
        return self.view_count

    def is_written_by(self, writer_id: Optional[str]) -> bool:
        return writer_id is not None and self.writer_id == writer_id

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _refresh_cover(self) -> None:
        first = min(self.images, key=lambda image: image.sequence, default=None)
        self.cover_image_url = first.image_url if first is not None else None

    def add_image(self, image_id: Optional[str], image_url: Optional[str]) -> Optional[ArticleImage]:
        if image_id is None or image_url is None:
            logger.warning("Ignoring image with missing id or url for article %s", self.id)
            return None
        self.image_sequence = (self.image_sequence or 0) + 1
        image = ArticleImage(
            article_id=self.id,
            sequence=self.image_sequence,
            image_id=image_id,
            image_url=image_url,
        )
        self.images.append(image)
        self._refresh_cover()
        self._touch()
        return image

    def find_image(self, image_id: str) -> Optional[ArticleImage]:
        return next((image for image in self.images if image.image_id == image_id), None)

    def remove_image(self, image: Optional[ArticleImage]) -> bool:
        if image is None or image not in self.images:
            return False
        self.images.remove(image)
        self._refresh_cover()
        self._touch()
        return True

    def remove_images(self) -> None:
        # Sequence counter is left as is; numbers are never reused.
        self.images.clear()
        self._refresh_cover()
        self._touch()

    def replace_images(self, images: Iterable[tuple[str, str]]) -> None:
        self.remove_images()
        for image_id, image_url in images:
            self.add_image(image_id, image_url)

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    @property
    def keywords(self) -> List[Keyword]:
        return [mapping.keyword for mapping in self.keyword_mappings]

    def _mapping_for(self, keyword: Keyword) -> Optional[KeywordMapping]:
        for mapping in self.keyword_mappings:
            if mapping.keyword is keyword:
                return mapping
            if keyword.id is not None and mapping.keyword_id == keyword.id:
                return mapping
        return None

    def add_keyword(self, keyword: Optional[Keyword]) -> bool:
        if keyword is None or self._mapping_for(keyword) is not None:
            return False
        self.keyword_mappings.append(
            KeywordMapping(
                article_id=self.id,
                keyword_id=keyword.id,
                keyword=keyword,
                created_at=utcnow(),
            )
        )
        keyword.increment_usage()
        self._touch()
        return True

    def add_keywords(self, keywords: Optional[Iterable[Keyword]]) -> None:
        for keyword in keywords or ():
            self.add_keyword(keyword)

    def remove_keyword(self, keyword: Optional[Keyword]) -> bool:
        if keyword is None:
            return False
        mapping = self._mapping_for(keyword)
        if mapping is None:
            return False
        self.keyword_mappings.remove(mapping)
        keyword.decrement_usage()
        self._touch()
        return True

    def remove_keywords(self) -> None:
        for mapping in list(self.keyword_mappings):
            self.keyword_mappings.remove(mapping)
            if mapping.keyword is not None:
                mapping.keyword.decrement_usage()
        self._touch()

    def replace_keywords(self, keywords: Optional[Iterable[Keyword]]) -> None:
        """
        Full remove pass followed by a full add pass.  A keyword present in
        both sets is decremented and then incremented back.
        """
        self.remove_keywords()
        self.add_keywords(keywords)


class RegularArticle(Article):
    __mapper_args__ = {"polymorphic_identity": ArticleType.REGULAR.value}


class NoticeArticle(Article):
    __mapper_args__ = {"polymorphic_identity": ArticleType.NOTICE.value}


class EventArticle(Article):
    event_start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    event_end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __mapper_args__ = {"polymorphic_identity": ArticleType.EVENT.value}

    def reschedule(self, start: Optional[datetime], end: Optional[datetime]) -> bool:
        changed = False
        if start is not None and start != self.event_start_date:
            self.event_start_date = start
            changed = True
        if end is not None and end != self.event_end_date:
            self.event_end_date = end
            changed = True
        if changed:
            self._touch()
        return changed
