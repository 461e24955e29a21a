from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime


# --- Image ---

class ImageIn(BaseModel):
    image_id: str = Field(min_length=1, max_length=100)
    image_url: str = Field(min_length=1, max_length=500)


class ImageList(BaseModel):
    images: list[ImageIn] = []


# --- Article ---

class EventPeriod(BaseModel):
    event_start_date: datetime | None = None
    event_end_date: datetime | None = None

    @model_validator(mode="after")
    def _check_period(self):
        start, end = self.event_start_date, self.event_end_date
        if (start is None) != (end is None):
            raise ValueError("event_start_date and event_end_date must be given together")
        if start is not None and end is not None and start > end:
            raise ValueError("event_start_date must not be after event_end_date")
        return self

    @property
    def has_event_period(self) -> bool:
        return self.event_start_date is not None and self.event_end_date is not None


class ArticleCreate(EventPeriod):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    writer_id: str = Field(min_length=1, max_length=50)
    board_id: int  # EVENT articles are moved onto the event board
    keyword_ids: list[int] = []
    images: list[ImageIn] = []


class ArticleUpdate(EventPeriod):
    title: str | None = Field(None, max_length=200)
    content: str | None = None
    board_id: int | None = None
    keyword_ids: list[int] | None = None
    images: list[ImageIn] | None = None


class EventArticleUpdate(EventPeriod):
    title: str | None = Field(None, max_length=200)
    content: str | None = None


class BulkRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)


# --- Board / Keyword ---

class BoardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str | None = Field(None, max_length=255)
    display_order: int | None = None


class BoardResponse(BaseModel):
    id: int
    name: str
    description: str | None
    is_active: bool
    display_order: int | None
    model_config = ConfigDict(from_attributes=True)


class KeywordCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    board_id: int | None = None


class KeywordResponse(BaseModel):
    id: int
    name: str
    board_id: int | None
    usage_count: int
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Will be typed in router
    total: int
    page: int
    page_size: int
    pages: int


class CursorPageResponse(BaseModel):
    items: list
    has_next: bool
    size: int
    next_cursor_id: str | None = None
    next_cursor_updated_at: datetime | None = None
