from datetime import datetime

from fastapi import Query

from app.pagination import SearchCriteria


class PaginationParams:
    """
    Reusable FastAPI dependency for the offset-paginated listings
    (notices, events).

    Usage in a router::

        @router.get("/notices")
        async def list_notices(pagination: PaginationParams = Depends()):
            ...
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            20, ge=1, le=100, description="Number of items returned per page (max 100)."
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size


class CursorParams:
    """
    Query parameters of a cursor walk.

    ``size`` is left unvalidated here: a missing or non-positive size falls
    back to the default page size and anything over the maximum is clamped
    by the paginator.  A cursor is either an id alone (resolved server
    side) or the ``(cursor_updated_at, cursor_id)`` pair returned by the
    previous page.
    """

    def __init__(
        self,
        size: int | None = Query(None, description="Requested page size."),
        cursor_id: str | None = Query(None, description="Id of the last article seen."),
        cursor_updated_at: datetime | None = Query(
            None, description="updated_at of the last article seen."
        ),
    ) -> None:
        self.size = size
        self.cursor_id = cursor_id or None
        self.cursor_updated_at = cursor_updated_at


def search_criteria(
    board_id: int | None = Query(None),
    keyword: list[int] | None = Query(None, description="Keyword ids; matches any."),
    title: str | None = Query(None),
    content: str | None = Query(None),
    writer_id: list[str] | None = Query(None, description="Writer ids; matches any."),
    status: str | None = Query(None, description="ACTIVE (default), BLOCKED or DELETED."),
) -> SearchCriteria:
    return SearchCriteria(
        board_id=board_id,
        keyword_ids=keyword,
        title=title,
        content=content,
        writer_ids=writer_id,
        status=status,
    )
