"""
Error taxonomy for the article server.

Every error is recoverable by the caller.  The FastAPI handler in
``app.main`` renders any ``ArticleServerError`` as
``{"detail", "error_code", "details"}`` with the class's ``status_code``.
"""
from typing import Any, Dict, Optional


class ArticleServerError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code: int = 400
    default_code: str = "ARTICLE_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.default_code
        super().__init__(self.message)


class ArticleNotFoundError(ArticleServerError):
    """The article does not exist or is soft-deleted."""

    status_code = 404
    default_code = "ARTICLE_NOT_FOUND"

    def __init__(self, article_id: Optional[str] = None):
        message = f"Article '{article_id}' not found" if article_id else "Article not found"
        super().__init__(message=message, details={"article_id": article_id})


class ArticleBlockedError(ArticleServerError):
    """The article exists but is administratively blocked."""

    status_code = 403
    default_code = "ARTICLE_IS_BLOCKED"

    def __init__(self, article_id: str):
        super().__init__(
            message=f"Article '{article_id}' is blocked",
            details={"article_id": article_id},
        )


class TypeMismatchError(ArticleServerError):
    status_code = 409
    default_code = "ARTICLE_TYPE_MISMATCH"

    def __init__(self, article_id: str, expected: str, actual: str):
        super().__init__(
            message=f"Article '{article_id}' is {actual}, operation requires {expected}",
            details={"article_id": article_id, "expected": expected, "actual": actual},
        )


class BoardNotFoundError(ArticleServerError):
    status_code = 404
    default_code = "BOARD_NOT_FOUND"

    def __init__(self, board_id: Optional[int] = None, name: Optional[str] = None):
        if board_id is not None:
            message = f"Board {board_id} not found"
        elif name:
            message = f"Board '{name}' not found"
        else:
            message = "Board not found"
        super().__init__(message=message, details={"board_id": board_id, "name": name})


class KeywordNotFoundError(ArticleServerError):
    status_code = 404
    default_code = "KEYWORD_NOT_FOUND"

    def __init__(self, keyword_ids):
        missing = sorted(keyword_ids)
        super().__init__(
            message=f"Keyword(s) not found: {missing}",
            details={"keyword_ids": missing},
        )


class ConflictError(ArticleServerError):
    """Optimistic-lock version mismatch.  Safe for the caller to retry."""

    status_code = 409
    default_code = "ARTICLE_VERSION_CONFLICT"

    def __init__(self, article_id: Optional[str] = None):
        super().__init__(
            message="Article was modified concurrently, retry the request",
            details={"article_id": article_id, "retryable": True},
        )


class InvalidCursorError(ArticleServerError):
    status_code = 400
    default_code = "INVALID_CURSOR"

    def __init__(self, cursor_id: str):
        super().__init__(
            message=f"Cursor '{cursor_id}' does not resolve to a visible article",
            details={"cursor_id": cursor_id},
        )


class DuplicateBoardError(ArticleServerError):
    status_code = 409
    default_code = "DUPLICATE_BOARD"

    def __init__(self, name: str):
        super().__init__(message=f"Board '{name}' already exists", details={"name": name})


class DuplicateKeywordError(ArticleServerError):
    status_code = 409
    default_code = "DUPLICATE_KEYWORD"

    def __init__(self, name: str, board_id: Optional[int]):
        scope = f"board {board_id}" if board_id is not None else "global scope"
        super().__init__(
            message=f"Keyword '{name}' already exists in {scope}",
            details={"name": name, "board_id": board_id},
        )
