"""
Serialisation helpers shared by the read and write services.

Articles are rendered to plain dicts (not response models) so the same
payload can be cached or returned directly by the routers.
"""
from datetime import datetime

from app.models import Article, ArticleImage, EventArticle


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _serialize_image(image: ArticleImage) -> dict:
    return {
        "sequence": image.sequence,
        "image_id": image.image_id,
        "image_url": image.image_url,
    }


def article_to_dict(article: Article) -> dict:
    """Full article view: core fields, images in sequence order and keywords."""
    data = {
        "id": article.id,
        "article_type": article.article_type,
        "title": article.title,
        "content": article.content,
        "writer_id": article.writer_id,
        "board_id": article.board_id,
        "status": article.status.value,
        "view_count": article.view_count,
        "cover_image_url": article.cover_image_url,
        "version": article.version,
        "created_at": _iso(article.created_at),
        "updated_at": _iso(article.updated_at),
        "images": [_serialize_image(i) for i in sorted(article.images, key=lambda i: i.sequence)],
        "keywords": [
            {"id": k.id, "name": k.name}
            for k in sorted(article.keywords, key=lambda k: k.id or 0)
        ],
    }
    if isinstance(article, EventArticle):
        data["event_start_date"] = _iso(article.event_start_date)
        data["event_end_date"] = _iso(article.event_end_date)
    return data


def article_to_simple_dict(article: Article) -> dict:
    return {
        "id": article.id,
        "article_type": article.article_type,
        "title": article.title,
        "writer_id": article.writer_id,
        "board_id": article.board_id,
        "cover_image_url": article.cover_image_url,
        "view_count": article.view_count,
        "updated_at": _iso(article.updated_at),
    }
