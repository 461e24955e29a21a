from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.models import ArticleType
from app.schemas import EventArticleUpdate, PaginatedResponse
from app.services import article_service, read_service
from app.services.serializers import article_to_dict

router = APIRouter(prefix="/api/v1/events", tags=["events"])

@router.get("", response_model=PaginatedResponse)
async def list_events(
    phase: str = Query("all", pattern="^(all|ongoing|ended|upcoming)$"),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await read_service.list_events(db, phase, pagination.page, pagination.page_size)

@router.get("/{article_id}")
async def get_event(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await read_service.fetch_typed_article(db, article_id, ArticleType.EVENT)
    return article_to_dict(article)

@router.put("/{article_id}")
async def update_event(article_id: str, data: EventArticleUpdate, db: AsyncSession = Depends(get_db)):
    article = await article_service.update_event_article(db, article_id, data)
    return article_to_dict(article)
