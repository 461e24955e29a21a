from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.models import ArticleType
from app.schemas import PaginatedResponse
from app.services import read_service
from app.services.serializers import article_to_dict

router = APIRouter(prefix="/api/v1/notices", tags=["notices"])

@router.get("", response_model=PaginatedResponse)
async def list_notices(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await read_service.list_notices(db, pagination.page, pagination.page_size)

@router.get("/{article_id}")
async def get_notice(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await read_service.fetch_typed_article(db, article_id, ArticleType.NOTICE)
    return article_to_dict(article)
