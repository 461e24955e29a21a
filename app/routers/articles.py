from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import CursorParams, search_criteria
from app.pagination import SearchCriteria
from app.schemas import ArticleCreate, ArticleUpdate, BulkRequest, CursorPageResponse, ImageIn, ImageList
from app.services import article_service, read_service
from app.services.serializers import article_to_dict

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.post("", status_code=201)
async def create_article(data: ArticleCreate, db: AsyncSession = Depends(get_db)):
    article = await article_service.create_article(db, data)
    return article_to_dict(article)

@router.get("/search", response_model=CursorPageResponse)
async def search_articles(
    criteria: SearchCriteria = Depends(search_criteria),
    cursor: CursorParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    page = await read_service.search_articles(
        db, criteria, cursor.size, cursor.cursor_id, cursor.cursor_updated_at
    )
    return read_service.page_to_dict(page)

@router.post("/bulk")
async def bulk_fetch(data: BulkRequest, db: AsyncSession = Depends(get_db)):
    return await read_service.fetch_simple_by_ids(db, data.ids)

@router.get("/{article_id}")
async def get_article(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await read_service.fetch_article_by_id(db, article_id)
    return article_to_dict(article)

@router.put("/{article_id}")
async def update_article(article_id: str, data: ArticleUpdate, db: AsyncSession = Depends(get_db)):
    article = await article_service.update_article(db, article_id, data)
    return article_to_dict(article)

@router.delete("/{article_id}", status_code=204)
async def delete_article(article_id: str, db: AsyncSession = Depends(get_db)):
    await article_service.delete_article(db, article_id)

@router.post("/{article_id}/activate")
async def activate_article(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await article_service.activate_article(db, article_id)
    return article_to_dict(article)

@router.post("/{article_id}/block")
async def block_article(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await article_service.block_article(db, article_id)
    return article_to_dict(article)

@router.post("/{article_id}/views")
async def record_view(article_id: str, db: AsyncSession = Depends(get_db)):
    view_count = await article_service.record_view(db, article_id)
    return {"article_id": article_id, "view_count": view_count}

# --- Images ---

@router.post("/{article_id}/images", status_code=201)
async def add_image(article_id: str, data: ImageIn, db: AsyncSession = Depends(get_db)):
    article = await article_service.add_image(db, article_id, data)
    return article_to_dict(article)

@router.put("/{article_id}/images")
async def replace_images(article_id: str, data: ImageList, db: AsyncSession = Depends(get_db)):
    article = await article_service.replace_images(db, article_id, data.images)
    return article_to_dict(article)

@router.delete("/{article_id}/images")
async def remove_images(article_id: str, db: AsyncSession = Depends(get_db)):
    article = await article_service.remove_images(db, article_id)
    return article_to_dict(article)

@router.delete("/{article_id}/images/{image_id}")
async def remove_image(article_id: str, image_id: str, db: AsyncSession = Depends(get_db)):
    article = await article_service.remove_image(db, article_id, image_id)
    return article_to_dict(article)

# --- Keywords ---

@router.post("/{article_id}/keywords/{keyword_id}")
async def add_keyword(article_id: str, keyword_id: int, db: AsyncSession = Depends(get_db)):
    article = await article_service.add_keyword(db, article_id, keyword_id)
    return article_to_dict(article)

@router.delete("/{article_id}/keywords/{keyword_id}")
async def remove_keyword(article_id: str, keyword_id: int, db: AsyncSession = Depends(get_db)):
    article = await article_service.remove_keyword(db, article_id, keyword_id)
    return article_to_dict(article)
