from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.schemas import BoardCreate, BoardResponse, KeywordCreate, KeywordResponse
from app.services import board_service

router = APIRouter(prefix="/api/v1", tags=["boards"])

@router.post("/boards", status_code=201, response_model=BoardResponse)
async def create_board(data: BoardCreate, db: AsyncSession = Depends(get_db)):
    return await board_service.create_board(db, data)

@router.post("/keywords", status_code=201, response_model=KeywordResponse)
async def create_keyword(data: KeywordCreate, db: AsyncSession = Depends(get_db)):
    return await board_service.create_keyword(db, data)

@router.get("/enums")
async def get_enums():
    return board_service.get_available_enums()

@router.get("/enums/boards")
async def get_boards(db: AsyncSession = Depends(get_db)):
    return await board_service.get_boards(db)

@router.get("/enums/keywords")
async def get_keywords(board_id: int | None = None, db: AsyncSession = Depends(get_db)):
    return await board_service.get_keywords(db, board_id)
