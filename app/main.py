import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.cache import cache
from app.config import settings
from app.events import publisher
from app.exceptions import ArticleServerError
from app.middleware import TimingMiddleware
from app.routers import articles, boards, events, notices

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger("app")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: both Redis clients are optional, the API runs without them.
    for client, name in ((cache, "cache"), (publisher, "event publisher")):
        try:
            await client.connect()
        except Exception as exc:
            logger.warning("Redis %s unavailable: %s", name, exc)
    yield
    # Shutdown
    await cache.disconnect()
    await publisher.disconnect()

app = FastAPI(
    title="Article Server",
    description="Article CMS backend with keyset cursor pagination",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ArticleServerError)
async def article_server_error_handler(request: Request, exc: ArticleServerError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code, "details": exc.details},
    )

# Routers
app.include_router(articles.router)
app.include_router(events.router)
app.include_router(notices.router)
app.include_router(boards.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0", "events": publisher.stats, "cache": cache.stats}
