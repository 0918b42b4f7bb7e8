import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import Base, engine, get_session_factory
from .errors import register_exception_handlers
from .query import clamp_pagination, make_query
from .schemas import ArticleEnvelope, MultipleArticlesResponse, SingleArticleResponse
from .security import Identified, Viewer, optional_viewer, required_viewer
from .service import ArticleService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on app start
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Articles API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

logger.info("CORS middleware added for %s", ", ".join(settings.cors_origins))


def get_service(session_factory=Depends(get_session_factory)) -> ArticleService:
    return ArticleService(session_factory)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/articles", response_model=MultipleArticlesResponse)
def list_articles(
    tag: Optional[List[str]] = Query(None),
    author: Optional[str] = None,
    favorited: Optional[List[str]] = Query(None),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    viewer: Viewer = Depends(optional_viewer),
    service: ArticleService = Depends(get_service),
):
    query = make_query(
        tags=tag,
        author=author,
        favorited=favorited,
        limit=limit,
        offset=offset,
        max_limit=settings.max_page_size,
        default_limit=settings.default_page_size,
    )
    return service.list_articles(query, viewer)


# Registered before /articles/{slug} so "feed" is not taken for a slug
@app.get("/articles/feed", response_model=MultipleArticlesResponse)
def feed_articles(
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    limit, offset = clamp_pagination(limit, offset, settings.max_page_size, settings.default_page_size)
    return service.feed(viewer, limit, offset)


@app.post("/articles", response_model=SingleArticleResponse)
def create_article(
    payload: ArticleEnvelope,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    return {"article": service.create_article(viewer, payload.article)}


@app.get("/articles/{slug}", response_model=SingleArticleResponse)
def get_article(
    slug: str,
    viewer: Viewer = Depends(optional_viewer),
    service: ArticleService = Depends(get_service),
):
    return {"article": service.get_article(slug, viewer)}


@app.put("/articles/{slug}", response_model=SingleArticleResponse)
def update_article(
    slug: str,
    payload: ArticleEnvelope,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    return {"article": service.update_article(slug, viewer, payload.article)}


@app.delete("/articles/{slug}")
def delete_article(
    slug: str,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    service.delete_article(slug, viewer)
    return {}


@app.post("/articles/{slug}/favorite", response_model=SingleArticleResponse)
def favorite_article(
    slug: str,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    return {"article": service.favorite_article(slug, viewer)}


@app.delete("/articles/{slug}/favorite", response_model=SingleArticleResponse)
def unfavorite_article(
    slug: str,
    viewer: Identified = Depends(required_viewer),
    service: ArticleService = Depends(get_service),
):
    return {"article": service.unfavorite_article(slug, viewer)}


# Run the FastAPI application
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("articles_api.main:app", host="0.0.0.0", port=8000, reload=True)
