from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class ArticleFields(BaseModel):
    # Optional at the schema level so the service can report every blank field at once
    title: Optional[str] = None
    description: Optional[str] = None
    body: Optional[str] = None
    tagList: Optional[List[str]] = None


class ArticleEnvelope(BaseModel):
    article: ArticleFields


class AuthorOut(BaseModel):
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    following: bool = False


class ArticlePayload(BaseModel):
    slug: str
    title: str
    description: str
    body: str
    tagList: List[str]
    createdAt: datetime
    updatedAt: datetime
    favorited: bool
    favoritesCount: int
    author: AuthorOut


class SingleArticleResponse(BaseModel):
    article: ArticlePayload


class MultipleArticlesResponse(BaseModel):
    articles: List[ArticlePayload]
    articlesCount: int
