import logging

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import NotFound, SlugTaken
from .models import Article, favorites, utcnow

logger = logging.getLogger(__name__)


class ArticleStore:
    """Persistence of articles and their favorited-by rows."""

    def __init__(self, session: Session):
        self.session = session

    def find(self, criteria, limit: int, offset: int):
        statement = (
            select(Article)
            .where(criteria)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.execute(statement).scalars())

    def count(self, criteria) -> int:
        return self.session.execute(
            select(func.count()).select_from(Article).where(criteria)
        ).scalar_one()

    def find_by_slug(self, slug: str) -> Article:
        article = self.session.execute(
            select(Article).where(Article.slug == slug)
        ).scalar_one_or_none()
        if article is None:
            raise NotFound(f"Article '{slug}' not found", {"article": ["not found"]})
        return article

    def insert(self, article: Article) -> Article:
        self.session.add(article)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            # The UNIQUE constraint on slug is what arbitrates concurrent creates
            if "slug" in str(exc.orig):
                raise SlugTaken(article.slug) from exc
            raise
        self.session.refresh(article)
        return article

    def update(self, article: Article) -> Article:
        article.updated_at = utcnow()
        self.session.commit()
        self.session.refresh(article)
        return article

    def delete_by_slug(self, slug: str):
        article = self.find_by_slug(slug)
        self.session.execute(delete(favorites).where(favorites.c.article_id == article.id))
        self.session.delete(article)
        self.session.commit()

    def favorites_counts(self, article_ids):
        ids = list(article_ids)
        if not ids:
            return {}
        rows = self.session.execute(
            select(favorites.c.article_id, func.count())
            .where(favorites.c.article_id.in_(ids))
            .group_by(favorites.c.article_id)
        )
        return {article_id: count for article_id, count in rows}

    def is_favorited(self, user_id: int, article_id: int) -> bool:
        return self.session.execute(
            select(favorites).where(
                favorites.c.user_id == user_id,
                favorites.c.article_id == article_id
            )
        ).first() is not None

    def add_favorite(self, user_id: int, article_id: int):
        if self.is_favorited(user_id, article_id):
            return
        try:
            self.session.execute(insert(favorites).values(user_id=user_id, article_id=article_id))
            self.session.commit()
        except IntegrityError:
            # A concurrent request stored the same row first
            self.session.rollback()
            logger.debug("Favorite (%s, %s) already present", user_id, article_id)

    def remove_favorite(self, user_id: int, article_id: int):
        self.session.execute(
            delete(favorites).where(
                favorites.c.user_id == user_id,
                favorites.c.article_id == article_id
            )
        )
        self.session.commit()
