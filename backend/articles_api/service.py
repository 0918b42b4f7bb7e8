import logging
from concurrent.futures import ThreadPoolExecutor, wait

import shortuuid
from slugify import slugify

from .config import settings
from .db import session_scope
from .errors import Conflict, Forbidden, SlugTaken, ValidationError
from .models import Article
from .presenter import ANONYMOUS_CONTEXT, ViewerContext, render
from .query import ArticleQuery, build_filter, followed_authors_filter
from .schemas import ArticleFields, MultipleArticlesResponse
from .security import Identified, Viewer
from .store import ArticleStore
from .users import UserDirectory

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "body")


def slug_suffix():
    return shortuuid.ShortUUID(alphabet="23456789abcdefghijkmnopqrstuvwxyz").random(length=6)


def slug_for(title):
    return slugify(title) or f"article-{slug_suffix()}"


def blank_fields(fields, names):
    blank = []
    for name in names:
        value = getattr(fields, name)
        if not isinstance(value, str) or not value.strip():
            blank.append(name)
    return blank


def clean_tags(tags):
    return [tag.strip() for tag in (tags or []) if tag and tag.strip()]


def gather(*futures):
    """Wait for every future and return their results in order.

    ``None`` placeholders yield ``None``. When several reads fail the first
    error is raised and the others are logged.
    """
    wait([future for future in futures if future is not None])
    errors = [future.exception() for future in futures if future is not None and future.exception()]
    if errors:
        for extra in errors[1:]:
            logger.error("Concurrent read also failed: %r", extra, exc_info=extra)
        raise errors[0]
    return [future.result() if future is not None else None for future in futures]


# Reads dispatched to worker threads; each one gets its own session

def _find_author(session, username):
    return UserDirectory(session).get_by_username(username)


def _favorited_ids(session, usernames):
    return UserDirectory(session).favorite_ids_for_usernames(usernames)


def _viewer_context(session, viewer):
    if viewer.is_anonymous:
        return ANONYMOUS_CONTEXT
    directory = UserDirectory(session)
    user_id = viewer.user.id
    return ViewerContext(
        anonymous=False,
        favorite_ids=frozenset(directory.favorite_ids(user_id)),
        followed_ids=frozenset(directory.followed_ids(user_id)),
    )


def _count(session, criteria):
    return ArticleStore(session).count(criteria)


def _find(session, criteria, limit, offset):
    return ArticleStore(session).find(criteria, limit, offset)


def _authors(session, user_ids):
    return UserDirectory(session).get_many(user_ids)


def _favorites_counts(session, article_ids):
    return ArticleStore(session).favorites_counts(article_ids)


class ArticleService:
    def __init__(self, session_factory, list_workers=None, slug_retries=None):
        self.session_factory = session_factory
        self.list_workers = list_workers or settings.list_workers
        self.slug_retries = settings.slug_retries if slug_retries is None else slug_retries

    def session(self):
        return session_scope(self.session_factory)

    def _read(self, fn, *args):
        with self.session() as session:
            return fn(session, *args)

    # Listing

    def list_articles(self, query: ArticleQuery, viewer: Viewer) -> MultipleArticlesResponse:
        with ThreadPoolExecutor(max_workers=self.list_workers) as pool:
            author, favorited_ids, context = gather(
                pool.submit(self._read, _find_author, query.author) if query.author else None,
                pool.submit(self._read, _favorited_ids, query.favorited) if query.favorited else None,
                pool.submit(self._read, _viewer_context, viewer),
            )
            criteria = build_filter(query, author, favorited_ids)
            return self._page(pool, criteria, query.limit, query.offset, context)

    def feed(self, viewer: Identified, limit: int, offset: int) -> MultipleArticlesResponse:
        with ThreadPoolExecutor(max_workers=self.list_workers) as pool:
            (context,) = gather(pool.submit(self._read, _viewer_context, viewer))
            criteria = followed_authors_filter(context.followed_ids)
            return self._page(pool, criteria, limit, offset, context)

    def _page(self, pool, criteria, limit, offset, context):
        total, articles = gather(
            pool.submit(self._read, _count, criteria),
            pool.submit(self._read, _find, criteria, limit, offset),
        )
        authors, counts = gather(
            pool.submit(self._read, _authors, [a.author_id for a in articles]),
            pool.submit(self._read, _favorites_counts, [a.id for a in articles]),
        )

        return MultipleArticlesResponse(
            articles=[
                render(article, authors[article.author_id], counts.get(article.id, 0), context)
                for article in articles
            ],
            articlesCount=total,
        )

    # Single article

    def _render_one(self, session, article, viewer):
        author = UserDirectory(session).get(article.author_id)
        count = ArticleStore(session).favorites_counts([article.id]).get(article.id, 0)
        return render(article, author, count, _viewer_context(session, viewer))

    def get_article(self, slug: str, viewer: Viewer):
        with self.session() as session:
            article = ArticleStore(session).find_by_slug(slug)
            return self._render_one(session, article, viewer)

    def create_article(self, viewer: Identified, fields: ArticleFields):
        missing = blank_fields(fields, REQUIRED_FIELDS)
        if missing:
            raise ValidationError.for_fields(missing)

        title = fields.title.strip()
        base_slug = slug_for(title)
        tags = clean_tags(fields.tagList)

        with self.session() as session:
            store = ArticleStore(session)
            slug = base_slug
            for _ in range(self.slug_retries + 1):
                article = Article(
                    slug=slug,
                    title=title,
                    description=fields.description,
                    body=fields.body,
                    author_id=viewer.user.id,
                )
                article.set_tags(tags)
                try:
                    article = store.insert(article)
                    break
                except SlugTaken:
                    logger.info("Slug %s is taken, retrying with a suffix", slug)
                    slug = f"{base_slug}-{slug_suffix()}"
            else:
                raise Conflict(f"Could not allocate a slug for '{title}'", {"slug": ["has already been taken"]})

            logger.info("User %s created article %s", viewer.user.username, article.slug)
            return self._render_one(session, article, viewer)

    def update_article(self, slug: str, viewer: Identified, fields: ArticleFields):
        with self.session() as session:
            store = ArticleStore(session)
            article = store.find_by_slug(slug)
            self._ensure_author(article, viewer, "edit")

            provided = [name for name in REQUIRED_FIELDS if getattr(fields, name) is not None]
            blank = blank_fields(fields, provided)
            if blank:
                raise ValidationError.for_fields(blank)

            # slug and author never change
            for name in provided:
                value = getattr(fields, name)
                setattr(article, name, value.strip() if name == "title" else value)
            if fields.tagList is not None:
                article.set_tags(clean_tags(fields.tagList))

            article = store.update(article)
            logger.info("User %s updated article %s", viewer.user.username, slug)
            return self._render_one(session, article, viewer)

    def delete_article(self, slug: str, viewer: Identified):
        with self.session() as session:
            store = ArticleStore(session)
            article = store.find_by_slug(slug)
            self._ensure_author(article, viewer, "delete")
            store.delete_by_slug(slug)
            logger.info("User %s deleted article %s", viewer.user.username, slug)

    def favorite_article(self, slug: str, viewer: Identified):
        with self.session() as session:
            store = ArticleStore(session)
            article = store.find_by_slug(slug)
            store.add_favorite(viewer.user.id, article.id)
            logger.info("User %s favorited article %s", viewer.user.username, slug)
            return self._render_one(session, article, viewer)

    def unfavorite_article(self, slug: str, viewer: Identified):
        with self.session() as session:
            store = ArticleStore(session)
            article = store.find_by_slug(slug)
            store.remove_favorite(viewer.user.id, article.id)
            logger.info("User %s unfavorited article %s", viewer.user.username, slug)
            return self._render_one(session, article, viewer)

    @staticmethod
    def _ensure_author(article, viewer, action):
        if article.author_id != viewer.user.id:
            raise Forbidden(f"You are not authorized to {action} this article")
