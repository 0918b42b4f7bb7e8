"""Translate list filters into a predicate over articles.

Filters combine with AND across dimensions and OR within a dimension:
``tag=git&tag=node`` matches articles carrying either tag, and
``favorited=alice&favorited=bob`` matches articles favorited by either user.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import and_, false, select, true

from .models import Article, ArticleTag

DEFAULT_LIMIT = 20
DEFAULT_MAX_LIMIT = 100


@dataclass(frozen=True)
class ArticleQuery:
    tags: Tuple[str, ...] = ()
    author: Optional[str] = None
    favorited: Tuple[str, ...] = ()
    limit: int = DEFAULT_LIMIT
    offset: int = 0


def clamp_pagination(limit, offset, max_limit=DEFAULT_MAX_LIMIT, default_limit=DEFAULT_LIMIT):
    if limit is None:
        limit = default_limit
    if offset is None:
        offset = 0
    limit = min(max(limit, 0), max_limit)
    offset = max(offset, 0)
    return limit, offset


def make_query(tags=None, author=None, favorited=None, limit=None, offset=None,
               max_limit=DEFAULT_MAX_LIMIT, default_limit=DEFAULT_LIMIT) -> ArticleQuery:
    limit, offset = clamp_pagination(limit, offset, max_limit, default_limit)
    # Blank values (``?favorited=``) mean no restriction, same as leaving the parameter out
    return ArticleQuery(
        tags=tuple(tag for tag in tags or () if tag),
        author=author or None,
        favorited=tuple(name for name in favorited or () if name),
        limit=limit,
        offset=offset,
    )


def build_filter(query: ArticleQuery, author=None, favorited_ids=None):
    """Build the predicate for ``query``.

    ``author`` is the resolved author record (``None`` when the username is
    unknown) and ``favorited_ids`` the union of the named users' favorites.
    """
    clauses = []

    if query.tags:
        tagged = select(ArticleTag.article_id).where(ArticleTag.name.in_(query.tags))
        clauses.append(Article.id.in_(tagged))

    if query.author is not None:
        if author is None:
            clauses.append(false())
        else:
            clauses.append(Article.author_id == author.id)

    if query.favorited:
        ids = sorted(favorited_ids or ())
        clauses.append(Article.id.in_(ids) if ids else false())

    if not clauses:
        return true()
    return and_(*clauses)


def followed_authors_filter(followed_ids):
    ids = sorted(followed_ids)
    if not ids:
        return false()
    return Article.author_id.in_(ids)
