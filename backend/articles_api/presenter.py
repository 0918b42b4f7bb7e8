from dataclasses import dataclass, field
from typing import FrozenSet

from .schemas import ArticlePayload, AuthorOut


@dataclass(frozen=True)
class ViewerContext:
    """What the presenter needs to know about the viewer.

    An anonymous viewer has no favorites and follows nobody.
    """
    anonymous: bool = True
    favorite_ids: FrozenSet[int] = field(default_factory=frozenset)
    followed_ids: FrozenSet[int] = field(default_factory=frozenset)

    def has_favorited(self, article_id) -> bool:
        return not self.anonymous and article_id in self.favorite_ids

    def follows(self, user_id) -> bool:
        return not self.anonymous and user_id in self.followed_ids


ANONYMOUS_CONTEXT = ViewerContext()


def render_author(author, context: ViewerContext) -> AuthorOut:
    return AuthorOut(
        username=author.username,
        bio=author.bio,
        image=author.image,
        following=context.follows(author.id),
    )


def render(article, author, favorites_count: int, context: ViewerContext) -> ArticlePayload:
    # favoritesCount comes from the store and never depends on who is looking
    return ArticlePayload(
        slug=article.slug,
        title=article.title,
        description=article.description,
        body=article.body,
        tagList=article.tag_list,
        createdAt=article.created_at,
        updatedAt=article.updated_at,
        favorited=context.has_favorited(article.id),
        favoritesCount=favorites_count,
        author=render_author(author, context),
    )
