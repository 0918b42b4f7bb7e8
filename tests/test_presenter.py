from datetime import datetime, timezone
from types import SimpleNamespace

from articles_api.presenter import ANONYMOUS_CONTEXT, ViewerContext, render

STAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _article():
    return SimpleNamespace(
        id=7,
        slug="hello",
        title="Hello",
        description="Greeting",
        body="Hi there",
        tag_list=["intro"],
        created_at=STAMP,
        updated_at=STAMP,
    )


def _author():
    return SimpleNamespace(id=3, username="alice", bio="writes", image=None)


def test_anonymous_viewer_never_favorites_or_follows():
    payload = render(_article(), _author(), 4, ANONYMOUS_CONTEXT)

    assert payload.favorited is False
    assert payload.author.following is False
    assert payload.favoritesCount == 4


def test_anonymous_flag_wins_over_sets():
    context = ViewerContext(anonymous=True, favorite_ids=frozenset({7}), followed_ids=frozenset({3}))
    payload = render(_article(), _author(), 1, context)

    assert payload.favorited is False
    assert payload.author.following is False


def test_viewer_dependent_flags():
    fan = ViewerContext(anonymous=False, favorite_ids=frozenset({7}), followed_ids=frozenset({3}))
    stranger = ViewerContext(anonymous=False, favorite_ids=frozenset({8}))

    fan_payload = render(_article(), _author(), 2, fan)
    stranger_payload = render(_article(), _author(), 2, stranger)

    assert fan_payload.favorited is True
    assert fan_payload.author.following is True
    assert stranger_payload.favorited is False
    assert stranger_payload.author.following is False
    assert fan_payload.favoritesCount == stranger_payload.favoritesCount == 2


def test_payload_carries_article_fields():
    payload = render(_article(), _author(), 0, ANONYMOUS_CONTEXT)

    assert payload.slug == "hello"
    assert payload.tagList == ["intro"]
    assert payload.createdAt == STAMP
    assert payload.author.username == "alice"
    assert payload.author.bio == "writes"
