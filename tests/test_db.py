from sqlalchemy.pool import StaticPool

from articles_api.db import Base, build_engine, build_session_factory, is_memory_sqlite
from articles_api.models import Article, User
from articles_api.query import ArticleQuery
from articles_api.security import ANONYMOUS
from articles_api.service import ArticleService


def test_is_memory_sqlite():
    assert is_memory_sqlite("sqlite://")
    assert is_memory_sqlite("sqlite:///:memory:")
    assert not is_memory_sqlite("sqlite:///./test.db")
    assert not is_memory_sqlite("postgresql://tech:tech@db:5432/articles")


def test_memory_database_is_shared_by_worker_threads():
    engine = build_engine("sqlite://")
    assert isinstance(engine.pool, StaticPool)
    Base.metadata.create_all(bind=engine)
    session_factory = build_session_factory(engine)

    with session_factory() as session:
        author = User(username="alice")
        session.add(author)
        session.commit()
        session.add(Article(slug="hello", title="Hello", description="d", body="b", author_id=author.id))
        session.commit()

    result = ArticleService(session_factory, list_workers=1).list_articles(ArticleQuery(), ANONYMOUS)

    assert [a.slug for a in result.articles] == ["hello"]
    assert result.articlesCount == 1
    engine.dispose()
