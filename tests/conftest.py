from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from slugify import slugify
from sqlalchemy import func, insert, select

from articles_api.db import Base, build_engine, build_session_factory, get_session_factory
from articles_api.main import app
from articles_api.models import Article, User, favorites, follows
from articles_api.security import Identified, create_access_token
from articles_api.service import ArticleService

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'articles.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def users(session_factory):
    """alice, bob and carol, with no favorites or follows."""
    with session_factory() as session:
        created = {
            name: User(username=name, email=f"{name}@example.com", bio=f"{name} writes")
            for name in ("alice", "bob", "carol")
        }
        session.add_all(created.values())
        session.commit()
        return created


@pytest.fixture
def add_article(session_factory):
    counter = {"minutes": 0}

    def _add(author, title, tags=(), minutes=None):
        if minutes is None:
            counter["minutes"] += 1
            minutes = counter["minutes"]
        stamp = BASE_TIME + timedelta(minutes=minutes)
        with session_factory() as session:
            article = Article(
                slug=slugify(title),
                title=title,
                description=f"About {title}",
                body=f"Body of {title}",
                author_id=author.id,
                created_at=stamp,
                updated_at=stamp,
            )
            article.set_tags(list(tags))
            session.add(article)
            session.commit()
            session.refresh(article)
            return article

    return _add


@pytest.fixture
def favorite(session_factory):
    def _favorite(user, article):
        with session_factory() as session:
            session.execute(insert(favorites).values(user_id=user.id, article_id=article.id))
            session.commit()

    return _favorite


@pytest.fixture
def follow(session_factory):
    def _follow(follower, followed):
        with session_factory() as session:
            session.execute(insert(follows).values(follower_id=follower.id, followed_id=followed.id))
            session.commit()

    return _follow


@pytest.fixture
def article_count(session_factory):
    def _count():
        with session_factory() as session:
            return session.execute(select(func.count()).select_from(Article)).scalar_one()

    return _count


@pytest.fixture
def service(session_factory):
    return ArticleService(session_factory, list_workers=4)


@pytest.fixture
def viewer(users):
    def _viewer(name):
        return Identified(users[name])

    return _viewer


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth(users):
    def _auth(name):
        token = create_access_token({"sub": users[name].username})
        return {"Authorization": f"Bearer {token}"}

    return _auth
