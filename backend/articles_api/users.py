from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import User, favorites, follows


class UserDirectory:
    """Read side of users, their favorites and their follows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int):
        return self.session.get(User, user_id)

    def get_by_username(self, username: str):
        return self.session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()

    def get_many(self, user_ids):
        ids = set(user_ids)
        if not ids:
            return {}
        users = self.session.execute(select(User).where(User.id.in_(ids))).scalars()
        return {user.id: user for user in users}

    def favorite_ids(self, user_id: int):
        rows = self.session.execute(
            select(favorites.c.article_id).where(favorites.c.user_id == user_id)
        ).scalars()
        return set(rows)

    def favorite_ids_for_usernames(self, usernames):
        # Unknown usernames simply match no rows
        rows = self.session.execute(
            select(favorites.c.article_id)
            .join(User, User.id == favorites.c.user_id)
            .where(User.username.in_(list(usernames)))
        ).scalars()
        return set(rows)

    def followed_ids(self, user_id: int):
        rows = self.session.execute(
            select(follows.c.followed_id).where(follows.c.follower_id == user_id)
        ).scalars()
        return set(rows)
