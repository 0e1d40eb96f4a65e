from sqlalchemy.orm import Session

from pitchlink.core.errors import NotFoundError
from pitchlink.models.user import Follow, User


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def is_following(db: Session, follower_id: str, following_id: str) -> bool:
    row = (
        db.query(Follow.id)
        .filter(Follow.follower_id == follower_id, Follow.following_id == following_id)
        .first()
    )
    return row is not None


def is_mutual_follow(db: Session, user_a: str, user_b: str) -> bool:
    return is_following(db, user_a, user_b) and is_following(db, user_b, user_a)


def public_profile(user: User) -> dict:
    return {"id": user.id, "name": user.name, "username": user.username, "role": user.role}
