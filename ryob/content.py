"""Content store: topics and the posts made in them."""
import logging
from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from .database import posts, topics, users
from .errors import NoSuchTopic, StorageFailure
from .ids import PostId, TopicId, UserId
from .models import Post, Topic, User

logger = logging.getLogger(__name__)

_creator_columns = (
    users.c.id.label("user_id"),
    users.c.user_name.label("user_user_name"),
    users.c.password_hash.label("user_password_hash"),
)


# Largest value a BIGINT LIMIT/OFFSET parameter can carry
MAX_WINDOW = 2 ** 63 - 1


def _check_window(offset: int, limit: int) -> None:
    if offset < 0 or limit < 0:
        raise ValueError("offset and limit must not be negative")
    if offset > MAX_WINDOW or limit > MAX_WINDOW:
        raise ValueError("offset and limit must fit in a 64-bit integer")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_topic(conn: Connection, creator: UserId, title: str) -> Topic:
    created_at = _now()
    try:
        result = conn.execute(
            insert(topics).values(title=title, created_by=creator, created_at=created_at)
        )
        conn.commit()
    except SQLAlchemyError as exc:
        conn.rollback()
        logger.error("User %d failed to create a topic: %s", creator, exc)
        raise StorageFailure() from exc

    topic = Topic(
        id=TopicId(result.inserted_primary_key[0]),
        title=title,
        created_by=creator,
        created_at=created_at,
    )
    logger.info('User %d has created topic %d titled "%s"', creator, topic.id, title)
    return topic


def find_topic(conn: Connection, topic_id: TopicId) -> Topic:
    try:
        row = conn.execute(select(topics).where(topics.c.id == topic_id)).mappings().first()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
    if row is None:
        raise NoSuchTopic()
    return Topic.from_row(row)


def list_topics(conn: Connection, offset: int, limit: int) -> List[Tuple[Topic, User]]:
    """Topics with their creators, newest first."""
    _check_window(offset, limit)
    stmt = (
        select(topics, *_creator_columns)
        .join(users, users.c.id == topics.c.created_by)
        .order_by(topics.c.created_at.desc(), topics.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    try:
        rows = conn.execute(stmt).mappings().all()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
    return [(Topic.from_row(r), User.from_row(r, prefix="user_")) for r in rows]


def count_topics(conn: Connection) -> int:
    try:
        return conn.execute(select(func.count()).select_from(topics)).scalar_one()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc


def create_post(conn: Connection, creator: UserId, topic: TopicId, content: str) -> Post:
    created_at = _now()
    try:
        result = conn.execute(
            insert(posts).values(
                posted_in=topic,
                created_by=creator,
                created_at=created_at,
                content=content,
            )
        )
        conn.commit()
    except SQLAlchemyError as exc:
        conn.rollback()
        logger.error("User %d failed to post in topic %d: %s", creator, topic, exc)
        raise StorageFailure() from exc

    post = Post(
        id=PostId(result.inserted_primary_key[0]),
        posted_in=topic,
        created_by=creator,
        created_at=created_at,
        content=content,
    )
    logger.info("User %d has created post %d in topic %d", creator, post.id, topic)
    return post


def list_posts_in_topic(
    conn: Connection, topic: TopicId, offset: int, limit: int
) -> List[Tuple[Post, User]]:
    """Posts of one topic with their creators, newest first."""
    _check_window(offset, limit)
    stmt = (
        select(posts, *_creator_columns)
        .join(users, users.c.id == posts.c.created_by)
        .where(posts.c.posted_in == topic)
        .order_by(posts.c.created_at.desc(), posts.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    try:
        rows = conn.execute(stmt).mappings().all()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
    return [(Post.from_row(r), User.from_row(r, prefix="user_")) for r in rows]


def count_posts_in_topic(conn: Connection, topic: TopicId) -> int:
    try:
        return conn.execute(
            select(func.count()).select_from(posts).where(posts.c.posted_in == topic)
        ).scalar_one()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
