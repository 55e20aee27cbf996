"""Identity store: registration, login and lookup of forum users."""
import logging

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .database import users
from .errors import BadLogin, HashFailure, NameAlreadyInUse, NoSuchUser, StorageFailure
from .ids import UserId
from .models import User

logger = logging.getLogger(__name__)

USER_NAME_CONSTRAINT = "users_user_name_key"


def _is_user_name_violation(error: IntegrityError) -> bool:
    orig = error.orig
    # PostgreSQL drivers expose the constraint name; SQLite only names the column.
    constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if constraint is not None:
        return constraint == USER_NAME_CONSTRAINT
    return "users.user_name" in str(orig)


def register(conn: Connection, user_name: str, password: str, method: str = "scrypt") -> User:
    """Hash ``password`` and insert a new user named ``user_name``.

    Raises :class:`NameAlreadyInUse` when the name is taken,
    :class:`HashFailure` when hashing fails and :class:`StorageFailure` for
    any other database error.
    """
    try:
        password_hash = generate_password_hash(password, method=method)
    except ValueError as exc:
        raise HashFailure() from exc

    try:
        result = conn.execute(
            insert(users).values(user_name=user_name, password_hash=password_hash)
        )
        conn.commit()
    except IntegrityError as exc:
        conn.rollback()
        if _is_user_name_violation(exc):
            logger.info('Registration refused, name "%s" is already in use', user_name)
            raise NameAlreadyInUse() from exc
        logger.error('Failed to register user "%s": %s', user_name, exc.orig)
        raise StorageFailure() from exc
    except SQLAlchemyError as exc:
        conn.rollback()
        logger.error('Failed to register user "%s": %s', user_name, exc)
        raise StorageFailure() from exc

    user = User(
        id=UserId(result.inserted_primary_key[0]),
        user_name=user_name,
        password_hash=password_hash,
    )
    logger.info('User %d has been registered with username "%s"', user.id, user_name)
    return user


def login(conn: Connection, user_name: str, password: str) -> User:
    """Return the user if ``password`` matches, else raise :class:`BadLogin`.

    An unknown name and a wrong password are reported the same way.
    """
    try:
        user = find_by_name(conn, user_name)
    except NoSuchUser:
        raise BadLogin() from None

    try:
        verified = check_password_hash(user.password_hash, password)
    except ValueError as exc:
        logger.error("Stored password hash of user %d is unusable", user.id)
        raise HashFailure() from exc

    if not verified:
        raise BadLogin()
    logger.info('User %d with username "%s" has logged in', user.id, user_name)
    return user


def find_by_name(conn: Connection, user_name: str) -> User:
    try:
        row = conn.execute(select(users).where(users.c.user_name == user_name)).mappings().first()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
    if row is None:
        raise NoSuchUser()
    return User.from_row(row)


def find_by_id(conn: Connection, user_id: UserId) -> User:
    try:
        row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
    except SQLAlchemyError as exc:
        conn.rollback()
        raise StorageFailure() from exc
    if row is None:
        raise NoSuchUser()
    return User.from_row(row)
