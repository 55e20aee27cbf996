"""Bridge between the signed session cookie and the identity store."""
import logging
from typing import MutableMapping, Optional

from sqlalchemy.engine import Connection

from . import users
from .errors import NoSuchUser, SessionFailure
from .ids import UserId
from .models import User

logger = logging.getLogger(__name__)

SESSION_KEY = "user"


def resolve_current_user(session: MutableMapping, conn: Connection) -> Optional[User]:
    """Look up the user the session belongs to, or None when anonymous.

    This reads from storage. An identifier whose user no longer exists is
    dropped from the session.
    """
    raw = session.get(SESSION_KEY)
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise SessionFailure()

    try:
        return users.find_by_id(conn, UserId(raw))
    except NoSuchUser:
        logger.warning("Session refers to missing user %d, clearing it", raw)
        session.pop(SESSION_KEY, None)
        return None


def attach_user(session: MutableMapping, user: User) -> None:
    session[SESSION_KEY] = int(user.id)


def detach_user(session: MutableMapping) -> None:
    session.pop(SESSION_KEY, None)
