"""Form validation rules.

Every function here is pure: it looks only at the strings it is given and
never at storage. Both registration routes share one rule set.
"""
import enum
import string
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

MIN_USER_NAME_SIZE = 2
MAX_USER_NAME_SIZE = 64
MIN_PASSWORD_SIZE = 8
MAX_PASSWORD_SIZE = 256
MAX_TITLE_SIZE = 140
MAX_CONTENT_SIZE = 5000


class Violation(enum.Enum):
    NAME_TOO_SHORT = "name_too_short"
    NAME_TOO_LONG = "name_too_long"
    NAME_INVALID_CHARACTERS = "name_invalid_characters"
    PASSWORD_TOO_SHORT = "password_too_short"
    PASSWORD_TOO_LONG = "password_too_long"
    PASSWORD_INVALID_CHARACTERS = "password_invalid_characters"
    PASSWORD_MISMATCH = "password_mismatch"
    TITLE_EMPTY = "title_empty"
    TITLE_TOO_LONG = "title_too_long"
    CONTENT_EMPTY = "content_empty"
    CONTENT_TOO_LONG = "content_too_long"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_NAME_LENGTH = f"Name must be between {MIN_USER_NAME_SIZE} and {MAX_USER_NAME_SIZE} characters long"
_PASSWORD_LENGTH = (
    f"Password must be between {MIN_PASSWORD_SIZE} and {MAX_PASSWORD_SIZE} characters long"
)

_MESSAGES = {
    Violation.NAME_TOO_SHORT: _NAME_LENGTH,
    Violation.NAME_TOO_LONG: _NAME_LENGTH,
    Violation.NAME_INVALID_CHARACTERS: "Name must consist of alphanumeric characters and spaces",
    Violation.PASSWORD_TOO_SHORT: _PASSWORD_LENGTH,
    Violation.PASSWORD_TOO_LONG: _PASSWORD_LENGTH,
    Violation.PASSWORD_INVALID_CHARACTERS: (
        "Password must consist of alphanumeric characters and punctuation symbols"
    ),
    Violation.PASSWORD_MISMATCH: "Passwords do not match",
    Violation.TITLE_EMPTY: "Title is required",
    Violation.TITLE_TOO_LONG: f"Title must be at most {MAX_TITLE_SIZE} characters long",
    Violation.CONTENT_EMPTY: "Content is required",
    Violation.CONTENT_TOO_LONG: f"Content must be at most {MAX_CONTENT_SIZE} characters long",
}


@dataclass(frozen=True)
class RegistrationForm:
    user_name: str
    password: str
    confirm_password: str


@dataclass(frozen=True)
class LoginForm:
    user_name: str
    password: str


def sanitize_registration(form: RegistrationForm) -> RegistrationForm:
    # passwords are taken as typed
    return replace(form, user_name=form.user_name.strip())


def sanitize_login(form: LoginForm) -> LoginForm:
    return replace(form, user_name=form.user_name.strip())


def _is_valid_user_name_char(c: str) -> bool:
    return c.isalnum() or c == " "


def _is_valid_password_char(c: str) -> bool:
    return c.isalnum() or c in string.punctuation


def validate_user_name(name: str) -> List[Violation]:
    errors = []
    if len(name) < MIN_USER_NAME_SIZE:
        errors.append(Violation.NAME_TOO_SHORT)
    elif len(name) > MAX_USER_NAME_SIZE:
        errors.append(Violation.NAME_TOO_LONG)
    if not all(_is_valid_user_name_char(c) for c in name):
        errors.append(Violation.NAME_INVALID_CHARACTERS)
    return errors


def validate_password(password: str, confirm_password: str) -> List[Violation]:
    errors = []
    if len(password) < MIN_PASSWORD_SIZE:
        errors.append(Violation.PASSWORD_TOO_SHORT)
    elif len(password) > MAX_PASSWORD_SIZE:
        errors.append(Violation.PASSWORD_TOO_LONG)
    if not all(_is_valid_password_char(c) for c in password):
        errors.append(Violation.PASSWORD_INVALID_CHARACTERS)
    if password != confirm_password:
        errors.append(Violation.PASSWORD_MISMATCH)
    return errors


def validate_registration(form: RegistrationForm) -> List[Violation]:
    """All violated rules, name rules first."""
    return validate_user_name(form.user_name) + validate_password(
        form.password, form.confirm_password
    )


def first_violation(violations: Iterable[Violation]) -> Optional[Violation]:
    return next(iter(violations), None)


def validate_topic(title: str) -> List[Violation]:
    if not title:
        return [Violation.TITLE_EMPTY]
    if len(title) > MAX_TITLE_SIZE:
        return [Violation.TITLE_TOO_LONG]
    return []


def validate_post(content: str) -> List[Violation]:
    if not content:
        return [Violation.CONTENT_EMPTY]
    if len(content) > MAX_CONTENT_SIZE:
        return [Violation.CONTENT_TOO_LONG]
    return []
