import os
import secrets
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


def _get_persistent_secret(secret_file: str) -> str:
    """Return a stable secret key for signing the session cookie.

    Priority:
    1) SECRET_KEY env var if provided and non-empty.
    2) Read from ``secret_file``.
    3) Generate a new one, write it to that file, and use it.
    If the file cannot be written, the key is kept in memory only and sessions
    reset on restart.
    """
    sk = os.environ.get("SECRET_KEY", "").strip()
    if sk:
        return sk

    path = Path(secret_file)
    if path.exists():
        existing = path.read_text(encoding="utf-8").strip()
        if existing:
            return existing

    new_sk = secrets.token_hex(32)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(new_sk, encoding="utf-8")
        os.chmod(path, 0o600)
    except OSError:
        return new_sk
    return new_sk


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the application config from the environment, then ``overrides``."""
    overrides = dict(overrides or {})
    config: Dict[str, Any] = dict(
        DATABASE_URL=os.environ.get("DATABASE_URL", "").strip(),
        SECRET_KEY_FILE=os.environ.get("SECRET_KEY_FILE", os.path.join("instance", "secret_key")),
        POOL_SIZE=int(os.environ.get("POOL_SIZE", "5")),
        PASSWORD_HASH_METHOD=os.environ.get("PASSWORD_HASH_METHOD", "scrypt"),
        TOPICS_PER_PAGE=int(os.environ.get("TOPICS_PER_PAGE", "20")),
        POSTS_PER_PAGE=int(os.environ.get("POSTS_PER_PAGE", "50")),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO").upper(),
        MAX_CONTENT_LENGTH=256 * 1024,  # 256 KB per request
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    config.update(overrides)

    if not config["DATABASE_URL"]:
        raise RuntimeError("DATABASE_URL must be set")
    if not config.get("SECRET_KEY"):
        config["SECRET_KEY"] = _get_persistent_secret(config["SECRET_KEY_FILE"])
    return config
