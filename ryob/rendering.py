from datetime import datetime, timezone

import bleach
from flask import Flask
from markdown_it import MarkdownIt
from markupsafe import Markup

# Markdown renderer (commonmark + breaks)
md = MarkdownIt("commonmark", {
    "breaks": True,  # newlines -> <br>
})

# Allowed tags/attributes for sanitization
_ALLOWED_TAGS = [
    "p", "br", "strong", "em", "code", "pre", "blockquote",
    "ul", "ol", "li", "a", "h1", "h2", "h3", "h4", "h5", "h6",
]
_ALLOWED_ATTRS = {"a": ["href", "title", "rel"]}


def datetimeformat(value: datetime) -> str:
    if not isinstance(value, datetime):
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M UTC")


def markdown_to_html(text: str) -> Markup:
    html = md.render(text or "")
    # Sanitize to prevent XSS
    cleaned = bleach.clean(
        html,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRS,
        protocols=["http", "https", "mailto"],
        strip=True,
    )
    return Markup(cleaned)


def init_app(app: Flask) -> None:
    app.jinja_env.filters["datetimeformat"] = datetimeformat
    app.jinja_env.filters["markdown"] = markdown_to_html
