"""
Helpers shared by the blog handlers: slugs, id-or-slug lookups,
ownership and pagination.
"""
import math
import re
import time
from typing import Optional, Type

from sqlalchemy.orm import Session

from apps.shared.database import Base

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

_STRIP_CHARS = re.compile(r"[^\w\s-]+", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(source: str, entity: str = "post") -> str:
    """
    Derive a URL-safe slug from a title or name.

    "  Hello, World!  " -> "hello-world". Falls back to
    "<entity>-<epoch ms>" when nothing usable is left.
    """
    slug = (source or "").lower().strip()
    slug = _STRIP_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug.strip("-")

    if not slug:
        slug = f"{entity}-{int(time.time() * 1000)}"

    return slug


def unique_slug(db: Session, model: Type[Base], base_slug: str, exclude_id: Optional[str] = None) -> str:
    """Append -2, -3, ... to base_slug until no other row of model uses it."""
    candidate = base_slug
    suffix = 2
    while True:
        query = db.query(model.id).filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base_slug}-{suffix}"
        suffix += 1


def is_object_id(value: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(value or ""))


def find_by_id_or_slug(db: Session, model: Type[Base], id_or_slug: str):
    """24 hex characters are treated as an id, anything else as a slug."""
    if is_object_id(id_or_slug):
        return db.query(model).filter(model.id == id_or_slug.lower()).first()
    return db.query(model).filter(model.slug == id_or_slug).first()


def can_modify(user, post) -> bool:
    """Only the post's author or an admin may change or delete it."""
    return post.author_id == user.id or user.role == "admin"


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
