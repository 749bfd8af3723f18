"""
Blog database models.

Users mirror identity provider accounts; posts belong to an author and a
category and carry their comments. Primary keys are 24-character hex strings.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime, Integer, ForeignKey, JSON, func
from sqlalchemy.orm import relationship

from apps.shared.database import Base, generate_id

DEFAULT_CATEGORY_COLOR = "#667eea"
DEFAULT_FEATURED_IMAGE = "default-post.jpg"
DEFAULT_AVATAR = "default-avatar.png"


def utcnow() -> datetime:
    # microsecond precision keeps newest-first ordering stable
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


class User(Base):
    """
    Local record for an identity provider account.
    Created lazily on the first verified request, never deleted.
    """
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=generate_id)
    provider_id = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True)
    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"
    avatar = Column(String(500), default=DEFAULT_AVATAR)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def to_summary(self) -> dict:
        """Public subset embedded in posts and comments."""
        return {"_id": self.id, "name": self.name, "email": self.email}

    def to_profile(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "avatar": self.avatar,
        }


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(24), primary_key=True, default=generate_id)
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    description = Column(String(200))
    color = Column(String(7), default=DEFAULT_CATEGORY_COLOR)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def to_summary(self) -> dict:
        return {"_id": self.id, "name": self.name, "slug": self.slug, "color": self.color}

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "color": self.color,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class Post(Base):
    """
    Blog post.

    - slug is unique and derived from the title by the handlers
    - view_count is bumped on every read
    - comments are removed together with the post
    """
    __tablename__ = "posts"

    id = Column(String(24), primary_key=True, default=generate_id)
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(String(200))
    slug = Column(String(120), unique=True, index=True, nullable=False)
    author_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(String(24), ForeignKey("categories.id"), nullable=False, index=True)
    tags = Column(JSON, default=list)  # ["python", "fastapi"]
    is_published = Column(Boolean, default=False, index=True)
    view_count = Column(Integer, nullable=False, default=0)
    featured_image = Column(String(500), default=DEFAULT_FEATURED_IMAGE)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    author = relationship("User", lazy="joined")
    category = relationship("Category", lazy="joined")
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )

    @property
    def url(self) -> str:
        return f"/posts/{self.slug}"

    def to_dict(self, include_comments: bool = True) -> dict:
        """Convert post to dictionary for API responses."""
        data = {
            "_id": self.id,
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "slug": self.slug,
            "url": self.url,
            "author": self.author.to_summary() if self.author else None,
            "category": self.category.to_summary() if self.category else None,
            "tags": self.tags or [],
            "isPublished": bool(self.is_published),
            "viewCount": self.view_count or 0,
            "featuredImage": self.featured_image,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_comments:
            data["comments"] = [comment.to_dict() for comment in self.comments]
        return data


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(24), primary_key=True, default=generate_id)
    post_id = Column(String(24), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    post = relationship("Post", back_populates="comments")
    user = relationship("User", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "user": self.user.to_summary() if self.user else None,
            "content": self.content,
            "createdAt": isoformat(self.created_at),
        }
