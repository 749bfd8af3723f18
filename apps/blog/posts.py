"""
Posts API

CRUD endpoints for blog posts, comments and thumbnail image uploads.
"""
import os
import logging
import secrets
import time
import aiofiles
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session

from apps.shared.database import get_db
from apps.shared.errors import ApiError
from apps.blog.models import Category, Comment, Post, User, DEFAULT_FEATURED_IMAGE
from apps.blog.schemas import CommentCreate, ImageUploadResponse, PostCreate, PostUpdate
from apps.blog.users import get_current_user
from apps.blog.utils import (
    can_modify,
    find_by_id_or_slug,
    is_object_id,
    page_count,
    slugify,
    unique_slug,
)

logger = logging.getLogger(__name__)

# Upload configuration
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_URL_PREFIX = "/uploads"
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

router = APIRouter(prefix="/api/posts", tags=["posts"])


def get_post_or_404(db: Session, post_id: str) -> Post:
    if not is_object_id(post_id):
        raise ApiError(f"Invalid _id: {post_id}", 400)
    post = db.get(Post, post_id.lower())
    if not post:
        raise ApiError(f"Post not found with id of {post_id}", 404)
    return post


def get_category_or_404(db: Session, category_id: str) -> Category:
    category = db.get(Category, category_id) if is_object_id(category_id) else None
    if not category:
        raise ApiError(f"Category not found with id of {category_id}", 404)
    return category


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def image_extension(filename: str, content_type: str) -> str:
    """Extension for a stored upload: the client's if it is plain alphanumeric, else the MIME subtype."""
    ext = os.path.splitext(os.path.basename(filename or ""))[1][1:].lower()
    if ext.isascii() and ext.isalnum():
        return ext
    subtype = content_type.split("/")[-1].split("+")[0].lower()
    return subtype if subtype.isascii() and subtype.isalnum() else "img"


# ──────────────────────────────────────────────────────────────────────────────
# Public endpoints (no auth required)
# ──────────────────────────────────────────────────────────────────────────────

@router.get("")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    category: str = None,
    search: str = None,
    is_published: str = Query("true", alias="isPublished"),
    db: Session = Depends(get_db),
):
    """
    List posts, newest first, with pagination.

    - category: category slug; an unknown slug does not filter
    - search: case-insensitive substring of title or content
    - isPublished: only the literal "true" restricts to published posts
    """
    query = db.query(Post)

    if category:
        category_doc = db.query(Category).filter(Category.slug == category).first()
        if category_doc:
            query = query.filter(Post.category_id == category_doc.id)

    if is_published == "true":
        query = query.filter(Post.is_published == True)

    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.filter(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            )
        )

    total = query.count()
    posts = (
        query.order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "success": True,
        "count": len(posts),
        "total": total,
        "page": page,
        "pages": page_count(total, limit),
        "data": [post.to_dict(include_comments=False) for post in posts],
    }


@router.get("/{id_or_slug}")
def get_post(id_or_slug: str, db: Session = Depends(get_db)):
    """Get a single post by id or slug. Every read counts as a view."""
    post = find_by_id_or_slug(db, Post, id_or_slug)
    if not post:
        raise ApiError(f"Post not found with id/slug of {id_or_slug}", 404)

    # Read-then-write; concurrent readers may under-count
    post.view_count = (post.view_count or 0) + 1
    db.commit()
    db.refresh(post)

    return {"success": True, "data": post.to_dict()}


# ──────────────────────────────────────────────────────────────────────────────
# Authenticated endpoints
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/upload")
async def upload_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
):
    """
    Upload a thumbnail image for a post.
    Returns the stored filename and its public path.
    """
    if not (image.content_type or "").startswith("image/"):
        raise ApiError("Only image files are allowed", 400)

    # Read one byte past the limit so oversized files are detectable
    contents = await image.read(MAX_FILE_SIZE + 1)
    if len(contents) > MAX_FILE_SIZE:
        raise ApiError(
            f"File too large. Max size: {MAX_FILE_SIZE // (1024 * 1024)} MB",
            400,
        )

    ext = image_extension(image.filename, image.content_type)
    filename = f"image-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{ext}"
    filepath = os.path.join(UPLOAD_DIR, filename)

    os.makedirs(UPLOAD_DIR, exist_ok=True)

    async with aiofiles.open(filepath, "wb") as f:
        await f.write(contents)

    logger.info(f"User {user.id} uploaded image: {filename}")

    upload = ImageUploadResponse(filename=filename, path=f"{UPLOAD_URL_PREFIX}/{filename}")
    return {"success": True, "data": upload.model_dump()}


@router.post("", status_code=201)
def create_post(
    post_data: PostCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new post authored by the current user."""
    category = get_category_or_404(db, post_data.category)

    post = Post(
        title=post_data.title,
        content=post_data.content,
        excerpt=post_data.excerpt,
        slug=unique_slug(db, Post, slugify(post_data.title, "post")),
        author_id=user.id,
        category_id=category.id,
        tags=post_data.tags,
        is_published=post_data.is_published,
        featured_image=post_data.featured_image or DEFAULT_FEATURED_IMAGE,
    )
    db.add(post)
    db.commit()
    db.refresh(post)

    logger.info(f"User {user.id} created post {post.id} ({post.slug})")
    return {"success": True, "data": post.to_dict()}


@router.put("/{post_id}")
def update_post(
    post_id: str,
    post_data: PostUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a post. Only its author or an admin may do this."""
    post = get_post_or_404(db, post_id)

    if not can_modify(user, post):
        raise ApiError("Not authorized to update this post", 403)

    update_data = post_data.model_dump(exclude_unset=True, exclude_none=True)

    if "category" in update_data:
        post.category_id = get_category_or_404(db, update_data.pop("category")).id

    explicit_slug = update_data.pop("slug", None)
    if explicit_slug:
        existing = db.query(Post).filter(Post.slug == explicit_slug, Post.id != post.id).first()
        if existing:
            raise ApiError("Slug already exists", 400)
        post.slug = explicit_slug
    elif "title" in update_data and update_data["title"] != post.title:
        post.slug = unique_slug(
            db, Post, slugify(update_data["title"], "post"), exclude_id=post.id
        )

    # Update only provided fields
    for key, value in update_data.items():
        setattr(post, key, value)

    db.commit()
    db.refresh(post)
    return {"success": True, "data": post.to_dict()}


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a post together with its comments."""
    post = get_post_or_404(db, post_id)

    if not can_modify(user, post):
        raise ApiError("Not authorized to delete this post", 403)

    db.delete(post)
    db.commit()

    logger.info(f"User {user.id} deleted post {post_id}")
    return {"success": True, "data": {}, "message": "Post deleted successfully"}


@router.post("/{post_id}/comments", status_code=201)
def add_comment(
    post_id: str,
    comment_data: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add a comment by the current user to a post."""
    post = get_post_or_404(db, post_id)

    comment = Comment(post_id=post.id, user_id=user.id, content=comment_data.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    return {"success": True, "data": comment.to_dict()}
