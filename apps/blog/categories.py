"""
Categories API

List, fetch and create post categories. Categories have no owner and
cannot be deleted.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apps.shared.database import get_db
from apps.shared.errors import ApiError
from apps.blog.models import Category, User, DEFAULT_CATEGORY_COLOR
from apps.blog.schemas import CategoryCreate
from apps.blog.users import get_current_user
from apps.blog.utils import find_by_id_or_slug, slugify

logger = logging.getLogger(__name__)

DUPLICATE_CATEGORY = "Category with this name already exists"

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    """List all categories sorted alphabetically by name."""
    categories = db.query(Category).order_by(Category.name.asc()).all()
    return {
        "success": True,
        "count": len(categories),
        "data": [category.to_dict() for category in categories],
    }


@router.get("/{id_or_slug}")
def get_category(id_or_slug: str, db: Session = Depends(get_db)):
    """Get a single category by id or slug."""
    category = find_by_id_or_slug(db, Category, id_or_slug)
    if not category:
        raise ApiError(f"Category not found with id/slug of {id_or_slug}", 404)
    return {"success": True, "data": category.to_dict()}


@router.post("", status_code=201)
def create_category(
    category_data: CategoryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new category. Name and derived slug must both be unused."""
    slug = slugify(category_data.name, "category")

    existing = (
        db.query(Category)
        .filter(or_(Category.name == category_data.name, Category.slug == slug))
        .first()
    )
    if existing:
        raise ApiError(DUPLICATE_CATEGORY, 400)

    category = Category(
        name=category_data.name,
        slug=slug,
        description=category_data.description,
        color=category_data.color or DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent create of the same name
        db.rollback()
        raise ApiError(DUPLICATE_CATEGORY, 400)
    db.refresh(category)

    logger.info(f"User {user.id} created category {category.slug}")
    return {"success": True, "data": category.to_dict()}
