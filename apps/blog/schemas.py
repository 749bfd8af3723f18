"""
Pydantic schemas for the Blog API.

Defines request bodies with validation. Field names on the wire are
camelCase; unknown fields are dropped.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = r"^[a-z0-9-]+$"
HEX_COLOR_PATTERN = r"^(#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}))?$"


class BlogSchema(BaseModel):
    """Base for request bodies: trims strings, ignores unknown fields."""
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class PostCreate(BlogSchema):
    """Schema for creating a new post."""
    title: str = Field(..., min_length=3, max_length=100)
    content: str = Field(..., min_length=10)
    excerpt: Optional[str] = Field(None, max_length=200)
    category: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    is_published: bool = Field(False, alias="isPublished")
    featured_image: Optional[str] = Field(None, alias="featuredImage")


class PostUpdate(BlogSchema):
    """Schema for updating a post. All fields optional."""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    content: Optional[str] = Field(None, min_length=10)
    excerpt: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, min_length=1)
    tags: Optional[list[str]] = None
    is_published: Optional[bool] = Field(None, alias="isPublished")
    featured_image: Optional[str] = Field(None, alias="featuredImage")
    slug: Optional[str] = Field(None, min_length=1, max_length=120, pattern=SLUG_PATTERN)


class CategoryCreate(BlogSchema):
    """Schema for creating a category."""
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class CommentCreate(BlogSchema):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("Comment content is required")
        return value


class ImageUploadResponse(BaseModel):
    """Response after successful image upload."""
    filename: str
    path: str
