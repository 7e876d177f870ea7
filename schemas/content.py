from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator
from slugify import slugify

from models.content import PagePlacement
from schemas.common import BaseSchema


class ContentPageRead(BaseSchema):
    id: int
    slug: str
    title: str
    content: str
    placement: PagePlacement
    sort_order: int
    is_published: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentPageCreate(BaseSchema):
    slug: str = Field(min_length=1, max_length=150)
    title: str = Field(min_length=1, max_length=255)
    content: str = ""
    placement: PagePlacement = PagePlacement.NONE
    sort_order: int = 0
    is_published: bool = False

    @field_validator("slug")
    @classmethod
    def normalise_slug(cls, value: str) -> str:
        slug = slugify(value)
        if not slug:
            raise ValueError("Slug non valido")
        return slug


class ContentPageUpdate(BaseSchema):
    slug: Optional[str] = Field(default=None, min_length=1, max_length=150)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    placement: Optional[PagePlacement] = None
    sort_order: Optional[int] = None
    is_published: Optional[bool] = None

    @field_validator("slug")
    @classmethod
    def normalise_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        slug = slugify(value)
        if not slug:
            raise ValueError("Slug non valido")
        return slug


class ContentPagesResponse(BaseSchema):
    pages: List[ContentPageRead]


# Runtime settings

class SettingRead(BaseSchema):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None
    is_secret: bool
    updated_at: Optional[datetime] = None


class SettingUpdate(BaseSchema):
    value: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=255)
    is_secret: Optional[bool] = None
