from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class BlogPostWrite(BaseModel):
    title: str | None = None
    slug: str | None = None
    category: str | None = None
    excerpt: str | None = None
    content: str | None = None
    image_url: str | None = None
    read_time: str | None = None
    is_featured: bool | None = None
    is_published: bool | None = None


class BlogPostRead(BaseModel):
    id: str
    title: str
    slug: str
    category: str
    excerpt: str | None = None
    content: str | None = None
    image_url: str | None = None
    read_time: str | None = None
    author_id: str | None = None
    is_featured: bool
    is_published: bool
    published_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ServiceWrite(BaseModel):
    title: str | None = None
    slug: str | None = None
    description: str | None = None
    short_description: str | None = None
    icon: str | None = None
    image_url: str | None = None
    features: list[str] | None = None
    display_order: int | None = None
    is_active: bool | None = None
    is_featured: bool | None = None


class GalleryWrite(BaseModel):
    title: str | None = None
    category: str | None = None
    description: str | None = None
    image_url: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class LocationWrite(BaseModel):
    area_name: str | None = None
    description: str | None = None
    suburbs: list[str] | None = None
    display_order: int | None = None
    is_active: bool | None = None


class TeamMemberWrite(BaseModel):
    name: str | None = None
    role: str | None = None
    bio: str | None = None
    email: str | None = None
    image_url: str | None = None
    linkedin_url: str | None = None
    expertise: list[str] | None = None
    display_order: int | None = None
    is_active: bool | None = None
    is_leadership: bool | None = None


class SiteSettingWrite(BaseModel):
    setting_value: Any = None
    category: str | None = None
