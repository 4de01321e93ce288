"""CMS API: public site content and admin editing."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.config import get_settings
from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_capability
from cleaning_portal.errors import ValidationError
from cleaning_portal.models.cms import SiteSetting
from cleaning_portal.schemas import (
    BlogPostRead, BlogPostWrite, GalleryWrite, LocationWrite, ServiceWrite,
    SiteSettingWrite, TeamMemberWrite,
)
from cleaning_portal.services import cms, photo_store
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

router = APIRouter(prefix="/api/cms", tags=["cms"])
admin_router = APIRouter(prefix="/api/admin/cms", tags=["cms-admin"])

_settings = get_settings()
_edit_dep = require_capability(Capability.EDIT_SETTINGS)


def _row(item) -> dict:
    return {c.key: getattr(item, c.key) for c in item.__table__.columns}


# ── Public ────────────────────────────────────────────────

@router.get("/blog", response_model=list[BlogPostRead])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await crud.list_published_posts(db)


@router.get("/blog/{slug}", response_model=BlogPostRead)
async def get_post(slug: str, db: AsyncSession = Depends(get_db)):
    post = await crud.get_blog_post_by_slug(db, slug)
    if not post or not post.is_published:
        raise HTTPException(404, "Post not found")
    return post


@router.get("/settings/{key}")
async def get_setting(key: str, db: AsyncSession = Depends(get_db)):
    setting = await crud.get_site_setting(db, key)
    if not setting:
        raise HTTPException(404, "Setting not found")
    return {"key": setting.setting_key, "value": setting.setting_value, "category": setting.category}


def _public_list(resource: str):
    model = cms.CMS_RESOURCES[resource]

    async def _list(db: AsyncSession = Depends(get_db)):
        return [_row(item) for item in await crud.list_cms(db, model, active_only=True)]
    return _list


for _resource in ("services", "gallery", "locations", "team"):
    router.add_api_route(f"/{_resource}", _public_list(_resource), methods=["GET"])


# ── Admin ─────────────────────────────────────────────────

@admin_router.put("/settings/{key}")
async def put_setting(
    key: str,
    body: SiteSettingWrite,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    setting = await cms.upsert_setting(db, key, body.setting_value, body.category, auth)
    return {"key": setting.setting_key, "value": setting.setting_value, "category": setting.category}


@admin_router.get("/settings")
async def list_settings(
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    return [_row(s) for s in await crud.list_cms(db, SiteSetting)]


@admin_router.post("/images", status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    folder: str = Form("general"),
    auth: AuthContext = Depends(_edit_dep),
):
    """Store a CMS image and return its public URL."""
    if not photo_store.is_safe_segment(folder):
        raise ValidationError("Folder may only contain letters, digits, - and _", field="folder")
    bucket = _settings.storage.cms_bucket
    path = await photo_store.save_object(
        bucket, "cms", folder, await file.read(), file.filename or "image.jpg",
    )
    return {"path": path, "url": photo_store.public_url(bucket, path)}


def _register_admin(resource: str, schema: type[BaseModel]) -> None:
    model = cms.CMS_RESOURCES[resource]

    async def _list(
        auth: AuthContext = Depends(_edit_dep),
        db: AsyncSession = Depends(get_db),
    ):
        return [_row(item) for item in await crud.list_cms(db, model)]

    async def _create(
        body: schema,
        auth: AuthContext = Depends(_edit_dep),
        db: AsyncSession = Depends(get_db),
    ):
        return _row(await cms.create_item(db, resource, body.model_dump(exclude_unset=True), auth))

    async def _update(
        item_id: str,
        body: schema,
        auth: AuthContext = Depends(_edit_dep),
        db: AsyncSession = Depends(get_db),
    ):
        item = await crud.get_cms(db, model, item_id)
        if not item:
            raise HTTPException(404, "Item not found")
        return _row(await cms.update_item(db, resource, item, body.model_dump(exclude_unset=True), auth))

    async def _delete(
        item_id: str,
        auth: AuthContext = Depends(_edit_dep),
        db: AsyncSession = Depends(get_db),
    ):
        item = await crud.get_cms(db, model, item_id)
        if not item:
            raise HTTPException(404, "Item not found")
        await crud.delete_cms(db, item)
        await crud.log_admin_activity(
            db, auth.user_id, "delete", resource, item_id, description=f"Deleted {resource} item",
        )
        return {"ok": True}

    admin_router.add_api_route(f"/{resource}", _list, methods=["GET"])
    admin_router.add_api_route(f"/{resource}", _create, methods=["POST"], status_code=201)
    admin_router.add_api_route(f"/{resource}/{{item_id}}", _update, methods=["PUT"])
    admin_router.add_api_route(f"/{resource}/{{item_id}}", _delete, methods=["DELETE"])


_register_admin("blog", BlogPostWrite)
_register_admin("services", ServiceWrite)
_register_admin("gallery", GalleryWrite)
_register_admin("locations", LocationWrite)
_register_admin("team", TeamMemberWrite)
