"""
Image routes. ``GET /images/{slug}`` streams the bytes back with a long-lived
cache header; every other read returns metadata only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile

from portfolio.dependencies import get_content_store, require_user
from portfolio.errors import ValidationError
from portfolio.schemas import ok
from portfolio.slugs import resolve_mime_type
from portfolio.stores import ContentStore

router = APIRouter(prefix="/images", tags=["images"])

IMAGE_CACHE_CONTROL = "public, max-age=31536000"


@router.get("")
def list_images(
    category: Optional[str] = Query(None),
    sort: str = Query("name"),
    store: ContentStore = Depends(get_content_store),
):
    images = store.list_images(category=category, sort=sort)
    return ok([image.as_dict() for image in images], count=len(images))


@router.get("/{slug}/metadata")
def get_image_metadata(slug: str, store: ContentStore = Depends(get_content_store)):
    return ok(store.get_image_metadata(slug).as_dict())


@router.get("/{slug}")
def get_image(slug: str, store: ContentStore = Depends(get_content_store)):
    image, content = store.get_image(slug)
    return Response(
        content=content,
        media_type=image.mime_type,
        headers={
            "Content-Length": str(len(content)),
            "Cache-Control": IMAGE_CACHE_CONTROL,
        },
    )


@router.post("", status_code=201, dependencies=[Depends(require_user)])
async def create_image(
    file: UploadFile = File(...),
    name: str = Form(...),
    slug: str = Form(...),
    category: str = Form(...),
    store: ContentStore = Depends(get_content_store),
):
    content = await file.read()
    if not content:
        raise ValidationError("No file uploaded")
    image = store.create_image(
        slug.strip(),
        content,
        resolve_mime_type(file.content_type, file.filename),
        name=name.strip(),
        category=category,
        filename=file.filename,
    )
    return ok(image.as_dict(), message="Image uploaded successfully")


@router.put("/{slug}", dependencies=[Depends(require_user)])
async def replace_image(
    slug: str,
    file: UploadFile = File(...),
    store: ContentStore = Depends(get_content_store),
):
    content = await file.read()
    if not content:
        raise ValidationError("No file uploaded")
    image = store.replace_image(
        slug,
        content,
        resolve_mime_type(file.content_type, file.filename),
        filename=file.filename,
    )
    return ok(image.as_dict(), message="Image updated successfully")


@router.delete("/{slug}", dependencies=[Depends(require_user)])
def delete_image(slug: str, store: ContentStore = Depends(get_content_store)):
    store.delete_image(slug)
    return ok({}, message="Image deleted successfully")
