"""
Project routes, including the mockup (thumbnail) and screen endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from portfolio.dependencies import get_content_store, require_user
from portfolio.errors import ValidationError
from portfolio.records import Image, Project
from portfolio.schemas import (
    ExistingImageRequest,
    ProjectCreate,
    ProjectUpdate,
    ReorderRequest,
    ScreenExistingRequest,
    ok,
)
from portfolio.slugs import resolve_mime_type
from portfolio.stores import ContentStore

router = APIRouter(prefix="/projects", tags=["projects"])


def _render(store: ContentStore, project: Project, populate: bool) -> dict:
    return store.populate_project(project) if populate else project.as_dict()


async def _read_upload(file: UploadFile) -> tuple[bytes, str]:
    content = await file.read()
    if not content:
        raise ValidationError("No file uploaded")
    return content, resolve_mime_type(file.content_type, file.filename)


@router.get("")
def list_projects(
    category: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    populate: bool = Query(False),
    store: ContentStore = Depends(get_content_store),
):
    projects = store.list_projects(category=category, featured=featured)
    return ok([_render(store, p, populate) for p in projects], count=len(projects))


@router.get("/stats")
def project_stats(store: ContentStore = Depends(get_content_store)):
    return ok(store.project_stats())


@router.get("/{key}")
def get_project(
    key: str,
    populate: bool = Query(False),
    store: ContentStore = Depends(get_content_store),
):
    return ok(_render(store, store.get_project(key), populate))


@router.post("", status_code=201, dependencies=[Depends(require_user)])
def create_project(
    payload: ProjectCreate,
    store: ContentStore = Depends(get_content_store),
):
    project = store.create_project(payload.model_dump())
    return ok(project.as_dict())


@router.put("/{key}", dependencies=[Depends(require_user)])
def update_project(
    key: str,
    payload: ProjectUpdate,
    store: ContentStore = Depends(get_content_store),
):
    return ok(store.update_project(key, payload.fields_set()).as_dict())


@router.delete("/{key}", dependencies=[Depends(require_user)])
def delete_project(key: str, store: ContentStore = Depends(get_content_store)):
    store.delete_project(key)
    return ok({}, message="Project deleted successfully")


# -----------------------------------------------------------------------------
# Mockup (thumbnail)
# -----------------------------------------------------------------------------


def _mockup_response(project: Project, image: Image) -> dict:
    return ok(
        {
            "filename": image.filename,
            "url": project.thumbnail_url,
            "project": project.as_dict(),
        },
        message="Mockup updated successfully",
    )


@router.post("/{slug}/mockup", dependencies=[Depends(require_user)])
async def upload_mockup(
    slug: str,
    file: UploadFile = File(...),
    store: ContentStore = Depends(get_content_store),
):
    content, mime_type = await _read_upload(file)
    project, image = store.upload_thumbnail(slug, content, mime_type, file.filename)
    return _mockup_response(project, image)


@router.post("/{slug}/mockup-existing", dependencies=[Depends(require_user)])
def use_existing_mockup(
    slug: str,
    payload: ExistingImageRequest,
    store: ContentStore = Depends(get_content_store),
):
    project, image = store.set_thumbnail(slug, payload.image_slug)
    return _mockup_response(project, image)


# -----------------------------------------------------------------------------
# Screens
# -----------------------------------------------------------------------------


@router.post("/{slug}/screens", status_code=201, dependencies=[Depends(require_user)])
async def add_screen(
    slug: str,
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(...),
    store: ContentStore = Depends(get_content_store),
):
    content, mime_type = await _read_upload(file)
    project = store.add_screen(
        slug,
        title,
        description,
        content=content,
        mime_type=mime_type,
        filename=file.filename,
    )
    return ok(project.as_dict(), message="Screen added successfully")


@router.post(
    "/{slug}/screens-existing", status_code=201, dependencies=[Depends(require_user)]
)
def add_existing_screen(
    slug: str,
    payload: ScreenExistingRequest,
    store: ContentStore = Depends(get_content_store),
):
    project = store.add_screen(
        slug, payload.title, payload.description, image_slug=payload.image_slug
    )
    return ok(project.as_dict(), message="Screen added successfully")


@router.put("/{slug}/screens-reorder", dependencies=[Depends(require_user)])
def reorder_screens(
    slug: str,
    payload: ReorderRequest,
    store: ContentStore = Depends(get_content_store),
):
    project = store.reorder_screen(slug, payload.from_index, payload.to_index)
    return ok(project.as_dict(), message="Screens reordered successfully")


@router.put("/{slug}/screens/{index}", dependencies=[Depends(require_user)])
async def update_screen(
    slug: str,
    index: int,
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    store: ContentStore = Depends(get_content_store),
):
    content: Optional[bytes] = None
    mime_type: Optional[str] = None
    filename: Optional[str] = None
    if file is not None:
        content = await file.read()
        mime_type = resolve_mime_type(file.content_type, file.filename)
        filename = file.filename
    project = store.update_screen(
        slug,
        index,
        title=title,
        description=description,
        content=content or None,
        mime_type=mime_type,
        filename=filename,
    )
    return ok(project.as_dict(), message="Screen updated successfully")


@router.delete("/{slug}/screens/{index}", dependencies=[Depends(require_user)])
def delete_screen(
    slug: str,
    index: int,
    store: ContentStore = Depends(get_content_store),
):
    project = store.delete_screen(slug, index)
    return ok(project.as_dict(), message="Screen deleted successfully")
