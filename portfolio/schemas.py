"""
Pydantic schemas for the portfolio content API.

Request bodies accept camelCase keys (the frontend's shape) as well as the
snake_case field names.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def fields_set(self) -> dict:
        """Only the fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class ProjectCreate(CamelModel):
    title: str
    slug: str
    description: str
    short_description: str
    category: str
    technologies: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    live_url: Optional[str] = None
    github_url: Optional[str] = None
    featured: bool = False
    order: int = 0


class ProjectUpdate(CamelModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    category: Optional[str] = None
    technologies: Optional[List[str]] = None
    images: Optional[List[str]] = None
    live_url: Optional[str] = None
    github_url: Optional[str] = None
    featured: Optional[bool] = None
    order: Optional[int] = None


class SkillCreate(CamelModel):
    name: str
    icon: str
    category: str
    proficiency: int
    order: int = 0


class SkillUpdate(CamelModel):
    name: Optional[str] = None
    icon: Optional[str] = None
    category: Optional[str] = None
    proficiency: Optional[int] = None
    order: Optional[int] = None


class MessageCreate(CamelModel):
    name: str
    email: str
    subject: str
    message: str


class SignupRequest(CamelModel):
    email: str
    password: str
    name: str


class LoginRequest(CamelModel):
    email: str
    password: str


class ReorderRequest(CamelModel):
    from_index: int
    to_index: int


class ExistingImageRequest(CamelModel):
    image_slug: str = Field(..., min_length=1)


class ScreenExistingRequest(CamelModel):
    title: str
    description: str
    image_slug: str = Field(..., min_length=1)


def ok(data: Any = None, *, count: Optional[int] = None, message: Optional[str] = None) -> dict:
    """Success envelope; absent ``count``/``message`` are left out."""
    body = {"success": True, "data": data}
    if count is not None:
        body["count"] = count
    if message is not None:
        body["message"] = message
    return body
