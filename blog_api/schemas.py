"""
Request document schemas.

Only the JSON:API envelope is modelled here; member-level rules
(``title`` length, slug format, relationship existence) live in
``blog_api.validation`` so that every failure is reported with its own
``source.pointer``.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResourceObjectIn(BaseModel):
    type: str
    id: str | int | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class ResourceDocumentIn(BaseModel):
    data: ResourceObjectIn

    model_config = ConfigDict(extra="ignore")
