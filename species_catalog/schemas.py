"""
Pydantic schemas for the species catalog API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator


class SpeciesResponse(BaseModel):
    id: int
    scientific_name: str
    common_name: Optional[str] = None
    kingdom: str
    total_population: Optional[int] = None
    description: Optional[str] = None
    image: Optional[str] = None


class SpeciesDetailResponse(SpeciesResponse):
    image_url: str


class ListSpeciesResponse(BaseModel):
    species: list[SpeciesResponse]


class CommentResponse(BaseModel):
    id: int
    author: str
    display_name: str
    comment: str
    created_at: datetime
    created_at_display: str
    can_delete: bool


class ListCommentsResponse(BaseModel):
    species_id: int
    order: Literal["asc", "desc"]
    viewer_display_name: Optional[str] = None
    comments: list[CommentResponse]


class CommentCreateRequest(BaseModel):
    comment: str

    @field_validator("comment")
    @classmethod
    def comment_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("comment must not be empty")
        return value


class CommentDeleteResponse(BaseModel):
    deleted: int


class ProfileResponse(BaseModel):
    id: str
    display_name: str
    email: str
    biography: Optional[str] = None


class ListUsersResponse(BaseModel):
    users: list[ProfileResponse]
