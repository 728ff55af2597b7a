"""
HTTP routes for the species catalog JSON API.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from species_catalog.auth import get_session_profile_id, require_session
from species_catalog.config import get_settings
from species_catalog.db import DbClient, SpeciesRecord
from species_catalog.dependencies import get_db_client, get_storage_client
from species_catalog.dialogs import (
    ConfirmDeleteDialog,
    DetailedViewDialog,
    Failure,
    SortOrder,
    build_comment_views,
    delete_species_with_comments,
)
from species_catalog.schemas import (
    CommentCreateRequest,
    CommentDeleteResponse,
    CommentResponse,
    ListCommentsResponse,
    ListSpeciesResponse,
    ListUsersResponse,
    ProfileResponse,
    SpeciesDetailResponse,
    SpeciesResponse,
)
from species_catalog.storage import StorageClient, resolve_image_url

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_species_or_404(db: DbClient, species_id: int) -> SpeciesRecord:
    species = db.get_species(species_id)
    if not species:
        raise HTTPException(status_code=404, detail="Species not found")
    return species


_FAILURE_STATUS = {
    Failure.INVALID: 422,
    Failure.NO_PROFILE: 403,
    Failure.NOT_AUTHOR: 403,
    Failure.BACKEND: 502,
}


def _raise_for_failure(dialog: DetailedViewDialog) -> None:
    note = dialog.notifications[-1]
    raise HTTPException(
        status_code=_FAILURE_STATUS[dialog.failure], detail=note.description
    )


@router.get("/species", response_model=ListSpeciesResponse)
def list_species(db: DbClient = Depends(get_db_client)):
    return ListSpeciesResponse(
        species=[SpeciesResponse(**s.as_dict()) for s in db.list_species()]
    )


@router.get("/species/{species_id}", response_model=SpeciesDetailResponse)
def get_species(
    species_id: int,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    settings = get_settings()
    species = _get_species_or_404(db, species_id)
    image_url = resolve_image_url(
        species.image,
        storage,
        default=settings.default_image_url,
        expires_in=settings.image_url_expires_in,
    )
    return SpeciesDetailResponse(**species.as_dict(), image_url=image_url)


@router.delete("/species/{species_id}", status_code=204)
def delete_species(
    species_id: int,
    db: DbClient = Depends(get_db_client),
    profile_id: str = Depends(require_session),
):
    """
    Delete a species and its comments. Both steps run even if the first fails.

    A species row that is already gone still has its comments swept, so a
    retry after a partial failure cleans up what the first attempt left.
    Only a call that finds neither the species nor any comment is a 404.
    """
    species = db.get_species(species_id)
    if species:
        dialog = ConfirmDeleteDialog(db, species)
        dialog.open()
        dialog.confirm()
        result = dialog.last_result
    else:
        result = delete_species_with_comments(db, species_id)

    if result.species_error:
        raise HTTPException(status_code=502, detail=result.species_error.message)
    if result.comments_error:
        raise HTTPException(
            status_code=502,
            detail=f"Comments for the species were not deleted: {result.comments_error.message}",
        )
    if not species and not result.species_deleted and not result.comments_deleted:
        raise HTTPException(status_code=404, detail="Species not found")
    logger.info(
        "Profile %s deleted species %s and %d comment(s)",
        profile_id,
        species_id,
        result.comments_deleted,
    )
    return Response(status_code=204)


@router.get("/species/{species_id}/comments", response_model=ListCommentsResponse)
def list_comments(
    species_id: int,
    order: Literal["asc", "desc"] = Query("asc"),
    db: DbClient = Depends(get_db_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    """
    List a species' comments. The viewer's display name is fetched
    independently; if that lookup fails the comments are still returned and
    ``viewer_display_name`` is null.
    """
    species = _get_species_or_404(db, species_id)
    dialog = DetailedViewDialog(db, species, profile_id)
    dialog.open()
    dialog.sort_order = SortOrder(order)
    if dialog.comments_error:
        raise HTTPException(status_code=502, detail=dialog.comments_error)
    return ListCommentsResponse(
        species_id=species_id,
        order=dialog.sort_order.value,
        viewer_display_name=dialog.display_name or None,
        comments=[CommentResponse(**v.as_dict()) for v in dialog.comments],
    )


@router.post(
    "/species/{species_id}/comments", response_model=CommentResponse, status_code=201
)
def create_comment(
    species_id: int,
    payload: CommentCreateRequest,
    db: DbClient = Depends(get_db_client),
    profile_id: str = Depends(require_session),
):
    species = _get_species_or_404(db, species_id)
    dialog = DetailedViewDialog(db, species, profile_id)
    record = dialog.post_comment(payload.comment)
    if record is None:
        _raise_for_failure(dialog)
    view = build_comment_views([record], profile_id)[0]
    return CommentResponse(**view.as_dict())


@router.delete(
    "/species/{species_id}/comments/{comment_id}",
    response_model=CommentDeleteResponse,
)
def delete_comment(
    species_id: int,
    comment_id: int,
    db: DbClient = Depends(get_db_client),
    profile_id: str = Depends(require_session),
):
    """
    Delete one of the viewer's own comments. Comments by anyone else are
    filtered out by the store and the call deletes nothing.
    """
    species = _get_species_or_404(db, species_id)
    dialog = DetailedViewDialog(db, species, profile_id)
    if dialog.delete_comment(comment_id):
        return CommentDeleteResponse(deleted=1)
    if dialog.failure is Failure.BACKEND:
        _raise_for_failure(dialog)
    return CommentDeleteResponse(deleted=0)


@router.get("/users", response_model=ListUsersResponse)
def list_users(
    db: DbClient = Depends(get_db_client),
    profile_id: str = Depends(require_session),
):
    return ListUsersResponse(
        users=[ProfileResponse(**p.as_dict()) for p in db.list_profiles()]
    )
