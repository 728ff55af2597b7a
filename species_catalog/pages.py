"""
Server-rendered pages.

The detail page and its forms drive the same dialog controllers the JSON API
uses, so comment and deletion behaviour is identical on both surfaces.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from species_catalog.auth import get_session_profile_id
from species_catalog.config import get_settings
from species_catalog.db import DbClient, SpeciesRecord
from species_catalog.dependencies import get_db_client, get_storage_client
from species_catalog.dialogs import (
    ConfirmDeleteDialog,
    DetailedViewDialog,
    Failure,
    Notification,
    SortOrder,
)
from species_catalog.storage import StorageClient, resolve_image_url

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()

_FAILURE_STATUS = {
    Failure.INVALID: 400,
    Failure.NO_PROFILE: 403,
    Failure.NOT_AUTHOR: 403,
    Failure.BACKEND: 502,
}


def _image_url(species: SpeciesRecord, storage: StorageClient) -> str:
    settings = get_settings()
    return resolve_image_url(
        species.image,
        storage,
        default=settings.default_image_url,
        expires_in=settings.image_url_expires_in,
    )


def _species_or_404(db: DbClient, species_id: int) -> SpeciesRecord:
    species = db.get_species(species_id)
    if not species:
        raise HTTPException(status_code=404, detail="Species not found")
    return species


def _detail_url(species_id: int, order: SortOrder) -> str:
    return f"/species/{species_id}?order={order.value}"


def _render_detail(
    request: Request,
    dialog: DetailedViewDialog,
    storage: StorageClient,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "species_detail.html",
        {
            "species": dialog.species,
            "image_url": _image_url(dialog.species, storage),
            "dialog": dialog,
            "toggle_order": dialog.sort_order.toggled().value,
            "notifications": dialog.notifications,
            "signed_in": dialog.viewer_id is not None,
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
def species_list_page(
    request: Request,
    deleted: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    cards = [
        {"species": species, "image_url": _image_url(species, storage)}
        for species in db.list_species()
    ]
    notifications = []
    if deleted:
        notifications.append(
            Notification(title="Species deleted!", description=f"Successfully deleted {deleted}.")
        )
    return templates.TemplateResponse(
        request,
        "species.html",
        {
            "cards": cards,
            "notifications": notifications,
            "signed_in": profile_id is not None,
        },
    )


@router.get("/species/{species_id}", response_class=HTMLResponse)
def species_detail_page(
    request: Request,
    species_id: int,
    order: SortOrder = Query(SortOrder.ASCENDING),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    dialog = DetailedViewDialog(db, _species_or_404(db, species_id), profile_id)
    dialog.open()
    dialog.sort_order = order
    return _render_detail(request, dialog, storage)


@router.post("/species/{species_id}/comments", response_class=HTMLResponse)
def post_comment_form(
    request: Request,
    species_id: int,
    comment: str = Form(""),
    order: SortOrder = Form(SortOrder.ASCENDING),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    if not profile_id:
        return RedirectResponse(url="/", status_code=303)
    dialog = DetailedViewDialog(db, _species_or_404(db, species_id), profile_id)
    dialog.open()
    dialog.sort_order = order
    if dialog.post_comment(comment) is None:
        return _render_detail(
            request, dialog, storage, status_code=_FAILURE_STATUS[dialog.failure]
        )
    return RedirectResponse(url=_detail_url(species_id, order), status_code=303)


@router.post(
    "/species/{species_id}/comments/{comment_id}/delete", response_class=HTMLResponse
)
def delete_comment_form(
    request: Request,
    species_id: int,
    comment_id: int,
    order: SortOrder = Form(SortOrder.ASCENDING),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    if not profile_id:
        return RedirectResponse(url="/", status_code=303)
    dialog = DetailedViewDialog(db, _species_or_404(db, species_id), profile_id)
    dialog.open()
    dialog.sort_order = order
    if not dialog.delete_comment(comment_id):
        return _render_detail(
            request, dialog, storage, status_code=_FAILURE_STATUS[dialog.failure]
        )
    return RedirectResponse(url=_detail_url(species_id, order), status_code=303)


@router.get("/species/{species_id}/delete", response_class=HTMLResponse)
def confirm_delete_page(
    request: Request,
    species_id: int,
    db: DbClient = Depends(get_db_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    if not profile_id:
        return RedirectResponse(url="/", status_code=303)
    dialog = ConfirmDeleteDialog(db, _species_or_404(db, species_id))
    dialog.open()
    return templates.TemplateResponse(
        request,
        "species_confirm_delete.html",
        {"species": dialog.species, "notifications": [], "signed_in": True},
    )


@router.post("/species/{species_id}/delete", response_class=HTMLResponse)
def delete_species_form(
    request: Request,
    species_id: int,
    db: DbClient = Depends(get_db_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    if not profile_id:
        return RedirectResponse(url="/", status_code=303)
    dialog = ConfirmDeleteDialog(db, _species_or_404(db, species_id))
    dialog.open()
    if not dialog.confirm():
        return templates.TemplateResponse(
            request,
            "species_confirm_delete.html",
            {
                "species": dialog.species,
                "notifications": dialog.notifications,
                "signed_in": True,
            },
            status_code=502,
        )
    return RedirectResponse(
        url=f"/?deleted={quote(dialog.species.scientific_name)}", status_code=303
    )


@router.get("/users", response_class=HTMLResponse)
def users_page(
    request: Request,
    db: DbClient = Depends(get_db_client),
    profile_id: Optional[str] = Depends(get_session_profile_id),
):
    # Protected route: only signed-in viewers may see the user list.
    if not profile_id:
        return RedirectResponse(url="/", status_code=303)
    return templates.TemplateResponse(
        request, "users.html", {"users": db.list_profiles(), "signed_in": True}
    )
