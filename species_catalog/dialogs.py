"""
Controllers for the two species dialogs: delete confirmation and the detail
view with its comment thread.

Controllers never raise on backend failures. They log the failure, record a
``Notification`` for the UI to show and keep their own state consistent, so
a failed call always leaves the dialog usable.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from species_catalog.db import CommentRecord, DataAccessError, DbClient, SpeciesRecord

logger = logging.getLogger(__name__)


class DialogState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"


class LoadStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class SortOrder(str, enum.Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    def toggled(self) -> "SortOrder":
        if self is SortOrder.ASCENDING:
            return SortOrder.DESCENDING
        return SortOrder.ASCENDING


class Failure(str, enum.Enum):
    """Why the last write from a dialog did not go through."""

    INVALID = "invalid"
    NO_PROFILE = "no_profile"
    NOT_AUTHOR = "not_author"
    BACKEND = "backend"


@dataclass
class Notification:
    """A transient, non-blocking message for the viewer."""

    title: str
    description: str
    variant: str = "default"

    @classmethod
    def error(cls, title: str, description: str) -> "Notification":
        return cls(title=title, description=description, variant="destructive")


@dataclass
class CommentView:
    id: int
    author: str
    display_name: str
    comment: str
    created_at: datetime
    created_at_display: str
    can_delete: bool

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "author": self.author,
            "display_name": self.display_name,
            "comment": self.comment,
            "created_at": self.created_at,
            "created_at_display": self.created_at_display,
            "can_delete": self.can_delete,
        }


def format_timestamp(value: datetime) -> str:
    """
    Render a timestamp in local time using the locale's date and time formats.

    Follows LC_TIME, which the app sets from the environment at startup;
    without that the C locale applies.
    """
    return value.astimezone().strftime("%x %X")


def order_comments(
    comments: Iterable[CommentRecord], order: SortOrder
) -> list[CommentRecord]:
    return sorted(
        comments,
        key=lambda c: (c.created_at, c.id),
        reverse=order is SortOrder.DESCENDING,
    )


def build_comment_views(
    comments: Iterable[CommentRecord], viewer_id: Optional[str]
) -> list[CommentView]:
    # Authorship is decided by profile id; display names are not unique.
    return [
        CommentView(
            id=c.id,
            author=c.author,
            display_name=c.display_name,
            comment=c.comment,
            created_at=c.created_at,
            created_at_display=format_timestamp(c.created_at),
            can_delete=viewer_id is not None and c.author == viewer_id,
        )
        for c in comments
    ]


@dataclass
class DeletionResult:
    species_deleted: int = 0
    comments_deleted: int = 0
    species_error: Optional[DataAccessError] = None
    comments_error: Optional[DataAccessError] = None

    @property
    def ok(self) -> bool:
        return self.species_error is None and self.comments_error is None


def delete_species_with_comments(db: DbClient, species_id: int) -> DeletionResult:
    """
    Delete a species row and then every comment that references it.

    Both deletions are attempted even if the first one fails. Nothing is
    rolled back; the caller decides how to report partial failures.
    """
    result = DeletionResult()
    try:
        result.species_deleted = db.delete_species(species_id)
    except DataAccessError as exc:
        logger.warning("Failed to delete species %s: %s", species_id, exc.message)
        result.species_error = exc
    try:
        result.comments_deleted = db.delete_comments_for_species(species_id)
    except DataAccessError as exc:
        logger.warning(
            "Failed to delete comments for species %s: %s", species_id, exc.message
        )
        result.comments_error = exc
    return result


class ConfirmDeleteDialog:
    """Confirmation step in front of deleting a species."""

    def __init__(
        self,
        db: DbClient,
        species: SpeciesRecord,
        *,
        on_deleted: Optional[Callable[[], None]] = None,
    ):
        self.db = db
        self.species = species
        self.on_deleted = on_deleted
        self.state = DialogState.CLOSED
        self.notifications: list[Notification] = []
        self.last_result: Optional[DeletionResult] = None

    @property
    def is_open(self) -> bool:
        return self.state is DialogState.OPEN

    def open(self) -> None:
        self.state = DialogState.OPEN

    def cancel(self) -> None:
        self.state = DialogState.CLOSED

    def confirm(self) -> bool:
        """Run the deletion. Returns True when the species and its comments are gone."""
        result = delete_species_with_comments(self.db, self.species.id)
        self.last_result = result

        if result.species_error:
            self.notifications.append(
                Notification.error("Something went wrong.", result.species_error.message)
            )
        if result.comments_error:
            self.notifications.append(
                Notification.error(
                    "Comments for the species were not deleted.",
                    result.comments_error.message,
                )
            )
        if not result.ok:
            return False

        self.state = DialogState.CLOSED
        if self.on_deleted:
            self.on_deleted()
        self.notifications.append(
            Notification(
                title="Species deleted!",
                description=f"Successfully deleted {self.species.scientific_name}.",
            )
        )
        return True


class DetailedViewDialog:
    """
    Detail view for one species, including its comment thread.

    Opening the dialog fetches the viewer's display name and the comment set.
    Writes are followed by a re-fetch of the comments rather than a local
    insert, so the thread always shows what the store holds. ``viewer_id``
    is None for anonymous viewers, who can read but not write.
    """

    def __init__(self, db: DbClient, species: SpeciesRecord, viewer_id: Optional[str]):
        self.db = db
        self.species = species
        self.viewer_id = viewer_id
        self.state = DialogState.CLOSED
        self.status = LoadStatus.IDLE
        self.name_error: Optional[str] = None
        self.comments_error: Optional[str] = None
        self.failure: Optional[Failure] = None
        self.display_name = ""
        self.sort_order = SortOrder.ASCENDING
        self.draft = ""
        self.notifications: list[Notification] = []
        self._comments: list[CommentRecord] = []

    @property
    def is_open(self) -> bool:
        return self.state is DialogState.OPEN

    @property
    def error(self) -> Optional[str]:
        return self.name_error or self.comments_error

    @property
    def comments(self) -> list[CommentView]:
        return build_comment_views(
            order_comments(self._comments, self.sort_order), self.viewer_id
        )

    def _sync_status(self) -> None:
        if self.is_open:
            self.status = LoadStatus.ERROR if self.error else LoadStatus.READY

    def open(self) -> None:
        self.state = DialogState.OPEN
        self.status = LoadStatus.LOADING
        self.name_error = None
        self.comments_error = None
        # Independent fetches: one failing must not block the other.
        self._load_display_name()
        self.refresh_comments()
        self._sync_status()

    def close(self) -> None:
        self.state = DialogState.CLOSED
        self.status = LoadStatus.IDLE
        self.name_error = None
        self.comments_error = None
        self._comments = []

    def toggle_sort(self) -> SortOrder:
        self.sort_order = self.sort_order.toggled()
        return self.sort_order

    def set_draft(self, text: str) -> None:
        self.draft = text

    def refresh_comments(self) -> bool:
        try:
            self._comments = self.db.list_comments(self.species.id)
        except DataAccessError as exc:
            logger.warning(
                "Error fetching comments for species %s: %s", self.species.id, exc.message
            )
            self.comments_error = exc.message
            ok = False
        else:
            self.comments_error = None
            ok = True
        if self.status is not LoadStatus.LOADING:
            self._sync_status()
        return ok

    def _load_display_name(self) -> bool:
        if self.viewer_id is None:
            return True
        try:
            profile = self.db.get_profile(self.viewer_id)
        except DataAccessError as exc:
            logger.warning("Error fetching user display name: %s", exc.message)
            self.name_error = exc.message
            return False
        self.name_error = None
        if profile is None:
            logger.warning("No profile found for viewer %s", self.viewer_id)
            return True
        self.display_name = profile.display_name
        return True

    def _fail(self, failure: Failure, title: str, description: str) -> None:
        self.failure = failure
        self.notifications.append(Notification.error(title, description))

    def post_comment(self, text: Optional[str] = None) -> Optional[CommentRecord]:
        """
        Post ``text`` (or the current draft) and return the stored comment.

        Returns None on failure, with ``failure`` and a notification saying
        why. The draft is cleared only on success.
        """
        self.failure = None
        if text is not None:
            self.draft = text
        body = self.draft.strip()
        if not body:
            self._fail(Failure.INVALID, "Comment is empty.", "Write something before posting.")
            return None
        if self.viewer_id is None:
            self._fail(Failure.NO_PROFILE, "Not signed in.", "Sign in to post a comment.")
            return None

        try:
            # Snapshot the author's display name at write time.
            profile = self.db.get_profile(self.viewer_id)
        except DataAccessError as exc:
            logger.warning("Error fetching user display name: %s", exc.message)
            self._fail(Failure.BACKEND, "Something went wrong.", exc.message)
            return None
        if profile is None:
            self._fail(
                Failure.NO_PROFILE,
                "Something went wrong.",
                "No profile found for the current user.",
            )
            return None
        self.display_name = profile.display_name
        self.name_error = None

        try:
            record = self.db.create_comment(
                self.species.id, self.viewer_id, profile.display_name, body
            )
        except DataAccessError as exc:
            logger.warning(
                "Error posting comment on species %s: %s", self.species.id, exc.message
            )
            self._fail(Failure.BACKEND, "Something went wrong.", exc.message)
            return None

        self.draft = ""
        self.refresh_comments()
        self.notifications.append(
            Notification(
                title="Comment added!",
                description=f"Successfully commented on {self.species.scientific_name}.",
            )
        )
        return record

    def delete_comment(self, comment_id: int) -> bool:
        self.failure = None
        if self.viewer_id is None:
            self._fail(Failure.NOT_AUTHOR, "Not signed in.", "Sign in to delete comments.")
            return False
        try:
            deleted = self.db.delete_comment(
                comment_id, species_id=self.species.id, author=self.viewer_id
            )
        except DataAccessError as exc:
            logger.warning("Error deleting comment %s: %s", comment_id, exc.message)
            self._fail(Failure.BACKEND, "Something went wrong.", exc.message)
            return False

        self.refresh_comments()
        if not deleted:
            self._fail(
                Failure.NOT_AUTHOR,
                "Comment not deleted.",
                "You can only delete your own comments.",
            )
            return False
        self.notifications.append(
            Notification(title="Comment deleted!", description="Successfully deleted the comment.")
        )
        return True
