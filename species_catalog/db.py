"""
Database abstraction for the relational store and an in-memory test implementation.
"""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DataAccessError(Exception):
    """Raised when the backing store rejects or fails an operation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DbClient(Protocol):
    """Interface for database access."""

    def list_species(self) -> list["SpeciesRecord"]:
        ...

    def get_species(self, species_id: int) -> Optional["SpeciesRecord"]:
        ...

    def create_species(self, species: "SpeciesRecord") -> "SpeciesRecord":
        ...

    def delete_species(self, species_id: int) -> int:
        ...

    def delete_comments_for_species(self, species_id: int) -> int:
        ...

    def list_comments(
        self, species_id: int, *, ascending: bool = True
    ) -> list["CommentRecord"]:
        ...

    def create_comment(
        self, species_id: int, author: str, display_name: str, comment: str
    ) -> "CommentRecord":
        ...

    def delete_comment(self, comment_id: int, *, species_id: int, author: str) -> int:
        ...

    def get_profile(self, profile_id: str) -> Optional["ProfileRecord"]:
        ...

    def save_profile(self, profile: "ProfileRecord") -> None:
        ...

    def list_profiles(self) -> list["ProfileRecord"]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SpeciesRecord:
    scientific_name: str
    kingdom: str
    common_name: Optional[str] = None
    total_population: Optional[int] = None
    description: Optional[str] = None
    image: Optional[str] = None
    id: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "scientific_name": self.scientific_name,
            "common_name": self.common_name,
            "kingdom": self.kingdom,
            "total_population": self.total_population,
            "description": self.description,
            "image": self.image,
        }


@dataclass
class CommentRecord:
    id: int
    species_id: int
    author: str
    display_name: str
    comment: str
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "species_id": self.species_id,
            "author": self.author,
            "display_name": self.display_name,
            "comment": self.comment,
            "created_at": self.created_at,
        }


@dataclass
class ProfileRecord:
    id: str
    display_name: str
    email: str
    biography: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "email": self.email,
            "biography": self.biography,
        }


def _comment_sort_key(comment: CommentRecord) -> tuple[datetime, int]:
    return comment.created_at, comment.id


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.species: Dict[int, SpeciesRecord] = {}
        self.comments: Dict[int, CommentRecord] = {}
        self.profiles: Dict[str, ProfileRecord] = {}
        self._species_ids = itertools.count(1)
        self._comment_ids = itertools.count(1)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.species.clear()
        self.comments.clear()
        self.profiles.clear()
        self._species_ids = itertools.count(1)
        self._comment_ids = itertools.count(1)

    def list_species(self) -> list[SpeciesRecord]:
        return sorted(self.species.values(), key=lambda s: s.scientific_name)

    def get_species(self, species_id: int) -> Optional[SpeciesRecord]:
        return self.species.get(species_id)

    def create_species(self, species: SpeciesRecord) -> SpeciesRecord:
        species.id = next(self._species_ids)
        self.species[species.id] = species
        return species

    def delete_species(self, species_id: int) -> int:
        return 1 if self.species.pop(species_id, None) else 0

    def delete_comments_for_species(self, species_id: int) -> int:
        doomed = [c.id for c in self.comments.values() if c.species_id == species_id]
        for comment_id in doomed:
            del self.comments[comment_id]
        return len(doomed)

    def list_comments(
        self, species_id: int, *, ascending: bool = True
    ) -> list[CommentRecord]:
        items = [c for c in self.comments.values() if c.species_id == species_id]
        return sorted(items, key=_comment_sort_key, reverse=not ascending)

    def create_comment(
        self, species_id: int, author: str, display_name: str, comment: str
    ) -> CommentRecord:
        record = CommentRecord(
            id=next(self._comment_ids),
            species_id=species_id,
            author=author,
            display_name=display_name,
            comment=comment,
        )
        self.comments[record.id] = record
        return record

    def delete_comment(self, comment_id: int, *, species_id: int, author: str) -> int:
        record = self.comments.get(comment_id)
        if not record or record.species_id != species_id or record.author != author:
            return 0
        del self.comments[comment_id]
        return 1

    def get_profile(self, profile_id: str) -> Optional[ProfileRecord]:
        return self.profiles.get(profile_id)

    def save_profile(self, profile: ProfileRecord) -> None:
        self.profiles[profile.id] = profile

    def list_profiles(self) -> list[ProfileRecord]:
        return sorted(self.profiles.values(), key=lambda p: p.id, reverse=True)


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise DataAccessError(str(getattr(exc, "orig", None) or exc)) from exc
        finally:
            session.close()

    def _to_species_record(self, row: "SpeciesRow") -> SpeciesRecord:
        return SpeciesRecord(
            id=row.id,
            scientific_name=row.scientific_name,
            common_name=row.common_name,
            kingdom=row.kingdom,
            total_population=row.total_population,
            description=row.description,
            image=row.image,
        )

    def _to_comment_record(self, row: "CommentRow") -> CommentRecord:
        created_at = row.created_at
        # SQLite drops tzinfo on the way back.
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return CommentRecord(
            id=row.id,
            species_id=row.species_id,
            author=row.author,
            display_name=row.display_name,
            comment=row.comment,
            created_at=created_at,
        )

    def _to_profile_record(self, row: "ProfileRow") -> ProfileRecord:
        return ProfileRecord(
            id=row.id,
            display_name=row.display_name,
            email=row.email,
            biography=row.biography,
        )

    def list_species(self) -> list[SpeciesRecord]:
        with self._session() as session:
            rows = session.execute(
                select(SpeciesRow).order_by(SpeciesRow.scientific_name.asc())
            ).scalars()
            return [self._to_species_record(row) for row in rows]

    def get_species(self, species_id: int) -> Optional[SpeciesRecord]:
        with self._session() as session:
            row = session.get(SpeciesRow, species_id)
            if not row:
                return None
            return self._to_species_record(row)

    def create_species(self, species: SpeciesRecord) -> SpeciesRecord:
        with self._session() as session:
            row = SpeciesRow(
                scientific_name=species.scientific_name,
                common_name=species.common_name,
                kingdom=species.kingdom,
                total_population=species.total_population,
                description=species.description,
                image=species.image,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_species_record(row)

    def delete_species(self, species_id: int) -> int:
        with self._session() as session:
            result = session.execute(
                delete(SpeciesRow).where(SpeciesRow.id == species_id)
            )
            session.commit()
            return result.rowcount or 0

    def delete_comments_for_species(self, species_id: int) -> int:
        with self._session() as session:
            result = session.execute(
                delete(CommentRow).where(CommentRow.species_id == species_id)
            )
            session.commit()
            return result.rowcount or 0

    def list_comments(
        self, species_id: int, *, ascending: bool = True
    ) -> list[CommentRecord]:
        if ascending:
            ordering = (CommentRow.created_at.asc(), CommentRow.id.asc())
        else:
            ordering = (CommentRow.created_at.desc(), CommentRow.id.desc())
        with self._session() as session:
            rows = session.execute(
                select(CommentRow)
                .where(CommentRow.species_id == species_id)
                .order_by(*ordering)
            ).scalars()
            return [self._to_comment_record(row) for row in rows]

    def create_comment(
        self, species_id: int, author: str, display_name: str, comment: str
    ) -> CommentRecord:
        with self._session() as session:
            row = CommentRow(
                species_id=species_id,
                author=author,
                display_name=display_name,
                comment=comment,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_comment_record(row)

    def delete_comment(self, comment_id: int, *, species_id: int, author: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(CommentRow).where(
                    CommentRow.id == comment_id,
                    CommentRow.species_id == species_id,
                    CommentRow.author == author,
                )
            )
            session.commit()
            return result.rowcount or 0

    def get_profile(self, profile_id: str) -> Optional[ProfileRecord]:
        with self._session() as session:
            row = session.get(ProfileRow, profile_id)
            return self._to_profile_record(row) if row else None

    def save_profile(self, profile: ProfileRecord) -> None:
        with self._session() as session:
            existing = session.get(ProfileRow, profile.id)
            if existing:
                existing.display_name = profile.display_name
                existing.email = profile.email
                existing.biography = profile.biography
            else:
                session.add(
                    ProfileRow(
                        id=profile.id,
                        display_name=profile.display_name,
                        email=profile.email,
                        biography=profile.biography,
                    )
                )
            session.commit()

    def list_profiles(self) -> list[ProfileRecord]:
        with self._session() as session:
            rows = session.execute(
                select(ProfileRow).order_by(ProfileRow.id.desc())
            ).scalars()
            return [self._to_profile_record(row) for row in rows]


Base = declarative_base()


class SpeciesRow(Base):
    __tablename__ = "species"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scientific_name = Column(String, nullable=False, index=True)
    common_name = Column(String, nullable=True)
    kingdom = Column(String, nullable=False)
    total_population = Column(BigInteger, nullable=True)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)


class CommentRow(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    species_id = Column(
        Integer, ForeignKey("species.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    display_name = Column(String, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    display_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    biography = Column(Text, nullable=True)
