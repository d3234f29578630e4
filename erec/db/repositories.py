"""Table access.  Repositories flush but never commit; the request (or
``session_scope``) owns the transaction."""
from __future__ import annotations

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from erec.db import models

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def get(self, entity_id: UUID | str | int) -> ModelT | None:
        return self.db.get(self.model, entity_id)

    def create(self, **values) -> ModelT:
        entity = self.model(**values)
        self.db.add(entity)
        self.db.flush()
        return entity

    def update(self, entity: ModelT, **values) -> ModelT:
        for field_name, value in values.items():
            setattr(entity, field_name, value)
        self.db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.flush()


class ProtocolRepository(BaseRepository[models.Protocol]):
    """Protocols addressed by id or by release path ``month/week/rec_code``."""

    model = models.Protocol

    _path_order = (models.Protocol.month, models.Protocol.week, models.Protocol.rec_code)

    def get_by_path(self, month: str, week: str, rec_code: str) -> models.Protocol | None:
        return self.db.scalars(
            select(models.Protocol).filter_by(month=month, week=week, rec_code=rec_code)
        ).first()

    def list_all(self) -> list[models.Protocol]:
        return list(self.db.scalars(select(models.Protocol).order_by(*self._path_order)))

    def list_by_month(self, month: str) -> list[models.Protocol]:
        stmt = select(models.Protocol).where(models.Protocol.month == month).order_by(*self._path_order)
        return list(self.db.scalars(stmt))

    def list_months(self) -> list[str]:
        return list(self.db.scalars(select(models.Protocol.month).distinct().order_by(models.Protocol.month)))


class ReviewerRepository(BaseRepository[models.Reviewer]):
    model = models.Reviewer

    def list_all(self) -> list[models.Reviewer]:
        return list(self.db.scalars(select(models.Reviewer).order_by(models.Reviewer.id)))

    def upsert(self, reviewer_id: str, name: str, email: str | None = None) -> tuple[models.Reviewer, bool]:
        """Insert or rename a reviewer; an existing e-mail survives a blank one.

        Returns ``(reviewer, created)``.
        """
        existing = self.get(reviewer_id)
        if existing is None:
            return self.create(id=reviewer_id, name=name, email=email), True
        return self.update(existing, name=name, email=email or existing.email), False


class NoticeRepository(BaseRepository[models.Notice]):
    model = models.Notice

    def list_all(self) -> list[models.Notice]:
        return list(self.db.scalars(select(models.Notice).order_by(models.Notice.created_at.desc())))


class SystemNoticeRepository(BaseRepository[models.SystemNotice]):
    model = models.SystemNotice

    def list_all(self) -> list[models.SystemNotice]:
        return list(self.db.scalars(select(models.SystemNotice).order_by(models.SystemNotice.expires_at)))
