from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from sqlmodel import Field, Session, SQLModel, select
from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceError
from .memberships import Church
from .recurrence import RecurrenceType, decode_days_of_week
from .time_utils import ensure_tz, get_now


logger = logging.getLogger(__name__)


class ChurchRef(SQLModel):
    id: int
    name: str


class ChurchEvent(SQLModel):
    """An event as the rest of the application sees it.

    ``recurrence_days_of_week`` holds weekday indices with Sunday as 0; it is
    only meaningful for weekly recurrences.
    """

    id: Optional[int] = None
    title: str
    excerpt: str = ""
    time: datetime
    author_name: str = ""
    event_location: str = ""
    image_url: Optional[str] = None
    video_link: Optional[str] = None
    created_by: Optional[str] = None
    church_id: int
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_days_of_week: Optional[Set[int]] = None
    church: Optional[ChurchRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChurchEventRecord(SQLModel, table=True):
    """Stored row; the weekday set is kept as its packed integer form."""

    __tablename__ = "churchevent"

    id: Optional[int] = Field(default=None, primary_key=True)
    church_id: int = Field(foreign_key="church.id", index=True)
    title: str
    excerpt: str = ""
    time: datetime = Field(index=True)
    author_name: str = ""
    event_location: str = ""
    image_url: Optional[str] = None
    video_link: Optional[str] = None
    created_by: Optional[str] = None
    is_recurring: bool = False
    recurrence_type: Optional[str] = None
    recurrence_interval: Optional[int] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_days_of_week: Optional[int] = None
    created_at: datetime = Field(default_factory=get_now)
    updated_at: Optional[datetime] = None


EDITABLE_FIELDS = {
    "title",
    "excerpt",
    "time",
    "author_name",
    "event_location",
    "image_url",
    "video_link",
    "is_recurring",
    "recurrence_type",
    "recurrence_interval",
    "recurrence_end_date",
    "recurrence_days_of_week",
}


def _normalize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(fields)
    for key in ("time", "recurrence_end_date"):
        if data.get(key) is not None:
            data[key] = ensure_tz(data[key])
    rtype = data.get("recurrence_type")
    if isinstance(rtype, RecurrenceType):
        data["recurrence_type"] = rtype.value
    return data


def _to_event(record: ChurchEventRecord, church: Church | None) -> ChurchEvent:
    return ChurchEvent(
        id=record.id,
        title=record.title,
        excerpt=record.excerpt,
        time=ensure_tz(record.time),
        author_name=record.author_name,
        event_location=record.event_location,
        image_url=record.image_url,
        video_link=record.video_link,
        created_by=record.created_by,
        church_id=record.church_id,
        is_recurring=record.is_recurring,
        recurrence_type=RecurrenceType.parse(record.recurrence_type),
        recurrence_interval=record.recurrence_interval,
        recurrence_end_date=ensure_tz(record.recurrence_end_date),
        recurrence_days_of_week=decode_days_of_week(record.recurrence_days_of_week),
        church=ChurchRef(id=church.id, name=church.name) if church else None,
        created_at=ensure_tz(record.created_at),
        updated_at=ensure_tz(record.updated_at),
    )


class SqlEventStore:
    """Persist :class:`ChurchEvent` rows with SQLModel.

    Write methods take the stored field layout, i.e. the weekday set already
    packed by :func:`~churchevents.recurrence.encode_days_of_week`.
    """

    def __init__(self, engine):
        self.engine = engine

    async def insert(self, fields: Dict[str, Any]) -> int:
        data = _normalize_fields(fields)
        try:
            with Session(self.engine) as session:
                record = ChurchEventRecord(**data)
                session.add(record)
                session.commit()
                session.refresh(record)
                logger.info("Created event %s in church %s", record.id, record.church_id)
                return record.id
        except SQLAlchemyError as exc:
            raise PersistenceError("insert", str(exc)) from exc

    async def update(self, event_id: int, fields: Dict[str, Any]) -> None:
        data = _normalize_fields(fields)
        unknown = set(data) - EDITABLE_FIELDS
        if unknown:
            raise PersistenceError(
                "update", f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        try:
            with Session(self.engine) as session:
                record = session.get(ChurchEventRecord, event_id)
                if not record:
                    raise PersistenceError("update", f"Event {event_id} not found")
                for key, value in data.items():
                    setattr(record, key, value)
                record.updated_at = get_now()
                session.add(record)
                session.commit()
                logger.info("Updated event %s", event_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("update", str(exc)) from exc

    async def delete(self, event_id: int) -> None:
        try:
            with Session(self.engine) as session:
                record = session.get(ChurchEventRecord, event_id)
                if not record:
                    raise PersistenceError("delete", f"Event {event_id} not found")
                session.delete(record)
                session.commit()
                logger.info("Deleted event %s", event_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("delete", str(exc)) from exc

    async def get(self, event_id: int) -> Optional[ChurchEvent]:
        try:
            with Session(self.engine) as session:
                record = session.get(ChurchEventRecord, event_id)
                if not record:
                    return None
                return _to_event(record, session.get(Church, record.church_id))
        except SQLAlchemyError as exc:
            raise PersistenceError("get", str(exc)) from exc

    async def query_by_church(self, church_id: int) -> List[ChurchEvent]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(ChurchEventRecord, Church)
                    .join(Church, Church.id == ChurchEventRecord.church_id)
                    .where(ChurchEventRecord.church_id == church_id)
                    .order_by(ChurchEventRecord.time, ChurchEventRecord.id)
                ).all()
        except SQLAlchemyError as exc:
            raise PersistenceError("query", str(exc)) from exc
        logger.debug("Fetched %d events for church %s", len(rows), church_id)
        return [_to_event(record, church) for record, church in rows]
