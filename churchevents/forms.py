from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Sequence

from sqlmodel import SQLModel

from .errors import PermissionDenied, PersistenceError, UploadDegraded, ValidationError
from .events import ChurchEvent
from .images import identify_image, read_local_image, upload_path
from .memberships import UserChurchMembership, can_create_in, can_edit_event
from .ports import Auth, BlobStore, Clock, ConfirmationPrompt, EventStore, ImagePicker, SystemClock
from .recurrence import RecurrenceType, encode_days_of_week
from .time_utils import ensure_tz, get_now, sunday_weekday


logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this event?"
LOCAL_IMAGE_WARNING = "Using local image only. The image may not be visible to others."


class StagedEventForm(SQLModel):
    """Draft of an event being created or edited.

    Instances are treated as immutable: every ``with_*`` method returns a new
    form.
    """

    title: str = ""
    excerpt: str = ""
    time: Optional[datetime] = None
    author_name: str = ""
    event_location: str = ""
    image_url: Optional[str] = None
    video_link: Optional[str] = None
    church_id: Optional[int] = None
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_days_of_week: Optional[FrozenSet[int]] = None

    @classmethod
    def defaults(cls, church_id: Optional[int], now: datetime) -> StagedEventForm:
        return cls(church_id=church_id, time=now)

    @classmethod
    def from_event(cls, event: ChurchEvent) -> StagedEventForm:
        """Load ``event`` for editing.

        Recurring events stored without a weekday set get the weekday of
        their own ``time`` so weekly recurrences always keep one day.
        """
        days = frozenset(event.recurrence_days_of_week or ())
        rtype = event.recurrence_type
        interval = event.recurrence_interval
        if event.is_recurring:
            if not days:
                days = frozenset({sunday_weekday(event.time)})
            if rtype is None or rtype == RecurrenceType.Never:
                rtype = RecurrenceType.Weekly
            interval = interval or 1
        return cls(
            title=event.title,
            excerpt=event.excerpt or "",
            time=event.time,
            author_name=event.author_name or "",
            event_location=event.event_location or "",
            image_url=event.image_url,
            video_link=event.video_link,
            church_id=event.church_id,
            is_recurring=event.is_recurring,
            recurrence_type=rtype,
            recurrence_interval=interval,
            recurrence_end_date=event.recurrence_end_date,
            recurrence_days_of_week=days or None,
        )

    def _with(self, **changes: Any) -> StagedEventForm:
        return self.model_copy(update=changes)

    def with_title(self, title: str) -> StagedEventForm:
        return self._with(title=title)

    def with_excerpt(self, excerpt: str) -> StagedEventForm:
        return self._with(excerpt=excerpt)

    def with_time(self, time: Optional[datetime]) -> StagedEventForm:
        return self._with(time=time)

    def with_author_name(self, author_name: str) -> StagedEventForm:
        return self._with(author_name=author_name)

    def with_event_location(self, event_location: str) -> StagedEventForm:
        return self._with(event_location=event_location)

    def with_image_url(self, image_url: Optional[str]) -> StagedEventForm:
        return self._with(image_url=image_url)

    def with_video_link(self, video_link: Optional[str]) -> StagedEventForm:
        return self._with(video_link=video_link)

    def with_church(self, church_id: Optional[int]) -> StagedEventForm:
        return self._with(church_id=church_id)

    def with_recurring(self, is_recurring: bool) -> StagedEventForm:
        if not is_recurring:
            return self._with(is_recurring=False)
        changes: Dict[str, Any] = {"is_recurring": True}
        if self.recurrence_type is None or self.recurrence_type == RecurrenceType.Never:
            changes["recurrence_type"] = RecurrenceType.Weekly
        if not self.recurrence_interval:
            changes["recurrence_interval"] = 1
        if not self.recurrence_days_of_week:
            changes["recurrence_days_of_week"] = frozenset(
                {sunday_weekday(self.time or get_now())}
            )
        return self._with(**changes)

    def with_recurrence_type(self, recurrence_type: Optional[RecurrenceType | str]) -> StagedEventForm:
        return self._with(recurrence_type=RecurrenceType.parse(recurrence_type))

    def with_recurrence_interval(self, interval: Optional[int]) -> StagedEventForm:
        return self._with(recurrence_interval=interval)

    def with_recurrence_end_date(self, end_date: Optional[datetime]) -> StagedEventForm:
        return self._with(recurrence_end_date=end_date)

    def with_recurrence_days(self, days: Optional[Iterable[int]]) -> StagedEventForm:
        return self._with(
            recurrence_days_of_week=frozenset(days) if days is not None else None
        )

    def toggled_day(self, day: int) -> StagedEventForm:
        """Add ``day`` to the weekday set, or remove it unless it is the last one."""
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday index out of range: {day}")
        current = self.recurrence_days_of_week or frozenset()
        if day in current:
            if len(current) <= 1:
                return self
            return self._with(recurrence_days_of_week=current - {day})
        return self._with(recurrence_days_of_week=current | {day})

    @property
    def is_weekly(self) -> bool:
        return self.is_recurring and self.recurrence_type == RecurrenceType.Weekly

    def first_error(self) -> Optional[ValidationError]:
        if not self.title.strip():
            return ValidationError("title", "Event title is required")
        if not self.excerpt.strip():
            return ValidationError("excerpt", "Event description is required")
        if not isinstance(self.time, datetime):
            return ValidationError("time", "Event time is required")
        if self.church_id is None:
            return ValidationError("church_id", "Select a church for this event")
        if self.is_weekly and not self.recurrence_days_of_week:
            return ValidationError(
                "recurrence_days_of_week", "Pick at least one day for a weekly event"
            )
        if self.is_recurring:
            if self.recurrence_interval is not None and self.recurrence_interval < 1:
                return ValidationError(
                    "recurrence_interval", "Repeat interval must be at least 1"
                )
            if (
                self.recurrence_end_date is not None
                and ensure_tz(self.recurrence_end_date) < ensure_tz(self.time)
            ):
                return ValidationError(
                    "recurrence_end_date", "Recurrence must end after the event starts"
                )
        return None

    def to_fields(self) -> Dict[str, Any]:
        """Fields as the event store keeps them.

        Recurrence columns are only written for recurring events, and the
        weekday set only for weekly ones.
        """
        recurring = self.is_recurring
        return {
            "title": self.title,
            "excerpt": self.excerpt,
            "time": self.time,
            "author_name": self.author_name,
            "event_location": self.event_location,
            "image_url": self.image_url,
            "video_link": self.video_link,
            "is_recurring": recurring,
            "recurrence_type": self.recurrence_type.value
            if recurring and self.recurrence_type
            else None,
            "recurrence_interval": (self.recurrence_interval or 1) if recurring else None,
            "recurrence_end_date": self.recurrence_end_date if recurring else None,
            "recurrence_days_of_week": encode_days_of_week(self.recurrence_days_of_week)
            if self.is_weekly
            else None,
        }


class FormMode(str, Enum):
    Closed = "closed"
    Creating = "creating"
    Editing = "editing"


class EventFormController:
    """Owns the staged event of one screen and drives it to the store."""

    def __init__(
        self,
        event_store: EventStore,
        auth: Auth,
        memberships: Sequence[UserChurchMembership] = (),
        clock: Optional[Clock] = None,
        confirmation: Optional[ConfirmationPrompt] = None,
        image_picker: Optional[ImagePicker] = None,
        blob_store: Optional[BlobStore] = None,
        on_change: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.event_store = event_store
        self.auth = auth
        # A list is shared rather than copied so a caller can fill it later.
        self.memberships = memberships if isinstance(memberships, list) else list(memberships)
        self.clock = clock or SystemClock()
        self.confirmation = confirmation
        self.image_picker = image_picker
        self.blob_store = blob_store
        self.on_change = on_change

        self.mode = FormMode.Closed
        self.staged_form: Optional[StagedEventForm] = None
        self.editing_event: Optional[ChurchEvent] = None
        self.is_submitting = False

    @property
    def editing_event_id(self) -> Optional[int]:
        return self.editing_event.id if self.editing_event else None

    def _deny(self, action: str, reason: str) -> None:
        logger.warning(
            "Permission denied for %s: %s (user=%s)",
            action,
            reason,
            self.auth.current_user_id(),
        )
        raise PermissionDenied(action, reason)

    def _require_form(self) -> StagedEventForm:
        if self.staged_form is None:
            raise RuntimeError("No event form is open")
        return self.staged_form

    def close(self) -> None:
        self.mode = FormMode.Closed
        self.staged_form = None
        self.editing_event = None

    def open_create(self, church_id: Optional[int]) -> StagedEventForm:
        user_id = self.auth.current_user_id()
        if not user_id or church_id is None:
            self._deny("create", "Please sign in and select a church to create events.")
        if not can_create_in(self.memberships, church_id):
            self._deny(
                "create",
                "Only church admins and owners can create events. "
                "Contact your church administrator for access.",
            )
        self.staged_form = StagedEventForm.defaults(church_id, self.clock.now())
        self.editing_event = None
        self.mode = FormMode.Creating
        return self.staged_form

    def open_edit(self, event: ChurchEvent) -> StagedEventForm:
        user_id = self.auth.current_user_id()
        if not can_edit_event(user_id, event, self.memberships):
            self._deny(
                "edit",
                "You can only edit events that you created or if you are a "
                "church admin/owner.",
            )
        self.staged_form = StagedEventForm.from_event(event)
        self.editing_event = event
        self.mode = FormMode.Editing
        return self.staged_form

    def update_form(
        self, transition: Callable[..., StagedEventForm], *args: Any
    ) -> StagedEventForm:
        """Apply a ``StagedEventForm.with_*`` transition to the open form."""
        self.staged_form = transition(self._require_form(), *args)
        return self.staged_form

    def toggle_recurrence_day(self, day: int) -> StagedEventForm:
        return self.update_form(StagedEventForm.toggled_day, day)

    def validate(self) -> Optional[ValidationError]:
        return self._require_form().first_error()

    def _check_valid(self) -> StagedEventForm:
        form = self._require_form()
        error = form.first_error()
        if error:
            logger.info("Event form rejected: %s", error)
            raise error
        return form

    async def _store_call(self, operation: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except PersistenceError as exc:
            logger.warning("Event store %s failed: %s", operation, exc.message)
            raise
        except Exception as exc:
            logger.warning("Event store %s failed: %s", operation, exc)
            raise PersistenceError(operation, str(exc)) from exc

    async def _notify_change(self) -> None:
        if self.on_change is not None:
            await self.on_change()

    async def submit_create(self) -> Optional[int]:
        """Persist the staged event; returns its id, or ``None`` if another
        submission is still in flight."""
        if self.is_submitting:
            logger.debug("Ignoring create while a submission is in flight")
            return None
        if self.mode != FormMode.Creating:
            raise RuntimeError("No event is being created")
        user_id = self.auth.current_user_id()
        form = self._require_form()
        if not user_id or not can_create_in(self.memberships, form.church_id):
            self._deny("create", "Only church admins and owners can create events.")
        form = self._check_valid()

        fields = form.to_fields()
        fields["church_id"] = form.church_id
        fields["created_by"] = user_id
        self.is_submitting = True
        try:
            event_id = await self._store_call("insert", self.event_store.insert(fields))
        finally:
            self.is_submitting = False
        self.close()
        await self._notify_change()
        return event_id

    async def submit_update(self) -> Optional[int]:
        if self.is_submitting:
            logger.debug("Ignoring update while a submission is in flight")
            return None
        if self.mode != FormMode.Editing or self.editing_event is None:
            raise RuntimeError("No event is being edited")
        event = self.editing_event
        if not can_edit_event(self.auth.current_user_id(), event, self.memberships):
            self._deny(
                "edit",
                "You can only edit events that you created or if you are a "
                "church admin/owner.",
            )
        form = self._check_valid()

        self.is_submitting = True
        try:
            await self._store_call(
                "update", self.event_store.update(event.id, form.to_fields())
            )
        finally:
            self.is_submitting = False
        self.close()
        await self._notify_change()
        return event.id

    async def submit_delete(self, event_id: int) -> bool:
        """Delete ``event_id`` once the user confirms; ``False`` if declined."""
        if self.is_submitting:
            logger.debug("Ignoring delete while a submission is in flight")
            return False
        user_id = self.auth.current_user_id()
        if not user_id:
            self._deny("delete", "You must be signed in to delete events.")
        # Held across the confirmation prompt as well as the store call.
        self.is_submitting = True
        try:
            event = await self._store_call("get", self.event_store.get(event_id))
            if event is None:
                error = PersistenceError("delete", f"Event {event_id} not found")
                logger.warning("Cannot delete: %s", error.message)
                raise error
            if not can_edit_event(user_id, event, self.memberships):
                self._deny(
                    "delete",
                    "You can only delete events that you created or if you are a "
                    "church admin/owner.",
                )
            if self.confirmation is None:
                logger.warning("No confirmation prompt configured; not deleting %s", event_id)
                return False
            if not await self.confirmation.confirm(DELETE_PROMPT):
                return False
            await self._store_call("delete", self.event_store.delete(event_id))
        finally:
            self.is_submitting = False
        if self.mode == FormMode.Editing and self.editing_event_id == event_id:
            self.close()
        await self._notify_change()
        return True

    async def attach_image(self) -> Optional[UploadDegraded]:
        """Pick an image and upload it for the staged event.

        Returns an :class:`UploadDegraded` warning when the upload fails; the
        local URI is then kept as ``image_url``.
        """
        self._require_form()
        if self.image_picker is None:
            raise RuntimeError("No image picker configured")
        local_uri = await self.image_picker.pick_image()
        if local_uri is None or self.staged_form is None:
            return None
        try:
            user_id = self.auth.current_user_id()
            if not user_id:
                raise PermissionDenied("upload", "Not authenticated")
            if self.blob_store is None:
                raise RuntimeError("No blob store configured")
            data = read_local_image(local_uri)
            ext, content_type = identify_image(data)
            timestamp_ms = int(self.clock.now().timestamp() * 1000)
            public_url = await self.blob_store.upload(
                upload_path(user_id, timestamp_ms, ext), data, content_type
            )
        except Exception as exc:
            logger.warning("Error uploading image %s: %s", local_uri, exc)
            self.staged_form = self.staged_form.with_image_url(local_uri)
            return UploadDegraded(LOCAL_IMAGE_WARNING, local_uri)
        self.staged_form = self.staged_form.with_image_url(public_url)
        return None
