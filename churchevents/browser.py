from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import List, Optional

from .calendar import CalendarDay, change_month, generate_calendar_data
from .day_selection import DaySelectionController
from .events import ChurchEvent
from .forms import EventFormController
from .memberships import UserChurchMembership, can_create_in, membership_for
from .ports import (
    Auth,
    BlobStore,
    Clock,
    ConfirmationPrompt,
    EventStore,
    ImagePicker,
    MembershipStore,
    PanelAnimator,
    SystemClock,
)
from .time_utils import first_of_month, local_date


logger = logging.getLogger(__name__)


class CalendarView(str, Enum):
    Month = "month"
    List = "list"


def filter_events(events: List[ChurchEvent], query: str) -> List[ChurchEvent]:
    """Case-insensitive search over title, description and author."""
    query = query.strip().lower()
    if not query:
        return list(events)
    return [
        e
        for e in events
        if query in e.title.lower()
        or query in (e.excerpt or "").lower()
        or query in (e.author_name or "").lower()
    ]


class ChurchEventsBrowser:
    """State behind the church events screen.

    Loads the user's churches, keeps the selected church's events, and hands
    out form and day-selection controllers wired to refresh it.
    """

    def __init__(
        self,
        event_store: EventStore,
        membership_store: MembershipStore,
        auth: Auth,
        clock: Optional[Clock] = None,
        church_id: Optional[int] = None,
    ):
        self.event_store = event_store
        self.membership_store = membership_store
        self.auth = auth
        self.clock = clock or SystemClock()

        self.memberships: List[UserChurchMembership] = []
        self.selected_church_id = church_id
        self.events: List[ChurchEvent] = []
        self.search_query = ""
        self.view = CalendarView.List
        self.current_month: date = first_of_month(self.clock.now())

    @property
    def can_create(self) -> bool:
        if not self.auth.current_user_id():
            return False
        return can_create_in(self.memberships, self.selected_church_id)

    @property
    def selected_church(self) -> Optional[UserChurchMembership]:
        return membership_for(self.memberships, self.selected_church_id)

    @property
    def filtered_events(self) -> List[ChurchEvent]:
        return filter_events(self.events, self.search_query)

    async def load_churches(self) -> List[UserChurchMembership]:
        # Updated in place so form controllers handed out earlier see the result.
        user_id = self.auth.current_user_id()
        if not user_id:
            self.memberships.clear()
            return self.memberships
        self.memberships[:] = await self.membership_store.list_churches_for_user(user_id)
        if self.selected_church_id is None and self.memberships:
            await self.select_church(self.memberships[0].church_id)
        elif self.selected_church_id is not None:
            await self.refresh()
        return self.memberships

    async def select_church(self, church_id: Optional[int]) -> List[ChurchEvent]:
        self.selected_church_id = church_id
        return await self.refresh()

    async def refresh(self) -> List[ChurchEvent]:
        if self.selected_church_id is None:
            self.events = []
            return self.events
        self.events = await self.event_store.query_by_church(self.selected_church_id)
        logger.debug(
            "Loaded %d events for church %s", len(self.events), self.selected_church_id
        )
        return self.events

    def set_search(self, query: str) -> None:
        self.search_query = query

    def set_view(self, view: CalendarView | str) -> None:
        self.view = CalendarView(view)

    def change_month(self, direction: int) -> date:
        self.current_month = change_month(self.current_month, direction)
        return self.current_month

    def calendar_days(self) -> List[CalendarDay]:
        return generate_calendar_data(
            self.current_month, self.events, today=local_date(self.clock.now())
        )

    def form_controller(
        self,
        confirmation: Optional[ConfirmationPrompt] = None,
        image_picker: Optional[ImagePicker] = None,
        blob_store: Optional[BlobStore] = None,
    ) -> EventFormController:
        return EventFormController(
            self.event_store,
            self.auth,
            memberships=self.memberships,
            clock=self.clock,
            confirmation=confirmation,
            image_picker=image_picker,
            blob_store=blob_store,
            on_change=self._on_change,
        )

    async def _on_change(self) -> None:
        await self.refresh()

    def day_selection(self, animator: PanelAnimator) -> DaySelectionController:
        return DaySelectionController(animator)
