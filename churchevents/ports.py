"""Collaborator contracts the event engine depends on.

Persistence, identity, image handling, confirmation dialogs and panel
animation all live outside this package; controllers only see these
protocols.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from .events import ChurchEvent
from .memberships import UserChurchMembership
from .time_utils import get_now


class EventStore(Protocol):
    async def insert(self, fields: Dict[str, Any]) -> int: ...

    async def update(self, event_id: int, fields: Dict[str, Any]) -> None: ...

    async def delete(self, event_id: int) -> None: ...

    async def get(self, event_id: int) -> Optional[ChurchEvent]: ...

    async def query_by_church(self, church_id: int) -> List[ChurchEvent]:
        """Events of ``church_id`` sorted by ``time`` ascending."""
        ...


class MembershipStore(Protocol):
    async def list_churches_for_user(self, user_id: str) -> List[UserChurchMembership]: ...


class Auth(Protocol):
    def current_user_id(self) -> Optional[str]: ...


class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``path`` and return its public URL."""
        ...


class ImagePicker(Protocol):
    async def pick_image(self) -> Optional[str]:
        """Return a local URI, or ``None`` if the user cancelled."""
        ...


class ConfirmationPrompt(Protocol):
    async def confirm(self, message: str) -> bool: ...


class PanelAnimator(Protocol):
    def animate_open(self) -> None: ...

    def animate_close(self, on_complete: Callable[[bool], None]) -> None:
        """Start the close transition and call ``on_complete(finished)`` when
        it ends; ``finished`` is ``False`` if it was interrupted."""
        ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return get_now()


class StaticAuth:
    """Identity fixed at construction, e.g. from a request header."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self.user_id
