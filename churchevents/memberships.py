from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence

from sqlmodel import Field, Session, SQLModel, select
from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceError


logger = logging.getLogger(__name__)


class Role(str, Enum):
    Member = "member"
    Admin = "admin"
    Owner = "owner"

    @classmethod
    def parse(cls, value: str | Role | None) -> Optional[Role]:
        """Normalize a stored role string; unknown or empty roles give ``None``."""
        if value is None or isinstance(value, Role):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


CREATE_ROLES = {Role.Admin, Role.Owner}


def has_create_permission(role: str | Role | None) -> bool:
    """Return ``True`` if ``role`` may create, edit and delete church events."""
    return Role.parse(role) in CREATE_ROLES


class Church(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str


class ChurchMember(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    church_id: int = Field(foreign_key="church.id", index=True)
    role: str = Role.Member.value


class UserChurchMembership(SQLModel):
    church_id: int
    church_name: str
    role: Optional[Role] = None

    @property
    def can_create(self) -> bool:
        return has_create_permission(self.role)


def membership_for(
    memberships: Sequence[UserChurchMembership], church_id: int | None
) -> Optional[UserChurchMembership]:
    if church_id is None:
        return None
    return next((m for m in memberships if m.church_id == church_id), None)


def can_create_in(
    memberships: Sequence[UserChurchMembership], church_id: int | None
) -> bool:
    membership = membership_for(memberships, church_id)
    return membership is not None and membership.can_create


def can_edit_event(
    user_id: str | None, event, memberships: Sequence[UserChurchMembership]
) -> bool:
    """Creators may always edit their own events; admins and owners any event
    of their church."""
    if not user_id:
        return False
    if event.created_by == user_id:
        return True
    return can_create_in(memberships, event.church_id)


class SqlMembershipStore:
    """Church and membership lookups backed by :class:`ChurchMember` rows."""

    def __init__(self, engine):
        self.engine = engine

    def create_church(self, name: str) -> Church:
        with Session(self.engine) as session:
            church = Church(name=name)
            session.add(church)
            session.commit()
            session.refresh(church)
            return church

    def add_member(self, user_id: str, church_id: int, role: str | Role) -> None:
        role_value = role.value if isinstance(role, Role) else role
        with Session(self.engine) as session:
            existing = session.exec(
                select(ChurchMember).where(
                    (ChurchMember.user_id == user_id)
                    & (ChurchMember.church_id == church_id)
                )
            ).first()
            if existing:
                existing.role = role_value
                session.add(existing)
            else:
                session.add(
                    ChurchMember(user_id=user_id, church_id=church_id, role=role_value)
                )
            session.commit()

    async def list_churches_for_user(self, user_id: str) -> List[UserChurchMembership]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(ChurchMember, Church)
                    .join(Church, Church.id == ChurchMember.church_id)
                    .where(ChurchMember.user_id == user_id)
                    .order_by(ChurchMember.id)
                ).all()
        except SQLAlchemyError as exc:
            logger.warning("Failed to load churches for %s: %s", user_id, exc)
            raise PersistenceError("list_churches", str(exc)) from exc
        memberships = []
        for member, church in rows:
            role = Role.parse(member.role)
            if role is None:
                logger.warning(
                    "Unknown role %r for user %s in church %s",
                    member.role,
                    user_id,
                    church.id,
                )
            memberships.append(
                UserChurchMembership(church_id=church.id, church_name=church.name, role=role)
            )
        return memberships
