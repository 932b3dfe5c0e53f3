import asyncio
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from sqlmodel import SQLModel

# Ensure project root on path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from churchevents.database import make_engine
from churchevents.errors import PersistenceError
from churchevents.events import SqlEventStore
from churchevents.memberships import SqlMembershipStore
from churchevents.recurrence import RecurrenceType


UTC = ZoneInfo("UTC")


@pytest.fixture(autouse=True)
def configure_tz(monkeypatch):
    monkeypatch.setenv("CHURCHEVENTS_TZ", "UTC")


@pytest.fixture
def stores(tmp_path):
    engine = make_engine(str(tmp_path / "events.db"))
    SQLModel.metadata.create_all(engine)
    memberships = SqlMembershipStore(engine)
    anne = memberships.create_church("St. Anne")
    luke = memberships.create_church("St. Luke")
    return SqlEventStore(engine), anne.id, luke.id


def _fields(church_id, title, when, **kwargs):
    data = dict(
        church_id=church_id,
        title=title,
        excerpt="Details",
        time=when,
        created_by="alice",
        is_recurring=False,
        recurrence_type=None,
        recurrence_interval=None,
        recurrence_end_date=None,
        recurrence_days_of_week=None,
    )
    data.update(kwargs)
    return data


def test_insert_and_query_sorted_by_time(stores):
    store, anne, luke = stores
    later = asyncio.run(
        store.insert(_fields(anne, "Potluck", datetime(2024, 3, 3, 12, 0, tzinfo=UTC)))
    )
    earlier = asyncio.run(
        store.insert(
            _fields(
                anne,
                "Choir",
                datetime(2024, 3, 1, 19, 0, tzinfo=UTC),
                is_recurring=True,
                recurrence_type="weekly",
                recurrence_interval=1,
                recurrence_days_of_week=135,
            )
        )
    )
    asyncio.run(store.insert(_fields(luke, "Elsewhere", datetime(2024, 3, 2, tzinfo=UTC))))

    events = asyncio.run(store.query_by_church(anne))

    assert [e.id for e in events] == [earlier, later]
    choir = events[0]
    assert choir.recurrence_type == RecurrenceType.Weekly
    assert choir.recurrence_days_of_week == {1, 3, 5}
    assert choir.time == datetime(2024, 3, 1, 19, 0, tzinfo=UTC)
    assert choir.church.name == "St. Anne"
    assert choir.created_at is not None
    assert choir.updated_at is None


def test_update_changes_fields_and_timestamp(stores):
    store, anne, _ = stores
    event_id = asyncio.run(
        store.insert(_fields(anne, "Vigil", datetime(2024, 3, 30, 20, 0, tzinfo=UTC)))
    )

    asyncio.run(store.update(event_id, {"title": "Easter Vigil", "recurrence_type": None}))
    event = asyncio.run(store.get(event_id))

    assert event.title == "Easter Vigil"
    assert event.updated_at is not None


def test_update_rejects_unknown_fields(stores):
    store, anne, _ = stores
    event_id = asyncio.run(
        store.insert(_fields(anne, "Vigil", datetime(2024, 3, 30, 20, 0, tzinfo=UTC)))
    )
    with pytest.raises(PersistenceError):
        asyncio.run(store.update(event_id, {"church_id": 99}))


def test_missing_events(stores):
    store, _, _ = stores
    assert asyncio.run(store.get(404)) is None
    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(store.update(404, {"title": "x"}))
    assert "not found" in excinfo.value.message
    with pytest.raises(PersistenceError):
        asyncio.run(store.delete(404))


def test_delete_removes_event(stores):
    store, anne, _ = stores
    event_id = asyncio.run(
        store.insert(_fields(anne, "Vigil", datetime(2024, 3, 30, 20, 0, tzinfo=UTC)))
    )
    asyncio.run(store.delete(event_id))
    assert asyncio.run(store.query_by_church(anne)) == []


def test_insert_into_unknown_church_fails(stores):
    store, _, _ = stores
    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(store.insert(_fields(999, "Orphan", datetime(2024, 1, 1, tzinfo=UTC))))
    assert excinfo.value.operation == "insert"
