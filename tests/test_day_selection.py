import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Ensure project root on path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from churchevents.calendar import generate_calendar_data
from churchevents.day_selection import Closed, DaySelectionController, Open
from churchevents.events import ChurchEvent
from tests.fakes import FakeAnimator


@pytest.fixture(autouse=True)
def configure_tz(monkeypatch):
    monkeypatch.setenv("CHURCHEVENTS_TZ", "UTC")


def _days():
    service = ChurchEvent(
        id=1,
        title="Sunday Service",
        time=datetime(2024, 2, 11, 10, 0, tzinfo=ZoneInfo("UTC")),
        church_id=1,
    )
    days = generate_calendar_data(date(2024, 2, 1), [service], today=date(2024, 2, 1))
    return {d.date: d for d in days}


def test_select_day_opens_panel_with_events():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    day = _days()[date(2024, 2, 11)]

    state = controller.select_day(day)

    assert isinstance(state, Open)
    assert state.selected_date == date(2024, 2, 11)
    assert [e.title for e in state.day_events] == ["Sunday Service"]
    assert animator.opened == 1


def test_close_clears_selection_after_animation():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    controller.select_day(_days()[date(2024, 2, 11)])

    controller.close()
    assert controller.is_open
    assert controller.is_closing

    animator.close_callbacks[0](True)
    assert controller.state == Closed()
    assert not controller.is_closing


def test_interrupted_close_keeps_selection():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    controller.select_day(_days()[date(2024, 2, 11)])

    controller.close()
    animator.close_callbacks[0](False)

    assert controller.is_open
    assert not controller.is_closing
    controller.close()
    assert len(animator.close_callbacks) == 2


def test_close_while_closing_is_ignored():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    controller.select_day(_days()[date(2024, 2, 11)])

    controller.close()
    controller.close()

    assert len(animator.close_callbacks) == 1


def test_close_when_nothing_selected_is_noop():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    controller.close()
    assert animator.close_callbacks == []
    assert controller.state == Closed()


def test_stale_completion_does_not_close_new_selection():
    animator = FakeAnimator()
    controller = DaySelectionController(animator)
    days = _days()
    controller.select_day(days[date(2024, 2, 11)])
    controller.close()

    controller.select_day(days[date(2024, 2, 12)])
    animator.close_callbacks[0](True)

    assert controller.state.selected_date == date(2024, 2, 12)
    assert controller.state.day_events == ()
    assert not controller.is_closing
