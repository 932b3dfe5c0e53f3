from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

from .calendar import CalendarDay
from .events import ChurchEvent
from .ports import PanelAnimator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Closed:
    pass


@dataclass(frozen=True)
class Open:
    selected_date: date
    day_events: Tuple[ChurchEvent, ...]


DaySelectionState = Union[Closed, Open]


class DaySelectionController:
    """Tracks the selected calendar day and its detail panel.

    Closing is two-phase: :meth:`close` only starts the close animation, and
    the selection is cleared when the animator reports that the animation
    finished.  Completions that belong to a superseded close are ignored.
    """

    def __init__(self, animator: PanelAnimator):
        self.animator = animator
        self.state: DaySelectionState = Closed()
        self._generation = 0
        self._closing: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return isinstance(self.state, Open)

    @property
    def is_closing(self) -> bool:
        return self._closing is not None

    def select_day(self, day: CalendarDay) -> Open:
        self._generation += 1
        self._closing = None
        self.state = Open(selected_date=day.date, day_events=tuple(day.events))
        self.animator.animate_open()
        return self.state

    def close(self) -> None:
        if not self.is_open or self.is_closing:
            return
        generation = self._generation
        self._closing = generation

        def on_complete(finished: bool) -> None:
            self._finish_close(generation, finished)

        self.animator.animate_close(on_complete)

    def _finish_close(self, generation: int, finished: bool) -> None:
        if self._closing != generation or generation != self._generation:
            logger.debug("Ignoring stale close completion for selection %d", generation)
            return
        self._closing = None
        if not finished:
            return
        self.state = Closed()
