"""Debounced persistence of the seating state."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from . import config
from .errors import ServiceError
from .scheduling import Scheduler, TimerHandle
from .serialization import state_to_payload
from .state import SeatingState

logger = logging.getLogger(__name__)


class AutoSaver:
    """Save the latest state a fixed delay after the last change.

    Each ``schedule`` call replaces the pending save. A failed save is logged
    and kept in ``last_error``; the next scheduled save supersedes it.
    """

    def __init__(
        self,
        save: Callable[[dict], object],
        scheduler: Scheduler,
        delay: Optional[float] = None,
    ) -> None:
        self.save = save
        self.scheduler = scheduler
        self.delay = config.AUTOSAVE_DELAY_SECONDS if delay is None else delay
        self.saves = 0
        self.last_error: Optional[ServiceError] = None
        self._handle: Optional[TimerHandle] = None
        self._state: Optional[SeatingState] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, state: SeatingState) -> None:
        self.cancel()
        self._state = state
        self._handle = self.scheduler.call_later(self.delay, self.flush)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Save now; returns ``False`` when the save failed or nothing was pending."""
        self._handle = None
        state, self._state = self._state, None
        if state is None:
            return False
        try:
            self.save(state_to_payload(state))
        except ServiceError as exc:
            self.last_error = exc
            logger.error("Autosave failed: %s", exc)
            return False
        self.last_error = None
        self.saves += 1
        logger.debug("Autosaved %d table(s)", len(state.tables))
        return True
