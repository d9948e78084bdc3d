import time
from typing import Callable, Optional
from pydantic import BaseModel, ConfigDict, Field


class TimerSource(BaseModel):
    """
    Turns a monotonic clock into whole-interval ticks.

    Nothing runs in the background: the owner polls `due()` between events
    and applies the returned number of ticks to the game state. Leftover
    fractions of an interval carry over to the next poll.

    Attributes:
        interval: Seconds per tick (1 Hz by default)
        clock: Monotonic time source, injectable for tests
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    interval: float = Field(default=1.0, gt=0)
    clock: Callable[[], float] = time.monotonic
    _last: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._last is not None

    def start(self) -> None:
        """Start (or restart) counting from now."""
        self._last = self.clock()

    def stop(self) -> None:
        """Stop counting; time until the next start() is never delivered."""
        self._last = None

    def due(self) -> int:
        """Number of ticks elapsed since the last poll."""
        if self._last is None:
            return 0
        now = self.clock()
        ticks = int((now - self._last) // self.interval)
        if ticks > 0:
            self._last += ticks * self.interval
        return ticks
