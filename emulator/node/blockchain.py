import time
from typing import Callable


class BlockClock:
    """
    Block number provider of the single-node emulator.

    There is no block production: the number simply advances by one every
    ``interval`` seconds since the clock was created.
    """

    def __init__(
        self,
        interval: float,
        start_block: int = 0,
        time_source: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0:
            raise ValueError(f"Block interval must be positive, got {interval}")
        self.interval = interval
        self.start_block = start_block
        self._time_source = time_source
        self._started_at = time_source()

    def get_current_block_number(self) -> int:
        elapsed = self._time_source() - self._started_at
        return self.start_block + int(elapsed // self.interval)
