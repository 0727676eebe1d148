"""Frame timing and progress reporting for batch extraction"""

import logging
import time
from collections import deque
from typing import Deque, Optional


class FrameTimer:
    """Measures per-frame processing times over a sliding window."""

    def __init__(self, window_size: int = 60):
        self._window_size = window_size
        self._frame_times: Deque[float] = deque(maxlen=window_size)
        self._start_time: Optional[float] = None
        self._last_frame_time: Optional[float] = None
        self._total_time = 0.0
        self._total_frames = 0

    def start(self) -> None:
        """Start timing a frame."""
        self._start_time = time.perf_counter()

    def stop(self) -> float:
        """Stop timing and return elapsed time."""
        if self._start_time is None:
            return 0.0

        elapsed = time.perf_counter() - self._start_time
        self._frame_times.append(elapsed)
        self._last_frame_time = elapsed
        self._total_time += elapsed
        self._total_frames += 1
        self._start_time = None
        return elapsed

    @property
    def last_frame_time(self) -> float:
        """Last frame processing time in seconds."""
        return self._last_frame_time or 0.0

    @property
    def average_frame_time(self) -> float:
        """Average frame processing time over window."""
        if not self._frame_times:
            return 0.0
        return sum(self._frame_times) / len(self._frame_times)

    @property
    def total_time(self) -> float:
        """Time spent in all timed frames since the last reset."""
        return self._total_time

    @property
    def frame_count(self) -> int:
        return self._total_frames

    def reset(self) -> None:
        """Reset all timing data."""
        self._frame_times.clear()
        self._start_time = None
        self._last_frame_time = None
        self._total_time = 0.0
        self._total_frames = 0


class ProgressMeter:
    """
    Tracks completion of a batch stage and logs it at a throttled rate.

    Progress is reported in whole percent steps; a message is logged
    only when the percentage advances by at least ``step_percent``.
    """

    def __init__(self, logger: logging.Logger, label: str, step_percent: int = 10):
        self._logger = logger
        self._label = label
        self._step = max(1, step_percent)
        self._last_reported = -self._step
        self._fraction = 0.0

    def update(self, done: int, total: int) -> float:
        """Record ``done`` of ``total`` units finished; returns the fraction."""
        if total <= 0:
            self._fraction = 1.0
        else:
            self._fraction = min(1.0, max(0.0, done / total))

        percent = int(self._fraction * 100)
        if percent - self._last_reported >= self._step:
            self._last_reported = percent
            self._logger.debug(f"{self._label}: {percent}%")

        return self._fraction

    def finish(self) -> None:
        """Mark the stage complete."""
        self._fraction = 1.0
        if self._last_reported < 100:
            self._last_reported = 100
            self._logger.debug(f"{self._label}: 100%")

    @property
    def fraction(self) -> float:
        return self._fraction
