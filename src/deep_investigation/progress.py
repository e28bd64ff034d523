"""
Progress display and log collection for investigation runs.

Both objects are constructed by the caller and handed to the engine, so
several independent runs (or tests) never share state.
"""
from __future__ import annotations

import json
import logging
import shutil
import sys
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, TextIO

from deep_investigation.models import InvestigationProgress

logger = logging.getLogger(__name__)

CLEAR_LINE = "\r\x1b[K"


class ProgressReporter:
    """
    Render investigation progress as a single, overwritten status line.

    Updates that arrive less than ``interval`` seconds after the last render
    are dropped, not queued.
    """

    def __init__(
        self,
        interval: float = 0.5,
        stream: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.stream = stream or sys.stdout
        self.clock = clock
        self._last_render: Optional[float] = None
        self.renders = 0

    def update_progress(self, progress: InvestigationProgress) -> None:
        now = self.clock()
        if self._last_render is not None and now - self._last_render < self.interval:
            return
        self._last_render = now
        self._render(progress)

    def format_progress(self, progress: InvestigationProgress, columns: Optional[int] = None) -> str:
        line = (
            f"Level {progress.current_level}/{progress.total_levels} | "
            f"Scope {progress.current_scope}/{progress.total_scope} | "
            f"Queries {progress.completed_inquiries}/{progress.total_inquiries}"
        )
        if progress.current_inquiry:
            if columns is None:
                columns = shutil.get_terminal_size().columns
            max_len = max(columns - len(line) - 5, 20)
            # Composite follow-up queries span lines, keep the status on one.
            inquiry = " ".join(progress.current_inquiry.split())
            if len(inquiry) > max_len:
                inquiry = inquiry[: max_len - 3] + "..."
            line += f" | Current: {inquiry}"
        return line

    def _render(self, progress: InvestigationProgress) -> None:
        self.stream.write(CLEAR_LINE + self.format_progress(progress))
        self.stream.flush()
        self.renders += 1

    def finish(self) -> None:
        """Move past the status line once the run is over."""
        if self.renders:
            self.stream.write("\n")
            self.stream.flush()


class OutputManager:
    """
    Log collector for one investigation run.

    Every message is forwarded to ``logger`` and kept, timestamped, in a
    bounded buffer that the caller can read back.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, buffer_limit: int = 1000):
        self.logger = logger or logging.getLogger("deep_investigation")
        self.buffer_limit = buffer_limit
        self._buffer: List[str] = []

    @staticmethod
    def _format(arg) -> str:
        if isinstance(arg, str):
            return arg
        if isinstance(arg, BaseException):
            return f"{type(arg).__name__}: {arg}"
        try:
            return json.dumps(arg, indent=2, default=str)
        except (TypeError, ValueError):
            return repr(arg)

    def log(self, *args, level: int = logging.INFO) -> str:
        message = " ".join(self._format(arg) for arg in args)
        timestamp = datetime.now(timezone.utc).isoformat()
        self._buffer.append(f"[{timestamp}] {message}")
        if len(self._buffer) > self.buffer_limit:
            del self._buffer[: len(self._buffer) - self.buffer_limit]
        self.logger.log(level, message)
        return message

    def get_buffer(self) -> List[str]:
        return list(self._buffer)

    def clear_buffer(self) -> None:
        self._buffer.clear()
