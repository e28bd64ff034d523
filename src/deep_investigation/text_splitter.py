"""
Sentence-aware text segmentation.

Splits long content into bounded chunks that prefer natural boundaries
(a period or a newline, then whitespace) so that per-item content can be
kept under a model's context budget.
"""
from __future__ import annotations

from typing import List

BREAK_CHARS = (".", "\n")


class RecursiveCharacterTextSplitter:
    """Split text into bounded chunks with overlap.

    A chunk ends after the last ``.`` or newline in the window
    ``[start, start + chunk_size]``, so it holds at most ``chunk_size``
    characters plus a terminator that lands exactly on the window edge.
    Without one it ends on the last whitespace, and only a window with
    neither is cut mid-word.

    Args:
        chunk_size: Characters per window.
        chunk_overlap: Approximate number of characters shared by adjacent chunks.
    """

    def __init__(self, chunk_size: int, chunk_overlap: int = 0):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must be non-negative")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split_text(self, content: str) -> List[str]:
        """
        Split ``content`` into trimmed chunks.

        Content no longer than ``chunk_size`` is returned as a single,
        untouched chunk.

        Args:
            content: The text to split.

        Returns:
            List of non-empty chunks in document order.
        """
        if len(content) <= self.chunk_size:
            return [content]

        segments: List[str] = []
        length = len(content)
        start = 0
        previous_end = 0

        while start < length:
            end = start + self.chunk_size
            if end >= length:
                end = length
            else:
                end = self._find_cut(content, start, end, previous_end)

            segment = content[start:end].strip()
            if segment:
                segments.append(segment)
            if end >= length:
                break

            previous_end = end
            start = self._next_start(content, start, end)

        return segments

    def _find_cut(self, content: str, start: int, window_end: int, previous_end: int) -> int:
        # Only cuts that add content beyond the previous chunk count.
        lower = max(start + 1, previous_end)
        natural_break = max(content.rfind(ch, lower, window_end + 1) for ch in BREAK_CHARS)
        if natural_break >= lower:
            return natural_break + 1

        # No sentence break in the window: end on a word boundary, else hard cut.
        for i in range(window_end, max(start, previous_end), -1):
            if content[i].isspace():
                return i
        return window_end

    def _next_start(self, content: str, start: int, end: int) -> int:
        candidate = end - self.chunk_overlap
        if candidate <= start or candidate >= end:
            return end
        if content[candidate - 1].isspace():
            return candidate
        # Snap forward past the next whitespace so a chunk never opens mid-word.
        for i in range(candidate, end):
            if content[i].isspace():
                return i + 1
        return end
