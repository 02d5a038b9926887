"""
Choosing which characters of a document to mark for its modification ranges.

Marking whole ranges gets noisy fast, so only the first few non-whitespace
characters of a file's modifications are marked, in document order, each
mark carrying the message of the commit that added it.
"""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .models import ModificationRange

DEFAULT_CHAR_BUDGET = 5


@dataclass(frozen=True)
class HighlightSpan:
    """A marked region of a document, in absolute character offsets."""
    start_offset: int
    end_offset: int
    commit_message: str

    @property
    def tooltip(self) -> str:
        return f"Commit message: {self.commit_message}"


def _line_bounds(text: str) -> List[Tuple[int, int]]:
    """(start, end) offsets of each line, end excluding the line break.

    Lines end at "\\n" only, the way git numbers them; a "\\r" before it is
    not part of the line.
    """
    bounds = []
    offset = 0
    for line in text.split("\n"):
        content = line[:-1] if line.endswith("\r") else line
        bounds.append((offset, offset + len(content)))
        offset += len(line) + 1
    return bounds


def clamp_range(line_bounds: List[Tuple[int, int]], modification: ModificationRange) -> Tuple[int, int]:
    """
    Convert a range to absolute offsets, kept within its line.

    Args:
        line_bounds: Output of _line_bounds for the document
        modification: Range with a 1-based start_line inside the document

    Returns:
        Tuple[int, int]: (start_offset, end_offset), possibly empty
    """
    line_start, line_end = line_bounds[modification.start_line - 1]
    start = min(line_start + modification.start_char, line_end)
    end = min(start + modification.length, line_end)
    return min(start, end), end


def plan_highlights(text: str, ranges: Iterable[ModificationRange],
                    char_budget: int = DEFAULT_CHAR_BUDGET) -> List[HighlightSpan]:
    """
    Pick the spans to mark in a document.

    Ranges are visited by (start_line, start_char). Within each range, runs
    of non-whitespace characters become marks until char_budget characters
    have been marked across all ranges. Ranges pointing past the end of the
    document (the file may have changed since the commit) are skipped.

    Args:
        text: Current content of the document
        ranges: The document's modification ranges
        char_budget: Maximum number of non-whitespace characters to mark

    Returns:
        List[HighlightSpan]: Marks in document order
    """
    bounds = _line_bounds(text)
    highlights: List[HighlightSpan] = []
    marked = 0

    for modification in sorted(ranges, key=lambda r: (r.start_line, r.start_char)):
        if marked >= char_budget:
            break
        if not 1 <= modification.start_line <= len(bounds):
            continue

        start, end = clamp_range(bounds, modification)
        run_start = None
        for offset in range(start, end):
            if text[offset].isspace():
                if run_start is not None:
                    highlights.append(HighlightSpan(run_start, offset, modification.commit_message))
                    run_start = None
                continue
            if run_start is None:
                run_start = offset
            marked += 1
            if marked == char_budget:
                highlights.append(HighlightSpan(run_start, offset + 1, modification.commit_message))
                run_start = None
                break

        if run_start is not None:
            highlights.append(HighlightSpan(run_start, end, modification.commit_message))

    return highlights
