"""Data model shared by the parser, the index and the query surface."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List


@dataclass(frozen=True)
class ModificationRange:
    """
    One added span of text, attributed to the commit that introduced it.

    Attributes:
        start_line: 1-based line number in the post-change file
        start_char: 0-based character offset of the span within that line
        length: Number of added characters (always > 0)
        commit_message: Full message of the commit that introduced the span
    """
    start_line: int
    start_char: int
    length: int
    commit_message: str

    @property
    def end_char(self) -> int:
        """Exclusive end offset of the span within its line."""
        return self.start_char + self.length

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Normalized repository-relative path -> spans, in commit processing order
FileModifications = Dict[str, List[ModificationRange]]
