"""
Aggregated, read-only view of the modifications in a commit window.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple

from .models import FileModifications, ModificationRange
from .paths import normalize_path


def merge_modifications(existing: FileModifications, incoming: FileModifications) -> FileModifications:
    """
    Append every span of incoming to the list of the same file in existing.

    Keys missing from existing are created, including keys whose incoming
    list is empty. existing is modified in place and returned.

    Args:
        existing: Accumulated modifications, mutated
        incoming: Modifications of the next processed commit

    Returns:
        The existing mapping
    """
    for file_path, ranges in incoming.items():
        existing.setdefault(file_path, []).extend(ranges)
    return existing


class ModificationIndex:
    """
    Immutable snapshot of file path -> modification ranges.

    A published index is never changed. Refreshing builds a new index and
    swaps the reference, so a reader holding one always sees a consistent
    snapshot.

    Ranges of one file keep the order in which commits were processed,
    which is oldest pair first.
    """

    __slots__ = ("_files",)

    def __init__(self, files: Mapping[str, Iterable[ModificationRange]]):
        frozen = {normalize_path(path): tuple(ranges) for path, ranges in files.items()}
        self._files: Mapping[str, Tuple[ModificationRange, ...]] = MappingProxyType(frozen)

    @classmethod
    def empty(cls) -> "ModificationIndex":
        return cls({})

    @classmethod
    def build(cls, commit_results: Iterable[FileModifications]) -> "ModificationIndex":
        """
        Build an index from per-commit parse results.

        Args:
            commit_results: Parse results in processing order, oldest commit first

        Returns:
            ModificationIndex: The aggregated snapshot
        """
        merged: FileModifications = {}
        for result in commit_results:
            merge_modifications(merged, result)
        return cls(merged)

    def query(self, path: str) -> List[ModificationRange]:
        """
        Get the modification ranges of a file.

        Args:
            path: Repository-relative path, either separator style

        Returns:
            List[ModificationRange]: A new list of the file's ranges in
            processing order; empty if the file is unknown
        """
        if not path:
            return []
        return list(self._files.get(normalize_path(path), ()))

    def sorted_query(self, path: str) -> List[ModificationRange]:
        """Like query, ordered by (start_line, start_char). Ties keep processing order."""
        return sorted(self.query(path), key=lambda r: (r.start_line, r.start_char))

    def files(self) -> List[str]:
        return list(self._files.keys())

    def total_ranges(self) -> int:
        return sum(len(ranges) for ranges in self._files.values())

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {path: [r.to_dict() for r in ranges] for path, ranges in self._files.items()}

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __repr__(self) -> str:
        return f"ModificationIndex(files={len(self)}, ranges={self.total_ranges()})"
