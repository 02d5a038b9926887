"""
Parsing of git diff output into per-file modification spans.

This module turns the raw text of one commit's diff into a mapping from
repository-relative file path to the spans of text that commit added.

The main contract:
- Inputs: diff text produced by ``git diff`` (word-diff or unified format),
  and the message of the commit that produced it
- Process: a single pass over the lines with a three-state scanner
  (outside any file, inside a file header, inside a hunk)
- Output: {file_path: [ModificationRange, ...]} where every touched file is
  a key, even when the commit added nothing to it
"""

import re
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from unidiff.constants import (
    LINE_TYPE_ADDED,
    LINE_TYPE_NO_NEWLINE,
    LINE_TYPE_REMOVED,
    RE_HUNK_HEADER,
)

from .models import FileModifications, ModificationRange
from .paths import normalize_path

logger = logging.getLogger(__name__)

FILE_DIFF_PREFIX = "diff --git"
HUNK_HEADER_PREFIX = "@@"
DEFAULT_LINE_NUMBER = 0

ADDED_OPEN, ADDED_CLOSE = "{+", "+}"
DELETED_OPEN, DELETED_CLOSE = "[-", "-]"

# Paths with unusual characters are C-quoted by git: "b/caf\303\251.md"
RE_FILE_DIFF_HEADER = re.compile(
    r'^diff --git (?:"a/(?:[^"\\]|\\.)*"|a/.+?) '
    r'(?:"b/(?P<quoted>(?:[^"\\]|\\.)*)"|b/(?P<plain>.+))$'
)
RE_ADDED_CONTENT = re.compile(r"\{\+(.+?)\+\}")
RE_DELETED_CONTENT = re.compile(r"\[-(.+?)-\]")


def unquote_git_path(quoted: str) -> str:
    """
    Undo git's C-style path quoting (octal byte escapes, \\", \\\\, \\t, ...).

    Args:
        quoted: Path text found between the double quotes

    Returns:
        The path as UTF-8 text
    """
    raw = quoted.encode("latin-1", "backslashreplace").decode("unicode_escape")
    try:
        return raw.encode("latin-1").decode("utf-8", "replace")
    except UnicodeEncodeError:
        # Already text (core.quotePath=false): nothing left to reassemble
        return raw


class DiffFormat(str, Enum):
    """Rendering of the diff text handed to the parser."""
    WORD = "word"
    UNIFIED = "unified"


class ParserState(Enum):
    OUTSIDE = "outside"
    IN_FILE_HEADER = "in_file_header"
    IN_HUNK = "in_hunk"


class DiffParser:
    """
    Best-effort, single-pass parser for ``git diff`` output.

    The parser never raises on a single bad line. Unparseable file headers
    make it ignore lines until the next file section, and unparseable hunk
    headers reset the running line counter to 0.

    Two renderings are supported:

    - ``DiffFormat.WORD`` (``git diff --word-diff=plain``): additions are
      wrapped in ``{+...+}`` and deletions in ``[-...-]`` inline. Each addition
      is reported at its offset in the post-change line, i.e. with every
      deletion and every marker removed.
    - ``DiffFormat.UNIFIED`` (plain ``git diff``): every ``+`` line inside a
      hunk is reported as one span covering the whole line.

    Only additions produce ranges. Deletions still matter for the offsets
    within a line, but never show up in the output.

    Known limitation of the word rendering: a deleted blank line, or a line
    whose whole content was deleted down to whitespace, prints as an empty
    line, indistinguishable from an unchanged blank line. The counter then
    advances for it, and later ranges in the same hunk land one line low.
    Use ``DiffFormat.UNIFIED`` where exact line numbers matter more than
    intra-line offsets.

    Usage:
        >>> parser = DiffParser()
        >>> result = parser.parse(diff_text, "Fix off-by-one in pager")
        >>> result["src/pager.py"]
        [ModificationRange(start_line=12, start_char=8, length=5, commit_message='Fix off-by-one in pager')]
    """

    def __init__(self, diff_format: DiffFormat = DiffFormat.WORD, record_whitespace_additions: bool = True):
        """
        Args:
            diff_format: Rendering of the diff text that will be parsed
            record_whitespace_additions: Whether additions made only of
                whitespace produce ranges
        """
        self.diff_format = DiffFormat(diff_format)
        self.record_whitespace_additions = record_whitespace_additions
        self.logger = logging.getLogger(__name__)

    def parse(self, diff_text: str, commit_message: str) -> FileModifications:
        """
        Parse one commit's diff into modification ranges per file.

        Args:
            diff_text: Raw output of ``git diff`` between a commit and its parent
            commit_message: Full message of the newer commit

        Returns:
            Dict[str, List[ModificationRange]]: Normalized file path to the spans
            added in that file, in the order they appear in the diff. Files that
            were touched without additions map to an empty list.
        """
        modifications: FileModifications = {}
        state = ParserState.OUTSIDE
        current_file: Optional[str] = None
        current_line = DEFAULT_LINE_NUMBER

        for raw_line in diff_text.split("\n"):
            line = raw_line[:-1] if raw_line.endswith("\r") else raw_line

            if line.startswith(FILE_DIFF_PREFIX):
                current_file = self.get_file_name(line)
                if current_file is None:
                    self.logger.debug(f"Skipping unrecognised file header: {line!r}")
                    state = ParserState.OUTSIDE
                    continue
                modifications.setdefault(current_file, [])
                state = ParserState.IN_FILE_HEADER

            elif state is ParserState.OUTSIDE:
                continue

            elif line.startswith(HUNK_HEADER_PREFIX):
                current_line = self.parse_new_line_number(line)
                state = ParserState.IN_HUNK

            elif state is ParserState.IN_HUNK:
                ranges, advance = self._process_hunk_line(line, current_line, commit_message)
                modifications[current_file].extend(ranges)
                current_line += advance

        return modifications

    @staticmethod
    def get_file_name(line: str) -> Optional[str]:
        """
        Extract the post-change path from a ``diff --git a/<path> b/<path>`` line.

        Args:
            line: The file header line

        Returns:
            The normalized ``b/`` side path, or None if the line does not match
        """
        match = RE_FILE_DIFF_HEADER.match(line)
        if not match:
            return None
        if match.group("quoted") is not None:
            return normalize_path(unquote_git_path(match.group("quoted")))
        return normalize_path(match.group("plain"))

    @staticmethod
    def parse_new_line_number(line: str) -> int:
        """
        Read the first post-change line number from a hunk header.

        Args:
            line: Hunk header such as ``@@ -3,7 +4,9 @@ def main():``

        Returns:
            The ``+<start>`` value, or 0 if the header cannot be parsed
        """
        match = RE_HUNK_HEADER.match(line)
        if not match:
            logger.debug(f"Malformed hunk header, defaulting line number: {line!r}")
            return DEFAULT_LINE_NUMBER
        return int(match.group(3))

    def _process_hunk_line(self, line: str, line_number: int, commit_message: str) -> Tuple[List[ModificationRange], int]:
        """Return the ranges a hunk line adds and how many new-file lines it covers."""
        if line.startswith(LINE_TYPE_NO_NEWLINE):
            return [], 0
        if self.diff_format is DiffFormat.WORD:
            return self._process_word_diff_line(line, line_number, commit_message)
        return self._process_unified_line(line, line_number, commit_message)

    def _process_word_diff_line(self, line: str, line_number: int, commit_message: str) -> Tuple[List[ModificationRange], int]:
        if DELETED_OPEN not in line and ADDED_OPEN not in line:
            return [], 1

        spans, post_change_line = self.find_word_diff_additions(line)
        if not post_change_line and RE_DELETED_CONTENT.search(line):
            # Only deleted text on this line: it exists in the old file alone
            return [], 0

        ranges = [
            ModificationRange(line_number, start_char, len(content), commit_message)
            for start_char, content in spans
            if self._should_record(content)
        ]
        return ranges, 1

    def _process_unified_line(self, line: str, line_number: int, commit_message: str) -> Tuple[List[ModificationRange], int]:
        if line.startswith(LINE_TYPE_REMOVED):
            return [], 0
        if not line.startswith(LINE_TYPE_ADDED):
            return [], 1

        content = line[len(LINE_TYPE_ADDED):]
        if not self._should_record(content):
            return [], 1
        return [ModificationRange(line_number, 0, len(content), commit_message)], 1

    @staticmethod
    def find_word_diff_additions(line: str) -> Tuple[List[Tuple[int, str]], str]:
        """
        Locate the added spans of a word-diff line within the post-change line.

        Deleted spans are dropped first, markers included, so that offsets
        refer to the line as it reads after the change. Each addition's offset
        then discounts the markers of the additions before it.

        Args:
            line: A hunk line in ``--word-diff=plain`` rendering

        Returns:
            Tuple of:
                - list of (start_char, added_text) in line order
                - the post-change line with all markers removed
        """
        without_deletions = RE_DELETED_CONTENT.sub("", line)

        spans = []
        marker_chars = 0
        for match in RE_ADDED_CONTENT.finditer(without_deletions):
            spans.append((match.start() - marker_chars, match.group(1)))
            marker_chars += len(ADDED_OPEN) + len(ADDED_CLOSE)

        post_change_line = RE_ADDED_CONTENT.sub(lambda m: m.group(1), without_deletions)
        return spans, post_change_line

    def _should_record(self, content: str) -> bool:
        if not content:
            return False
        if content.isspace():
            return self.record_whitespace_additions
        return True


def parse_diff_output(diff_text: str, commit_message: str, diff_format: DiffFormat = DiffFormat.WORD,
                      record_whitespace_additions: bool = True) -> FileModifications:
    """
    Parse one commit's diff text. Shorthand for ``DiffParser(...).parse(...)``.

    Args:
        diff_text: Raw ``git diff`` output
        commit_message: Message of the commit that produced the diff
        diff_format: Rendering of diff_text
        record_whitespace_additions: Whether whitespace-only additions count

    Returns:
        Dict[str, List[ModificationRange]]: Spans per normalized file path
    """
    parser = DiffParser(diff_format, record_whitespace_additions)
    return parser.parse(diff_text, commit_message)
