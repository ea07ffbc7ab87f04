"""Position-addressed access to the comments of a policy file.

The syntax tree carries no comments.  The printer asks this index which
comments sit directly above a node (pre-comments) or behind it on the
same line (trailing comments), addressing nodes only by their source
offsets.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, Optional

from spocparser.scanner import Scanner

# A blank source line inside a block of pre-comments.
BLANK = None

CommentBlock = list[Optional["Comment"]]


@dataclass(frozen=True, slots=True)
class Comment:
    start: int
    line: int
    text: str
    own_line: bool


class CommentIndex:
    def __init__(self, text: str, comments: Iterable[tuple[int, str]]):
        self.text = text
        self.line_starts = [0]
        self.line_starts.extend(i + 1 for i, char in enumerate(text) if char == "\n")
        self.comments: list[Comment] = []
        for start, comment_text in sorted(comments):
            line = self.line_of(start)
            own_line = self.text[self.line_starts[line - 1] : start].strip() == ""
            self.comments.append(Comment(start, line, comment_text, own_line))
        self.by_start = {comment.start: comment for comment in self.comments}
        self.by_line = {comment.line: comment for comment in self.comments if comment.own_line}

    @classmethod
    def from_scanner(cls, scanner: Scanner) -> CommentIndex:
        return cls(scanner.text, scanner.comments)

    @classmethod
    def scan(cls, source: bytes | str) -> CommentIndex:
        scanner = Scanner(source)
        scanner.tokenize()
        return cls.from_scanner(scanner)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def line_of(self, pos: int) -> int:
        return bisect_right(self.line_starts, pos)

    def line_text(self, line: int) -> str:
        if not 1 <= line <= self.line_count:
            return ""
        start = self.line_starts[line - 1]
        end = self.line_starts[line] - 1 if line < self.line_count else len(self.text)
        return self.text[start:end]

    def is_blank(self, line: int) -> bool:
        return 1 <= line <= self.line_count and self.line_text(line).strip() == ""

    def trailing(self, pos: int, skip: str) -> Comment | None:
        """Comment on the line of ``pos``, separated from it only by
        whitespace and characters from ``skip``."""
        text = self.text
        while pos < len(text):
            char = text[pos]
            if char == "\n":
                return None
            if char == "#":
                return self.by_start.get(pos)
            if not (char.isspace() or char in skip):
                return None
            pos += 1
        return None

    def _collect_lines(self, first: int, last: int) -> CommentBlock:
        block: CommentBlock = []
        for line in range(first, last + 1):
            if self.is_blank(line):
                block.append(BLANK)
            elif line in self.by_line:
                block.append(self.by_line[line])
            else:
                block = []
        return block

    def leading(self, start: int, skip: str) -> CommentBlock:
        """Own-line comments directly above the line holding ``start``.

        Nothing is returned if code other than whitespace or ``skip``
        characters precedes ``start`` on its line.
        """
        line = self.line_of(start)
        prefix = self.text[self.line_starts[line - 1] : start]
        if any(not (char.isspace() or char in skip) for char in prefix):
            return []
        first = line - 1
        while first >= 1 and (self.is_blank(first) or first in self.by_line):
            first -= 1
        return _strip_leading_blanks(self._collect_lines(first + 1, line - 1))

    def between_toplevels(self, prev_end: int | None, start: int) -> CommentBlock:
        """Pre-comments of the toplevel starting at ``start``.

        The paragraph that touches the last line of the previous toplevel
        stays with that toplevel.
        """
        last = self.line_of(start) - 1
        if prev_end is None:
            return _strip_leading_blanks(self._collect_lines(1, last))
        block = self._collect_lines(self.line_of(prev_end) + 1, last)
        while block and block[0] is not BLANK:
            block.pop(0)
        return _strip_leading_blanks(block)

    def before(self, limit: int) -> list[Comment]:
        return [comment for comment in self.comments if comment.start < limit]


def _strip_leading_blanks(block: CommentBlock) -> CommentBlock:
    while block and block[0] is BLANK:
        block.pop(0)
    return block
