"""Container for one parsed policy file."""

from __future__ import annotations

from dataclasses import dataclass, field

from .comments import CommentIndex
from .nodes import Toplevel
from .printer import Printer


@dataclass
class PolicyDocument:
    fname: str
    source: str
    toplevels: list[Toplevel] = field(default_factory=list)
    comments: CommentIndex | None = None

    def names(self) -> list[str]:
        return [toplevel.name for toplevel in self.toplevels]

    def render(self, printer: Printer | None = None) -> str:
        return (printer or Printer()).render(self.toplevels, self.source, self.comments)
