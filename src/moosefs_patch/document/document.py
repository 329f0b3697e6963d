"""Core document data structure for moosefs_patch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence


@dataclass(frozen=True, slots=True)
class Document:
    """Immutable list-of-lines view over a text blob.

    Lines are split on ``"\\n"`` only, so ``from_text`` and ``to_text`` are
    exact inverses: a text that ends in a newline carries a trailing empty
    line, and carriage returns stay part of their line.
    """

    lines: tuple[str, ...] = field(default=("",))
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    @classmethod
    def from_text(cls, text: str, *, name: str = "") -> "Document":
        return cls(lines=tuple(text.split("\n")), name=name)

    @classmethod
    def from_lines(cls, lines: Iterable[str], *, name: str = "") -> "Document":
        return cls(lines=tuple(lines), name=name)

    def snapshot(self) -> Sequence[str]:
        return self.lines

    def replace(self, *, lines: Iterable[str]) -> "Document":
        """Return a new document with the provided lines and the same name."""

        return Document(lines=tuple(lines), name=self.name)

    def to_text(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def get_line(self, index: int) -> str:
        return self.lines[index]
