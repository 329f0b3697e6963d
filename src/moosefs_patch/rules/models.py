"""Dataclasses describing anchor matchers and insertion rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

MATCHER_KINDS = ("prefix", "contains")


@dataclass(frozen=True, slots=True)
class AnchorMatcher:
    """Callable line predicate used to locate an anchor line."""

    kind: str
    pattern: str
    strip: bool = False

    def __post_init__(self) -> None:
        if self.kind not in MATCHER_KINDS:
            raise ValueError(f"Unknown matcher kind '{self.kind}'")
        if not self.pattern:
            raise ValueError("pattern cannot be empty")

    def __call__(self, line: str) -> bool:
        candidate = line.strip() if self.strip else line
        if self.kind == "prefix":
            return candidate.startswith(self.pattern)
        return self.pattern in candidate

    @property
    def label(self) -> str:
        prefix = "strip+" if self.strip else ""
        return f"{prefix}{self.kind}:{self.pattern}"


def starts_with(prefix: str, *, strip: bool = True) -> AnchorMatcher:
    """Match lines that begin with ``prefix`` once surrounding whitespace is removed."""

    return AnchorMatcher("prefix", prefix, strip=strip)


def contains(needle: str, *, strip: bool = False) -> AnchorMatcher:
    """Match lines containing ``needle`` anywhere."""

    return AnchorMatcher("contains", needle, strip=strip)


@dataclass(frozen=True, slots=True)
class InsertionRule:
    """Payload spliced in front of every line accepted by ``predicate``.

    With ``once`` set the rule only fires on its first matching line.
    """

    id: str
    predicate: Callable[[str], bool]
    payload: tuple[str, ...]
    description: str = ""
    once: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("InsertionRule id cannot be empty")
        if not callable(self.predicate):
            raise TypeError("predicate must be callable")
        object.__setattr__(self, "payload", tuple(self.payload))

    def matches(self, line: str) -> bool:
        return bool(self.predicate(line))

    @property
    def anchor_label(self) -> str:
        label = getattr(self.predicate, "label", None)
        if label is not None:
            return str(label)
        return getattr(self.predicate, "__name__", repr(self.predicate))

    @classmethod
    def from_text(
        cls,
        id: str,
        predicate: Callable[[str], bool],
        payload: str,
        *,
        description: str = "",
        once: bool = False,
        trailing: Iterable[str] = (),
    ) -> "InsertionRule":
        lines = tuple(payload.splitlines()) + tuple(trailing)
        return cls(
            id=id,
            predicate=predicate,
            payload=lines,
            description=description,
            once=once,
        )


__all__ = [
    "AnchorMatcher",
    "InsertionRule",
    "contains",
    "starts_with",
]
