"""Pure-Python unified diff writer and strict hunk applier."""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass, field
from typing import Iterator, List

from .ports import ValidationReport

NO_NEWLINE_MARKER = "\\ No newline at end of file"

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class PatchApplyError(ValueError):
    """Raised when a hunk does not match the text it is applied to."""

    def __init__(self, message: str, *, hunk: int | None = None) -> None:
        super().__init__(message if hunk is None else f"hunk #{hunk}: {message}")
        self.hunk = hunk


def split_keepends(text: str) -> list[str]:
    """Split on ``"\\n"`` only, keeping terminators; a final partial line is kept bare."""

    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _mark_missing_newlines(diff_lines: Iterator[str]) -> Iterator[str]:
    for line in diff_lines:
        if line.endswith("\n"):
            yield line
        else:
            yield line + "\n"
            yield NO_NEWLINE_MARKER + "\n"


def unified_diff_text(
    original: str,
    modified: str,
    original_label: str,
    modified_label: str,
    *,
    context: int = 3,
) -> str:
    """Return the unified diff between two texts, or ``""`` when they match."""

    diff = difflib.unified_diff(
        split_keepends(original),
        split_keepends(modified),
        fromfile=original_label,
        tofile=modified_label,
        n=context,
    )
    return "".join(_mark_missing_newlines(diff))


@dataclass(slots=True)
class Hunk:
    old_start: int
    old_length: int
    new_start: int
    new_length: int
    lines: List[tuple[str, str]] = field(default_factory=list)


def parse_hunks(diff_text: str) -> list[Hunk]:
    """Parse the hunks of a single-file unified diff; file headers are skipped."""

    hunks: list[Hunk] = []
    current: Hunk | None = None
    old_seen = new_seen = 0

    for raw in split_keepends(diff_text):
        match = _HUNK_HEADER.match(raw)
        if match:
            old_start, old_len, new_start, new_len = match.groups()
            current = Hunk(
                old_start=int(old_start),
                old_length=1 if old_len is None else int(old_len),
                new_start=int(new_start),
                new_length=1 if new_len is None else int(new_len),
            )
            hunks.append(current)
            old_seen = new_seen = 0
            continue

        if current is None:
            continue

        if raw.startswith("\\"):
            if not current.lines:
                raise PatchApplyError("newline marker without a preceding line")
            tag, text = current.lines[-1]
            current.lines[-1] = (tag, text[:-1] if text.endswith("\n") else text)
            continue

        body_done = old_seen >= current.old_length and new_seen >= current.new_length
        if body_done:
            current = None
            continue

        tag, text = raw[:1], raw[1:]
        if raw in ("\n", ""):
            # Some tools drop the leading space on empty context lines.
            tag, text = " ", "\n"
        if tag not in (" ", "-", "+"):
            raise PatchApplyError(f"unexpected line {raw.rstrip()!r}", hunk=len(hunks))
        current.lines.append((tag, text))
        if tag in (" ", "-"):
            old_seen += 1
        if tag in (" ", "+"):
            new_seen += 1

    for number, hunk in enumerate(hunks, start=1):
        old_count = sum(1 for tag, _ in hunk.lines if tag in (" ", "-"))
        new_count = sum(1 for tag, _ in hunk.lines if tag in (" ", "+"))
        if old_count != hunk.old_length or new_count != hunk.new_length:
            raise PatchApplyError("truncated hunk", hunk=number)
    return hunks


def apply_unified_diff(original: str, diff_text: str) -> str:
    """Apply ``diff_text`` to ``original``; any mismatch raises ``PatchApplyError``."""

    source = split_keepends(original)
    result: list[str] = []
    cursor = 0

    for number, hunk in enumerate(parse_hunks(diff_text), start=1):
        start = hunk.old_start if hunk.old_length == 0 else hunk.old_start - 1
        if start < cursor or start > len(source):
            raise PatchApplyError(f"hunk starts at line {hunk.old_start}", hunk=number)
        result.extend(source[cursor:start])
        cursor = start

        for tag, text in hunk.lines:
            if tag == "+":
                result.append(text)
                continue
            if cursor >= len(source) or source[cursor] != text:
                raise PatchApplyError(
                    f"line {cursor + 1} does not match {text.rstrip()!r}", hunk=number
                )
            if tag == " ":
                result.append(source[cursor])
            cursor += 1

    result.extend(source[cursor:])
    return "".join(result)


class DifflibDiffer:
    """Differ backed by :mod:`difflib`, for hosts without GNU diff."""

    def __init__(self, *, context: int = 3) -> None:
        self.context = context

    def diff(
        self,
        original: str,
        modified: str,
        *,
        original_label: str,
        modified_label: str,
    ) -> str:
        return unified_diff_text(
            original, modified, original_label, modified_label, context=self.context
        )


class InMemoryPatchValidator:
    """Validator that dry-runs the diff with :func:`apply_unified_diff`."""

    def validate(self, diff_text: str, target_text: str) -> ValidationReport:
        try:
            apply_unified_diff(target_text, diff_text)
        except PatchApplyError as exc:
            return ValidationReport(ok=False, diagnostics=str(exc))
        return ValidationReport(ok=True)


__all__ = [
    "DifflibDiffer",
    "Hunk",
    "InMemoryPatchValidator",
    "NO_NEWLINE_MARKER",
    "PatchApplyError",
    "apply_unified_diff",
    "parse_hunks",
    "split_keepends",
    "unified_diff_text",
]
