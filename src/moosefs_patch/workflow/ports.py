"""Collaborator protocols for the patch workflow and its error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """Pristine text of the file to patch and where it came from."""

    text: str
    origin: str
    version: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ValidationReport:
    ok: bool
    diagnostics: str = ""


class SourceProvider(Protocol):
    def fetch(self) -> SourceDocument:
        """Return the unmodified document text."""
        ...


class Writer(Protocol):
    def write(self, name: str | Path, text: str) -> Path:
        """Persist ``text`` under ``name`` and return the final path."""
        ...


class Differ(Protocol):
    def diff(
        self,
        original: str,
        modified: str,
        *,
        original_label: str,
        modified_label: str,
    ) -> str:
        """Return a unified diff turning ``original`` into ``modified``."""
        ...


class PatchValidator(Protocol):
    def validate(self, diff_text: str, target_text: str) -> ValidationReport:
        """Report whether ``diff_text`` applies cleanly to ``target_text``."""
        ...


class WorkflowError(RuntimeError):
    """Base class for failures that abort a patch run."""


class SourceNotFoundError(WorkflowError):
    """Raised when the package or the file inside it is unavailable."""


class PatchIOError(WorkflowError):
    """Raised when reading, extracting or writing a file fails."""

    def __init__(self, message: str, *, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ProcessFailure(WorkflowError):
    """Raised when an external utility cannot run or exits with an error."""

    def __init__(
        self,
        message: str,
        *,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        detail = stderr.strip()
        super().__init__(f"{message}: {detail}" if detail else message)
        self.command = tuple(args)
        self.returncode = returncode
        self.stderr = stderr


__all__ = [
    "Differ",
    "PatchIOError",
    "PatchValidator",
    "ProcessFailure",
    "SourceDocument",
    "SourceNotFoundError",
    "SourceProvider",
    "ValidationReport",
    "WorkflowError",
    "Writer",
]
