"""Orchestration around the anchor patcher and its external collaborators."""

from .ports import (
    Differ,
    PatchIOError,
    PatchValidator,
    ProcessFailure,
    SourceDocument,
    SourceNotFoundError,
    SourceProvider,
    ValidationReport,
    WorkflowError,
    Writer,
)
from .unified import (
    DifflibDiffer,
    InMemoryPatchValidator,
    PatchApplyError,
    apply_unified_diff,
    unified_diff_text,
)
from .system import (
    CommandResult,
    CommandRunner,
    DebianPackageSource,
    DiffUtilityDiffer,
    FileWriter,
    LocalFileSource,
    PatchUtilityValidator,
)
from .pipeline import PatchWorkflow, WorkflowResult

__all__ = [
    "CommandResult",
    "CommandRunner",
    "DebianPackageSource",
    "DiffUtilityDiffer",
    "Differ",
    "DifflibDiffer",
    "FileWriter",
    "InMemoryPatchValidator",
    "LocalFileSource",
    "PatchApplyError",
    "PatchIOError",
    "PatchUtilityValidator",
    "PatchValidator",
    "PatchWorkflow",
    "ProcessFailure",
    "SourceDocument",
    "SourceNotFoundError",
    "SourceProvider",
    "ValidationReport",
    "WorkflowError",
    "WorkflowResult",
    "Writer",
    "apply_unified_diff",
    "unified_diff_text",
]
