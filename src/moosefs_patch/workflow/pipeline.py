"""One patch-generation run: fetch, patch, diff, write, validate."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from moosefs_patch.document import Document
from moosefs_patch.patcher import AnchorPatcher, PatchOutcome
from moosefs_patch.rules import InsertionRule
from moosefs_patch.runtime import telemetry

from .ports import (
    Differ,
    PatchValidator,
    ProcessFailure,
    SourceProvider,
    ValidationReport,
    Writer,
)


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    version: Optional[str]
    outcome: PatchOutcome
    diff_text: str
    patch_path: Path
    validation: ValidationReport
    patched_path: Optional[Path] = None


class PatchWorkflow:
    """Wires the anchor patcher to its collaborators.

    Failures while fetching, writing or diffing propagate as
    :class:`~moosefs_patch.workflow.ports.WorkflowError`. A diff that does not
    validate is reported on the result and logged as a warning, since the
    patch file has already been written by then.
    """

    def __init__(
        self,
        *,
        source: SourceProvider,
        writer: Writer,
        differ: Differ,
        validator: PatchValidator,
        rules: Iterable[InsertionRule],
        output: str | Path = "pve-moosefs.patch",
        original_label: str = "pvemanagerlib.js",
        modified_label: str = "pvemanagerlib.patched.js",
        patched_writer: Optional[Writer] = None,
    ) -> None:
        self.source = source
        self.writer = writer
        self.differ = differ
        self.validator = validator
        self.patcher = AnchorPatcher(rules)
        self.output = output
        self.original_label = original_label
        self.modified_label = modified_label
        self.patched_writer = patched_writer

    def run(self) -> WorkflowResult:
        with telemetry.span("workflow::run", component="workflow") as handle:
            pristine = self.source.fetch()
            handle.add_metadata("origin", pristine.origin)
            if pristine.version:
                handle.add_metadata("version", pristine.version)

            document = Document.from_text(pristine.text, name=self.original_label)
            outcome = self.patcher.apply(document)
            patched_text = outcome.patched.to_text()
            telemetry.log(
                "info",
                "Generated patched version",
                inserted=outcome.inserted_lines,
                unmatched=",".join(outcome.unmatched) or "-",
            )

            patched_path = None
            if self.patched_writer is not None:
                patched_path = self.patched_writer.write(self.modified_label, patched_text)

            with telemetry.span("workflow::diff", component="workflow"):
                diff_text = self.differ.diff(
                    pristine.text,
                    patched_text,
                    original_label=self.original_label,
                    modified_label=self.modified_label,
                )
            patch_path = self.writer.write(self.output, diff_text)
            telemetry.log("info", "Wrote patch file", path=patch_path)

            validation = self._validate(diff_text, pristine.text)
            if validation.ok:
                telemetry.log("info", "Patch applies cleanly")
            else:
                handle.warn("validation_failed")
                telemetry.log(
                    "warning",
                    "Patch may not apply cleanly",
                    diagnostics=validation.diagnostics,
                )

            return WorkflowResult(
                version=pristine.version,
                outcome=outcome,
                diff_text=diff_text,
                patch_path=patch_path,
                validation=validation,
                patched_path=patched_path,
            )

    def _validate(self, diff_text: str, target_text: str) -> ValidationReport:
        with telemetry.span("workflow::validate", component="workflow"):
            try:
                return self.validator.validate(diff_text, target_text)
            except ProcessFailure as exc:
                return ValidationReport(ok=False, diagnostics=str(exc))


__all__ = ["PatchWorkflow", "WorkflowResult"]
