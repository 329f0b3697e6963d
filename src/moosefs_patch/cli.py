"""Command-line entry point: build ``pve-moosefs.patch`` from the pristine bundle."""

from __future__ import annotations

import argparse
import sys
import tempfile
from contextlib import ExitStack
from pathlib import Path
from typing import Optional, Sequence

from moosefs_patch.config import DIFFERS, VALIDATORS, PatchConfig
from moosefs_patch.rules import RuleRegistry, default_rule_ids, load_default_rules
from moosefs_patch.runtime import telemetry
from moosefs_patch.workflow import (
    DebianPackageSource,
    DiffUtilityDiffer,
    DifflibDiffer,
    FileWriter,
    InMemoryPatchValidator,
    LocalFileSource,
    PatchUtilityValidator,
    PatchWorkflow,
    WorkflowError,
    WorkflowResult,
)
from moosefs_patch.workflow.ports import Differ, PatchValidator, SourceProvider


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pve-moosefs-patch",
        description="Generate a patch adding MooseFS storage to pvemanagerlib.js.",
    )
    parser.add_argument("--output", help="Patch file to write (default: pve-moosefs.patch)")
    parser.add_argument(
        "--source",
        help="Read a pristine pvemanagerlib.js from disk instead of downloading the package",
    )
    parser.add_argument("--package", help="Debian package to download (default: pve-manager)")
    parser.add_argument(
        "--installed-path",
        help="Installed file that must exist before downloading",
    )
    parser.add_argument("--member", help="Path of the bundle inside the package")
    parser.add_argument(
        "--workdir",
        help="Keep downloads and extraction here instead of a temporary directory",
    )
    parser.add_argument("--differ", choices=DIFFERS, help="Diff backend (default: diff)")
    parser.add_argument(
        "--validator", choices=VALIDATORS, help="Patch check backend (default: patch)"
    )
    parser.add_argument(
        "--emit-patched",
        action="store_true",
        default=None,
        help="Also write the patched bundle next to the patch file",
    )
    parser.add_argument(
        "--only",
        action="append",
        choices=default_rule_ids(),
        metavar="RULE",
        help="Apply only this insertion rule (repeatable)",
    )
    parser.add_argument(
        "--skip",
        action="append",
        choices=default_rule_ids(),
        metavar="RULE",
        help="Leave out this insertion rule (repeatable)",
    )
    parser.add_argument(
        "--log-preset",
        choices=telemetry.PRESETS,
        help="Use a named logging preset instead of MOOSEFS_PATCH_* settings",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PatchConfig:
    return PatchConfig.from_env().merged(
        output=args.output,
        source=args.source,
        package=args.package,
        installed_path=args.installed_path,
        member=args.member,
        workdir=args.workdir,
        differ=args.differ,
        validator=args.validator,
        emit_patched=args.emit_patched,
        only=tuple(args.only) if args.only else None,
        skip=tuple(args.skip) if args.skip else None,
    )


def build_workflow(config: PatchConfig, workdir: Path) -> PatchWorkflow:
    source: SourceProvider
    if config.source:
        source = LocalFileSource(config.source)
    else:
        source = DebianPackageSource(
            workdir,
            package=config.package,
            member=config.member,
            installed_path=config.installed_path,
        )

    differ: Differ = DifflibDiffer() if config.differ == "difflib" else DiffUtilityDiffer()
    validator: PatchValidator = (
        InMemoryPatchValidator() if config.validator == "memory" else PatchUtilityValidator()
    )

    registry = RuleRegistry()
    load_default_rules(registry, include=config.only or None, exclude=config.skip)
    telemetry.log("info", "Selected insertion rules", rules=",".join(registry.stats().rule_ids))

    output = Path(config.output)
    return PatchWorkflow(
        source=source,
        writer=FileWriter(),
        differ=differ,
        validator=validator,
        rules=registry.rules(),
        output=output,
        original_label=config.original_label,
        modified_label=config.modified_label,
        patched_writer=FileWriter(output.parent) if config.emit_patched else None,
    )


def _report(result: WorkflowResult) -> None:
    if result.version:
        print(f"pve-manager version: {result.version}")
    for rule_id, indices in result.outcome.hits.items():
        where = ", ".join(str(index + 1) for index in indices) or "no anchor found"
        print(f"  {rule_id}: {where}")
    if result.patched_path is not None:
        print(f"Patched bundle: {result.patched_path}")
    if result.validation.ok:
        print("Patch applies cleanly")
    else:
        print("Warning: patch may not apply cleanly:", file=sys.stderr)
        print(result.validation.diagnostics, file=sys.stderr)
    print(f"Patch generation complete: {result.patch_path}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    if args.log_preset:
        telemetry.configure(preset=args.log_preset)

    try:
        config = build_config(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print("MooseFS Patch Generator for Proxmox VE")
    with ExitStack() as stack:
        if config.workdir:
            workdir = Path(config.workdir)
        else:
            scratch = tempfile.TemporaryDirectory(prefix="moosefs-patch-")
            workdir = Path(stack.enter_context(scratch))
        try:
            workflow = build_workflow(config, workdir)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        try:
            result = workflow.run()
        except WorkflowError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    _report(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
