"""Collaborators that delegate to Debian packaging and GNU text utilities."""

from __future__ import annotations

import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from moosefs_patch.runtime import telemetry

from .ports import (
    PatchIOError,
    ProcessFailure,
    SourceDocument,
    SourceNotFoundError,
    ValidationReport,
)

DEFAULT_PACKAGE = "pve-manager"
DEFAULT_MEMBER = "usr/share/pve-manager/js/pvemanagerlib.js"
DEFAULT_INSTALLED_PATH = "/" + DEFAULT_MEMBER


@dataclass(frozen=True, slots=True)
class CommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs a utility to completion and captures its text output."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: str | Path | None = None,
        input: Optional[str] = None,
    ) -> CommandResult:
        telemetry.log("debug", "command::run", command=" ".join(args), cwd=cwd or "")
        # Bytes in and out: text mode would fold "\r\n" into "\n".
        try:
            completed = subprocess.run(
                list(args),
                cwd=cwd,
                input=None if input is None else input.encode("utf-8"),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise ProcessFailure(
                f"Cannot run '{args[0]}'", args=args, stderr=str(exc)
            ) from exc
        stderr = completed.stderr.decode("utf-8", errors="replace")
        try:
            stdout = completed.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProcessFailure(
                f"Output of '{args[0]}' is not valid UTF-8",
                args=args,
                returncode=completed.returncode,
                stderr=stderr,
            ) from exc
        return CommandResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )


def read_text(path: Path) -> str:
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise PatchIOError(f"Failed to read {path}: {exc}", path=path) from exc


class LocalFileSource:
    """Source provider for a pristine copy that is already on disk."""

    def __init__(self, path: str | Path, *, version: Optional[str] = None) -> None:
        self.path = Path(path)
        self.version = version

    def fetch(self) -> SourceDocument:
        if not self.path.is_file():
            raise SourceNotFoundError(f"{self.path} not found")
        return SourceDocument(
            text=read_text(self.path), origin=str(self.path), version=self.version
        )


class DebianPackageSource:
    """Downloads the pristine package and reads one member out of it.

    The installed copy is only checked for presence; its content is never
    used, since it may already carry local modifications.
    """

    def __init__(
        self,
        workdir: str | Path,
        *,
        package: str = DEFAULT_PACKAGE,
        member: str = DEFAULT_MEMBER,
        installed_path: str | Path | None = DEFAULT_INSTALLED_PATH,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.workdir = Path(workdir)
        self.package = package
        self.member = member.lstrip("/")
        self.installed_path = Path(installed_path) if installed_path else None
        self.runner = runner or CommandRunner()

    def fetch(self) -> SourceDocument:
        with telemetry.span(
            "source::fetch",
            component="source",
            metadata={"package": self.package},
        ) as handle:
            self.ensure_installed()
            version = self.installed_version()
            handle.add_metadata("version", version)
            archive = self.download(version)
            extracted = self.extract(archive)
            return SourceDocument(
                text=read_text(extracted), origin=str(extracted), version=version
            )

    def ensure_installed(self) -> None:
        if self.installed_path is None:
            return
        if not self.installed_path.exists():
            raise SourceNotFoundError(
                f"{self.installed_path.name} not found. Is {self.package} installed?"
            )
        telemetry.log("info", "Found installed file", path=self.installed_path)

    def installed_version(self) -> str:
        result = self.runner.run(
            ["dpkg-query", "-W", "-f=${Version}", self.package]
        )
        if not result.ok:
            raise SourceNotFoundError(
                f"Cannot query {self.package} version: {result.stderr.strip()}"
            )
        version = result.stdout.strip()
        telemetry.log("info", "Installed package version", package=self.package, version=version)
        return version

    def download(self, version: Optional[str] = None) -> Path:
        self.workdir.mkdir(parents=True, exist_ok=True)
        before = set(self.workdir.glob("*.deb"))
        result = self.runner.run(["apt-get", "download", self.package], cwd=self.workdir)
        if not result.ok:
            raise ProcessFailure(
                f"Failed to download {self.package}",
                args=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        archive = self._pick_archive(before, version)
        telemetry.log("info", "Downloaded package", archive=archive.name)
        return archive

    def _pick_archive(self, before: set[Path], version: Optional[str]) -> Path:
        fresh = sorted(set(self.workdir.glob("*.deb")) - before)
        if not fresh and version:
            # apt-get keeps an archive already present instead of fetching it again.
            quoted = version.replace(":", "%3a")
            fresh = sorted(self.workdir.glob(f"{self.package}_{quoted}_*.deb"))
        if not fresh:
            raise SourceNotFoundError("No .deb file found after download")
        if len(fresh) > 1:
            names = ", ".join(path.name for path in fresh)
            raise SourceNotFoundError(f"Cannot tell which archive was downloaded: {names}")
        return fresh[0]

    def extract(self, archive: Path) -> Path:
        target = self.workdir / "extracted"
        try:
            target.mkdir(exist_ok=True)
        except OSError as exc:
            raise PatchIOError(f"Cannot create {target}: {exc}", path=target) from exc
        result = self.runner.run(["dpkg-deb", "-x", str(archive), str(target)])
        if not result.ok:
            raise ProcessFailure(
                f"Failed to extract {archive.name}",
                args=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        member = target / self.member
        if not member.is_file():
            raise SourceNotFoundError(f"{member.name} not found in extracted package")
        telemetry.log("info", "Extracted member", member=self.member)
        return member


class FileWriter:
    def __init__(self, base_dir: str | Path = ".") -> None:
        self.base_dir = Path(base_dir)

    def write(self, name: str | Path, text: str) -> Path:
        path = self.base_dir / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except OSError as exc:
            raise PatchIOError(f"Failed to write {path}: {exc}", path=path) from exc
        return path


class DiffUtilityDiffer:
    """Differ that shells out to ``diff -u``; exit 1 only means the inputs differ."""

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self.runner = runner or CommandRunner()

    def diff(
        self,
        original: str,
        modified: str,
        *,
        original_label: str,
        modified_label: str,
    ) -> str:
        with tempfile.TemporaryDirectory(prefix="moosefs-diff-") as scratch:
            writer = FileWriter(scratch)
            left = writer.write("original", original)
            right = writer.write("modified", modified)
            result = self.runner.run(
                [
                    "diff",
                    "-u",
                    "--label",
                    original_label,
                    "--label",
                    modified_label,
                    str(left),
                    str(right),
                ]
            )
        if result.returncode not in (0, 1):
            raise ProcessFailure(
                "Failed to generate diff",
                args=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout


class PatchUtilityValidator:
    """Dry-runs ``patch`` against a scratch copy of the target."""

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self.runner = runner or CommandRunner()

    def validate(self, diff_text: str, target_text: str) -> ValidationReport:
        with tempfile.TemporaryDirectory(prefix="moosefs-check-") as scratch:
            target = FileWriter(scratch).write("target", target_text)
            result = self.runner.run(
                ["patch", "-p0", "--dry-run", str(target)], input=diff_text
            )
        if result.ok:
            return ValidationReport(ok=True, diagnostics=result.stdout.strip())
        return ValidationReport(
            ok=False, diagnostics=(result.stderr or result.stdout).strip()
        )


__all__ = [
    "CommandResult",
    "CommandRunner",
    "DEFAULT_INSTALLED_PATH",
    "DEFAULT_MEMBER",
    "DEFAULT_PACKAGE",
    "DebianPackageSource",
    "DiffUtilityDiffer",
    "FileWriter",
    "LocalFileSource",
    "PatchUtilityValidator",
    "read_text",
]
