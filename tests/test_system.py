from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from moosefs_patch.workflow import (
    CommandResult,
    DebianPackageSource,
    DiffUtilityDiffer,
    FileWriter,
    LocalFileSource,
    PatchIOError,
    PatchUtilityValidator,
    ProcessFailure,
    SourceNotFoundError,
)
from moosefs_patch.workflow.system import DEFAULT_MEMBER

Handler = Callable[[tuple[str, ...], Optional[Path], Optional[str]], CommandResult]


class FakeRunner:
    """Records commands and answers them from a per-program handler table."""

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self.handlers = handlers or {}
        self.calls: list[tuple[str, ...]] = []
        self.inputs: list[Optional[str]] = []

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: str | Path | None = None,
        input: Optional[str] = None,
    ) -> CommandResult:
        command = tuple(args)
        self.calls.append(command)
        self.inputs.append(input)
        handler = self.handlers.get(command[0])
        if handler is None:
            return CommandResult(command, 0, "", "")
        return handler(command, Path(cwd) if cwd else None, input)


def ok(stdout: str = "") -> Handler:
    return lambda args, cwd, input: CommandResult(args, 0, stdout, "")


def failing(code: int, stderr: str) -> Handler:
    return lambda args, cwd, input: CommandResult(args, code, "", stderr)


def fake_download(args, cwd, input) -> CommandResult:
    (cwd / "pve-manager_8.2.4_amd64.deb").write_bytes(b"!<arch>")
    return CommandResult(args, 0, "", "")


def fake_extract(content: str) -> Handler:
    def handler(args, cwd, input) -> CommandResult:
        target = Path(args[3]) / DEFAULT_MEMBER
        target.parent.mkdir(parents=True)
        target.write_text(content, encoding="utf-8")
        return CommandResult(args, 0, "", "")

    return handler


@pytest.fixture
def installed(tmp_path: Path) -> Path:
    path = tmp_path / "installed" / "pvemanagerlib.js"
    path.parent.mkdir()
    path.write_text("locally modified", encoding="utf-8")
    return path


def make_source(tmp_path: Path, installed: Path, runner: FakeRunner) -> DebianPackageSource:
    return DebianPackageSource(tmp_path / "work", installed_path=installed, runner=runner)


def test_debian_source_fetches_pristine_member(tmp_path: Path, installed: Path) -> None:
    runner = FakeRunner(
        {
            "dpkg-query": ok("8.2.4"),
            "apt-get": fake_download,
            "dpkg-deb": fake_extract("pristine\n"),
        }
    )

    document = make_source(tmp_path, installed, runner).fetch()

    assert document.text == "pristine\n"
    assert document.version == "8.2.4"
    assert document.origin.endswith("pvemanagerlib.js")
    assert runner.calls[0] == ("dpkg-query", "-W", "-f=${Version}", "pve-manager")
    assert runner.calls[1] == ("apt-get", "download", "pve-manager")
    assert runner.calls[2][:2] == ("dpkg-deb", "-x")


def test_debian_source_requires_installed_file(tmp_path: Path) -> None:
    runner = FakeRunner()
    source = DebianPackageSource(
        tmp_path, installed_path=tmp_path / "missing.js", runner=runner
    )

    with pytest.raises(SourceNotFoundError):
        source.fetch()

    assert runner.calls == []


def test_debian_source_download_failure(tmp_path: Path, installed: Path) -> None:
    runner = FakeRunner({"apt-get": failing(100, "E: Unable to locate package")})

    with pytest.raises(ProcessFailure) as info:
        make_source(tmp_path, installed, runner).fetch()

    assert info.value.returncode == 100
    assert "Unable to locate package" in str(info.value)


def test_debian_source_without_archive(tmp_path: Path, installed: Path) -> None:
    runner = FakeRunner()

    with pytest.raises(SourceNotFoundError, match="No .deb file"):
        make_source(tmp_path, installed, runner).fetch()


def test_debian_source_member_missing(tmp_path: Path, installed: Path) -> None:
    runner = FakeRunner({"apt-get": fake_download})

    with pytest.raises(SourceNotFoundError, match="not found in extracted package"):
        make_source(tmp_path, installed, runner).fetch()


def test_local_file_source(tmp_path: Path) -> None:
    path = tmp_path / "pvemanagerlib.js"
    path.write_text("x\n", encoding="utf-8")

    assert LocalFileSource(path).fetch().text == "x\n"
    with pytest.raises(SourceNotFoundError):
        LocalFileSource(tmp_path / "nope.js").fetch()


def test_local_file_source_rejects_binary(tmp_path: Path) -> None:
    path = tmp_path / "blob.js"
    path.write_bytes(b"\xff\xfe\x00")

    with pytest.raises(PatchIOError):
        LocalFileSource(path).fetch()


def test_file_writer_creates_parents(tmp_path: Path) -> None:
    path = FileWriter(tmp_path).write("out/pve-moosefs.patch", "diff")

    assert path.read_text(encoding="utf-8") == "diff"


def test_diff_utility_accepts_exit_one() -> None:
    runner = FakeRunner(
        {"diff": lambda args, cwd, input: CommandResult(args, 1, "--- a\n", "")}
    )

    text = DiffUtilityDiffer(runner).diff(
        "a", "b", original_label="pvemanagerlib.js", modified_label="patched.js"
    )

    assert text == "--- a\n"
    assert runner.calls[0][:6] == (
        "diff",
        "-u",
        "--label",
        "pvemanagerlib.js",
        "--label",
        "patched.js",
    )


def test_diff_utility_trouble_is_fatal() -> None:
    runner = FakeRunner({"diff": failing(2, "diff: missing operand")})

    with pytest.raises(ProcessFailure):
        DiffUtilityDiffer(runner).diff("a", "b", original_label="a", modified_label="b")


def test_patch_validator_passes_diff_on_stdin() -> None:
    runner = FakeRunner({"patch": ok("checking file target")})

    report = PatchUtilityValidator(runner).validate("--- a\n", "a\n")

    assert report.ok
    assert runner.calls[0][:3] == ("patch", "-p0", "--dry-run")
    assert runner.inputs[0] == "--- a\n"


def test_patch_validator_reports_failure() -> None:
    runner = FakeRunner({"patch": failing(1, "Hunk #1 FAILED at 3.")})

    report = PatchUtilityValidator(runner).validate("--- a\n", "a\n")

    assert not report.ok
    assert report.diagnostics == "Hunk #1 FAILED at 3."


def test_debian_source_ignores_archives_from_earlier_runs(
    tmp_path: Path, installed: Path
) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "pve-manager_8.1.10_all.deb").write_bytes(b"!<arch>")

    def download_newer(args, cwd, input) -> CommandResult:
        (cwd / "pve-manager_8.2.4_all.deb").write_bytes(b"!<arch>")
        return CommandResult(args, 0, "", "")

    runner = FakeRunner(
        {
            "dpkg-query": ok("8.2.4"),
            "apt-get": download_newer,
            "dpkg-deb": fake_extract("pristine\n"),
        }
    )

    make_source(tmp_path, installed, runner).fetch()

    extract = next(call for call in runner.calls if call[0] == "dpkg-deb")
    assert Path(extract[2]).name == "pve-manager_8.2.4_all.deb"


def test_debian_source_reuses_archive_matching_version(
    tmp_path: Path, installed: Path
) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "pve-manager_8.1.10_all.deb").write_bytes(b"!<arch>")
    (workdir / "pve-manager_1%3a8.2.4_all.deb").write_bytes(b"!<arch>")
    runner = FakeRunner(
        {"dpkg-query": ok("1:8.2.4"), "dpkg-deb": fake_extract("pristine\n")}
    )

    make_source(tmp_path, installed, runner).fetch()

    extract = next(call for call in runner.calls if call[0] == "dpkg-deb")
    assert Path(extract[2]).name == "pve-manager_1%3a8.2.4_all.deb"


def test_debian_source_rejects_ambiguous_download(
    tmp_path: Path, installed: Path
) -> None:
    def download_two(args, cwd, input) -> CommandResult:
        (cwd / "pve-manager_8.2.4_all.deb").write_bytes(b"!<arch>")
        (cwd / "pve-manager_8.2.5_all.deb").write_bytes(b"!<arch>")
        return CommandResult(args, 0, "", "")

    runner = FakeRunner({"apt-get": download_two})

    with pytest.raises(SourceNotFoundError, match="Cannot tell which archive"):
        make_source(tmp_path, installed, runner).fetch()
