import pytest

from moosefs_patch.patcher import patch
from moosefs_patch.document import Document
from moosefs_patch.rules import InsertionRule, starts_with
from moosefs_patch.workflow import (
    DifflibDiffer,
    InMemoryPatchValidator,
    PatchApplyError,
    apply_unified_diff,
    unified_diff_text,
)
from moosefs_patch.workflow.unified import NO_NEWLINE_MARKER, parse_hunks, split_keepends


def make_rule() -> InsertionRule:
    return InsertionRule(
        id="storage", predicate=starts_with("cephfs: {"), payload=("X:{", "}")
    )


def patched_text(text: str) -> str:
    document = Document.from_text(text)
    return document.replace(lines=patch(document.snapshot(), [make_rule()])).to_text()


def test_split_keepends_only_splits_on_newline() -> None:
    assert split_keepends("a\r\nb\nc") == ["a\r\n", "b\n", "c"]
    assert split_keepends("") == []


def test_diff_has_labels_and_single_hunk() -> None:
    diff = unified_diff_text("a\nb\n", "a\nX\nb\n", "orig.js", "new.js")

    assert diff.splitlines() == [
        "--- orig.js",
        "+++ new.js",
        "@@ -1,2 +1,3 @@",
        " a",
        "+X",
        " b",
    ]


def test_identical_texts_produce_empty_diff() -> None:
    assert unified_diff_text("same\n", "same\n", "a", "b") == ""


def test_missing_final_newline_is_marked() -> None:
    diff = unified_diff_text("a\nb", "a\nc", "a", "b")

    assert f"-b\n{NO_NEWLINE_MARKER}\n+c\n{NO_NEWLINE_MARKER}\n" in diff


@pytest.mark.parametrize(
    "original",
    [
        "a\ncephfs: {\nb\n",
        "a\ncephfs: {\nb",
        "cephfs: {\n",
        "\n".join(f"line {n}" for n in range(40)) + "\n    cephfs: {\nend\n",
    ],
)
def test_diff_then_apply_reproduces_patched_document(original: str) -> None:
    modified = patched_text(original)
    diff = DifflibDiffer().diff(
        original, modified, original_label="a.js", modified_label="b.js"
    )

    assert apply_unified_diff(original, diff) == modified


def test_apply_handles_pure_insertion_hunk() -> None:
    diff = "--- a\n+++ b\n@@ -1,0 +2,2 @@\n+x\n+y\n"

    assert apply_unified_diff("a\nb\n", diff) == "a\nx\ny\nb\n"


def test_apply_rejects_context_mismatch() -> None:
    diff = unified_diff_text("a\nb\n", "a\nX\nb\n", "o", "n")

    with pytest.raises(PatchApplyError) as info:
        apply_unified_diff("z\nb\n", diff)

    assert info.value.hunk == 1


def test_parse_rejects_truncated_hunk() -> None:
    with pytest.raises(PatchApplyError):
        parse_hunks("@@ -1,3 +1,3 @@\n a\n")


def test_in_memory_validator_reports_result() -> None:
    diff = unified_diff_text("a\nb\n", "a\nX\nb\n", "o", "n")
    validator = InMemoryPatchValidator()

    assert validator.validate(diff, "a\nb\n").ok
    report = validator.validate(diff, "q\nr\n")
    assert not report.ok
    assert "does not match" in report.diagnostics
