"""Built-in MooseFS insertion rules and their template payloads."""

from __future__ import annotations

from importlib import resources
from typing import Sequence

from .models import InsertionRule, contains, starts_with
from .registry import RuleRegistry

TEMPLATE_PACKAGE = "moosefs_patch.templates"
STORAGE_TYPE_TEMPLATE = "moosefs_storage_type.js"
PANEL_TEMPLATE = "moosefs_panel.js"

STORAGE_TYPE_ANCHOR = "cephfs: {"
PANEL_ANCHOR = "Ext.define('PVE.storage.BTRFSInputPanel'"


def load_template(name: str) -> str:
    """Return the text of a bundled payload template."""

    return resources.files(TEMPLATE_PACKAGE).joinpath(name).read_text(encoding="utf-8")


def default_rules() -> tuple[InsertionRule, ...]:
    """Build the storage-type entry rule followed by the UI panel rule."""

    return (
        InsertionRule.from_text(
            "storage_type.moosefs",
            starts_with(STORAGE_TYPE_ANCHOR),
            load_template(STORAGE_TYPE_TEMPLATE),
            description="Register MooseFS ahead of CephFS in the storage type table",
        ),
        InsertionRule.from_text(
            "panel.moosefs",
            contains(PANEL_ANCHOR),
            load_template(PANEL_TEMPLATE),
            description="Define the MooseFS input panel ahead of the BTRFS panel",
            trailing=("",),
        ),
    )


def load_default_rules(
    registry: RuleRegistry,
    *,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> None:
    """Register the built-in rules in order, filtered by rule id.

    Unknown ids in ``include`` or ``exclude`` and a selection that leaves no
    rule at all raise ``ValueError``.
    """

    rules = default_rules()
    known = {rule.id for rule in rules}
    unknown = sorted((set(include or ()) | set(exclude or ())) - known)
    if unknown:
        raise ValueError(
            f"Unknown rule ids {unknown}, expected some of {sorted(known)}"
        )

    include_set = set(include) if include else None
    exclude_set = set(exclude or ())
    selected = [
        rule
        for rule in rules
        if (include_set is None or rule.id in include_set) and rule.id not in exclude_set
    ]
    if not selected:
        raise ValueError("No insertion rules selected")

    for rule in selected:
        registry.register(rule)


def default_rule_ids() -> tuple[str, ...]:
    return tuple(rule.id for rule in default_rules())


__all__ = [
    "PANEL_ANCHOR",
    "STORAGE_TYPE_ANCHOR",
    "default_rule_ids",
    "default_rules",
    "load_default_rules",
    "load_template",
]
