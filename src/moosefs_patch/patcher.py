"""Anchor patcher: splice rule payloads in front of matching lines."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence

from moosefs_patch.document import Document
from moosefs_patch.rules import InsertionRule
from moosefs_patch.runtime import telemetry


def patch(document: Sequence[str], rules: Sequence[InsertionRule]) -> tuple[str, ...]:
    """Return ``document`` with each rule's payload inserted before its anchors.

    Every line is checked against every rule, in rule order. Rules fire on each
    matching line unless they were built with ``once=True``. Input lines are
    copied unchanged and in order.
    """

    lines, _ = _splice(document, rules)
    return lines


def _splice(
    document: Sequence[str], rules: Sequence[InsertionRule]
) -> tuple[tuple[str, ...], dict[str, list[int]]]:
    result: List[str] = []
    hits: dict[str, list[int]] = {rule.id: [] for rule in rules}

    for index, line in enumerate(document):
        for rule in rules:
            if rule.once and hits[rule.id]:
                continue
            if rule.matches(line):
                result.extend(rule.payload)
                hits[rule.id].append(index)
        result.append(line)

    return tuple(result), hits


@dataclass(frozen=True, slots=True)
class PatchOutcome:
    """Patched document plus where each rule fired in the input."""

    original: Document
    patched: Document
    hits: Mapping[str, tuple[int, ...]] = field(default_factory=dict)

    @property
    def unmatched(self) -> tuple[str, ...]:
        return tuple(rule_id for rule_id, indices in self.hits.items() if not indices)

    @property
    def inserted_lines(self) -> int:
        return self.patched.line_count - self.original.line_count

    @property
    def changed(self) -> bool:
        return self.inserted_lines > 0


class AnchorPatcher:
    """Applies an ordered rule set to documents and reports the result."""

    def __init__(
        self, rules: Iterable[InsertionRule], *, logger_name: Optional[str] = None
    ) -> None:
        self.rules = tuple(rules)
        self._logger_name = logger_name
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id '{rule.id}'")
            seen.add(rule.id)

    def apply(self, document: Document) -> PatchOutcome:
        with telemetry.span(
            "patcher::apply",
            logger_name=self._logger_name,
            component="patcher",
            metadata={"document": document.name, "rules": len(self.rules)},
        ) as handle:
            lines, hits = _splice(document.snapshot(), self.rules)
            outcome = PatchOutcome(
                original=document,
                patched=document.replace(lines=lines),
                hits=MappingProxyType(
                    {rule_id: tuple(indices) for rule_id, indices in hits.items()}
                ),
            )
            handle.add_metadata("inserted", outcome.inserted_lines)
            for rule in self.rules:
                indices = outcome.hits[rule.id]
                if not indices:
                    telemetry.record_event(
                        "patcher.anchor_missing",
                        level="warning",
                        data={"rule": rule.id, "anchor": rule.anchor_label},
                        logger_name=self._logger_name,
                    )
                elif len(indices) > 1:
                    telemetry.record_event(
                        "patcher.anchor_repeated",
                        level="warning",
                        data={"rule": rule.id, "lines": [i + 1 for i in indices]},
                        logger_name=self._logger_name,
                    )
            return outcome


__all__ = ["AnchorPatcher", "PatchOutcome", "patch"]
