"""Rule registry responsible for storing insertion rules in order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from moosefs_patch.runtime.telemetry import span

from .models import InsertionRule


@dataclass(slots=True)
class RegistryStats:
    """Lightweight snapshot describing registry state."""

    rule_count: int
    payload_lines: int
    rule_ids: tuple[str, ...]


class RuleConflictError(RuntimeError):
    """Raised when a rule id is registered twice."""

    def __init__(self, rule: InsertionRule, existing: InsertionRule):
        super().__init__(f"Rule '{rule.id}' is already registered")
        self.rule = rule
        self.existing = existing


class RuleRegistry:
    """Owns insertion rules and preserves their registration order."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._rules: Dict[str, InsertionRule] = {}
        self._logger_name = logger_name

    def register(self, rule: InsertionRule) -> InsertionRule:
        with span(
            "rules::register",
            logger_name=self._logger_name,
            component="rules",
            metadata={"rule_id": rule.id, "anchor": rule.anchor_label},
        ) as handle:
            existing = self._rules.get(rule.id)
            if existing is not None:
                handle.add_metadata("conflict", existing.id)
                raise RuleConflictError(rule, existing)
            self._rules[rule.id] = rule
            return rule

    def __len__(self) -> int:
        return len(self._rules)

    def rules(self) -> tuple[InsertionRule, ...]:
        return tuple(self._rules.values())

    def stats(self) -> RegistryStats:
        return RegistryStats(
            rule_count=len(self._rules),
            payload_lines=sum(len(rule.payload) for rule in self._rules.values()),
            rule_ids=tuple(self._rules),
        )


__all__ = [
    "RuleRegistry",
    "RuleConflictError",
    "RegistryStats",
]
