"""Run settings for the patch generator."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from moosefs_patch.workflow.system import (
    DEFAULT_INSTALLED_PATH,
    DEFAULT_MEMBER,
    DEFAULT_PACKAGE,
)

ENV_PREFIX = "MOOSEFS_PATCH_"
DIFFERS = ("diff", "difflib")
VALIDATORS = ("patch", "memory")


@dataclass(frozen=True)
class PatchConfig:
    """Where to read the pristine file, where to write the diff, which tools to use."""

    output: str = "pve-moosefs.patch"
    package: str = DEFAULT_PACKAGE
    member: str = DEFAULT_MEMBER
    installed_path: str = DEFAULT_INSTALLED_PATH
    source: Optional[str] = None
    workdir: Optional[str] = None
    differ: str = "diff"
    validator: str = "patch"
    emit_patched: bool = False
    only: tuple[str, ...] = ()
    skip: tuple[str, ...] = ()
    original_label: str = "pvemanagerlib.js"
    modified_label: str = "pvemanagerlib.patched.js"

    def __post_init__(self) -> None:
        if self.differ not in DIFFERS:
            raise ValueError(f"Unknown differ '{self.differ}', expected one of {DIFFERS}")
        if self.validator not in VALIDATORS:
            raise ValueError(
                f"Unknown validator '{self.validator}', expected one of {VALIDATORS}"
            )
        if not self.output:
            raise ValueError("output cannot be empty")
        object.__setattr__(self, "only", tuple(self.only))
        object.__setattr__(self, "skip", tuple(self.skip))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PatchConfig":
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for item in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{item.name.upper()}")
            if raw is None:
                continue
            if item.name == "emit_patched":
                values[item.name] = raw.lower() in {"1", "true", "yes", "on"}
            elif item.name in ("only", "skip"):
                values[item.name] = tuple(
                    part.strip() for part in raw.split(",") if part.strip()
                )
            else:
                values[item.name] = raw
        return cls(**values)

    def merged(self, **overrides: Any) -> "PatchConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


__all__ = ["DIFFERS", "PatchConfig", "VALIDATORS"]
