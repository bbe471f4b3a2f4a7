"""Error payload for the release bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "config_invalid",
    "no_units",
    "cyclic_dependency",
    "unresolved_dependency",
    "collaborator_failed",
    "git_failed",
    "propagation_diverged",
    "invalid_input",
]

# Kinds that abort the whole run rather than a single unit.
RUN_SCOPED_KINDS: frozenset[str] = frozenset({"config_invalid", "no_units", "cyclic_dependency"})


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Collaborator errors travel unchanged from the plugin that produced them to
    the per-unit report, so this shape is shared by every layer.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def run_scoped(self) -> bool:
        return self.kind in RUN_SCOPED_KINDS

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
