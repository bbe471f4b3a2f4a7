from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    """Change severity of a release, ordered none < patch < minor < major."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def releases(self) -> bool:
        return self is not Severity.NONE

    @classmethod
    def parse(cls, value: str) -> Severity | None:
        """Parse "patch"/"minor"/"major"/"none" (case-insensitive); None if unknown."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None
