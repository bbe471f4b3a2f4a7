"""Process exit codes for the mrel CLI."""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    Values are part of the CLI contract and must stay stable:
    - 0: every queued unit released (or nothing to release)
    - 1: user error (bad flag values, invalid arguments)
    - 2: configuration error (missing/malformed manifest or mrel.toml, cycles)
    - 3: release error (at least one unit failed)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    RELEASE_ERROR = 3

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
