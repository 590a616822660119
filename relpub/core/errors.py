"""Exit codes for the CLI.

The publish tool has a deliberately coarse contract: a run either succeeds
or aborts. Every abort condition (configuration, remote API, integrity,
I/O) exits with the same code so wrapper scripts only need one check.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. Values are part of the CLI contract."""

    OK = 0
    ABORTED = 2

    def __str__(self) -> str:
        return self.name.lower()
