"""Platform abstraction layer."""

from .files import atomic_write_text, scratch_dir
from .process import ProcessError, run, run_interactive

__all__ = [
    # files
    "atomic_write_text",
    "scratch_dir",
    # process
    "ProcessError",
    "run",
    "run_interactive",
]
