"""Platform helpers: subprocesses and file location."""

from .files import find_files
from .process import ProcessError, run

__all__ = [
    # files
    "find_files",
    # process
    "ProcessError",
    "run",
]
