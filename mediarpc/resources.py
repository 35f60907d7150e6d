"""Checks of process thread and open-file usage against system limits."""

from __future__ import annotations

import functools
import logging
import os
import re
from pathlib import Path

try:
    import resource
except ImportError:  # pragma: no cover - platforms without rlimits
    resource = None  # type: ignore[assignment]

__all__ = [
    "DEFAULT_RESOURCE_LIMIT_PERCENT",
    "RLIM_INFINITY",
    "ResourceLimitError",
    "stat_field",
    "get_number_of_threads",
    "get_number_of_open_files",
    "get_max_threads",
    "get_max_open_files",
    "check_threads",
    "check_open_files",
    "check_resources",
]

log = logging.getLogger(__name__)

DEFAULT_RESOURCE_LIMIT_PERCENT = 0.80
RLIM_INFINITY = resource.RLIM_INFINITY if resource is not None else -1

STAT_PATH = Path("/proc/self/stat")
FD_DIR = Path("/proc/self/fd")

_THREADS_FIELD = 19
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ResourceLimitError(Exception):
    """Raised when the process uses more than the allowed share of a limit."""

    code = "NOT_ENOUGH_RESOURCES"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def stat_field(line: str, sep: str, index: int) -> int:
    """Return the integer at token ``index`` of ``line`` split on ``sep``.

    Runs of separators count as one; a missing or non-numeric token gives 0.
    """
    tokens = [token for token in line.split(sep) if token]
    if index < 0 or index >= len(tokens):
        return 0
    match = _LEADING_INT.match(tokens[index])
    return int(match.group(1)) if match else 0


def get_number_of_threads() -> int:
    """Number of threads of this process, as reported by procfs."""
    try:
        with STAT_PATH.open() as stat_file:
            line = stat_file.readline().rstrip("\n")
    except OSError:
        line = ""
    return stat_field(line, " ", _THREADS_FIELD)


def get_number_of_open_files() -> int:
    """Number of entries in this process's fd directory, "." and ".." included."""
    try:
        entries = os.listdir(FD_DIR)
    except OSError:
        return 0
    return len(entries) + 2


def _soft_limit(name: str) -> int:
    if resource is None or not hasattr(resource, name):
        return 0
    soft, _hard = resource.getrlimit(getattr(resource, name))
    return soft


@functools.lru_cache(maxsize=None)
def get_max_threads() -> int:
    """Soft limit on the number of processes/threads for this user."""
    return _soft_limit("RLIMIT_NPROC")


@functools.lru_cache(maxsize=None)
def get_max_open_files() -> int:
    """Soft limit on the number of open file descriptors."""
    return _soft_limit("RLIMIT_NOFILE")


def _check(
    kind: str, maximum: int, used: int, limit_percent: float, ulimit_flag: str
) -> None:
    if maximum <= 0 or maximum == RLIM_INFINITY:
        return
    allowed = int(maximum * limit_percent)
    if used > allowed:
        message = f"Reached {kind} limit: {allowed}"
        log.warning(
            "%s (system max: %d); set a higher limit with `ulimit %s`, "
            "or in the service settings",
            message,
            maximum,
            ulimit_flag,
        )
        raise ResourceLimitError(message)


def check_threads(limit_percent: float) -> None:
    """Raise :class:`ResourceLimitError` if too many threads are running."""
    maximum = get_max_threads()
    if maximum <= 0 or maximum == RLIM_INFINITY:
        return
    _check("threads", maximum, get_number_of_threads(), limit_percent, "-Su")


def check_open_files(limit_percent: float) -> None:
    """Raise :class:`ResourceLimitError` if too many files are open."""
    maximum = get_max_open_files()
    if maximum <= 0 or maximum == RLIM_INFINITY:
        return
    _check("files", maximum, get_number_of_open_files(), limit_percent, "-Sn")


def check_resources(limit_percent: float) -> None:
    """Check both the thread and open-file limits."""
    check_threads(limit_percent)
    check_open_files(limit_percent)