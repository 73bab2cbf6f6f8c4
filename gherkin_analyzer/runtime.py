"""Java runtime discovery and version validation.

The analysis server is a Java 17+ program. Before it is launched the Java
executable is looked up in this order, first hit wins:

    1. the configured ``java.home`` (an executable or an installation root)
    2. the ``JAVA_HOME`` environment variable
    3. the process search path (``which java`` / ``where java``)

Subprocesses go through an injectable *runner* (``subprocess.run`` by default)
so the lookups can be exercised without a JDK installed.
"""

import os
import re
import subprocess
import sys
from pathlib import Path
from typing import Callable, Iterator

from gherkin_analyzer.models import (
    SOURCE_CONFIGURED,
    SOURCE_ENV_HOME,
    SOURCE_SEARCH_PATH,
    RuntimeCandidate,
    RuntimeInfo,
)

MIN_JAVA_VERSION = 17
JAVA_HOME_ENV = "JAVA_HOME"
VERSION_CHECK_TIMEOUT = 10
SEARCH_PATH_TIMEOUT = 5

Runner = Callable[..., subprocess.CompletedProcess]

# Matches version "17.0.1", version "1.8.0_352", version "21-ea"; a quoted
# value on an earlier "Picked up JAVA_TOOL_OPTIONS" line is skipped
_VERSION_RE = re.compile(r'version\s+"(\d+)(?:\.(\d+))?')


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RuntimeNotAvailableError(Exception):
    """Base exception for a runtime that cannot be used to start the server."""


class ExecutableNotFoundError(RuntimeNotAvailableError):
    """Raised when no Java executable is found in any lookup source."""


class VersionBelowMinimumError(RuntimeNotAvailableError):
    """Raised when the Java executable found is older than required."""

    def __init__(self, path: str, version: int, minimum: int) -> None:
        self.path = path
        self.version = version
        self.minimum = minimum
        super().__init__(
            f"Java {minimum}+ is required, but found Java {version} at '{path}'. "
            f"Set 'java.home' to a JDK {minimum}+ installation."
        )


# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------

def parse_java_version(text: str) -> int | None:
    """Return the major version announced in a ``java -version`` banner.

    Pre-9 runtimes report ``1.<major>`` (``"1.8.0_352"`` is Java 8).
    """
    match = _VERSION_RE.search(text or "")
    if not match:
        return None
    major = int(match.group(1))
    if major == 1 and match.group(2):
        return int(match.group(2))
    return major


def get_java_version(java_exe: str, runner: Runner = subprocess.run) -> int | None:
    """Run ``<java_exe> -version`` and parse its banner, or None on failure."""
    try:
        completed = runner(
            [java_exe, "-version"],
            check=False,
            text=True,
            capture_output=True,
            timeout=VERSION_CHECK_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    # Most JVMs print the banner on stderr
    return parse_java_version((completed.stderr or "") + "\n" + (completed.stdout or ""))


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def java_executable_name() -> str:
    return "java.exe" if sys.platform == "win32" else "java"


def resolve_java_path(home_or_path: str) -> str | None:
    """Return *home_or_path* if it is a file, else ``<home>/bin/java`` if present."""
    path = Path(home_or_path)
    try:
        if path.is_file():
            return str(path)
        exe = path / "bin" / java_executable_name()
        if exe.is_file():
            return str(exe)
    except OSError:
        return None
    return None


def _search_path(runner: Runner) -> str | None:
    command = ["where", "java"] if sys.platform == "win32" else ["which", "java"]
    try:
        completed = runner(
            command,
            check=False,
            text=True,
            capture_output=True,
            timeout=SEARCH_PATH_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if completed.returncode != 0:
        return None

    lines = (completed.stdout or "").strip().splitlines()
    first_line = lines[0].strip() if lines else ""
    if first_line and Path(first_line).is_file():
        return first_line
    return None


def iter_candidates(
    configured_path: str | None = None,
    runner: Runner = subprocess.run,
) -> Iterator[RuntimeCandidate]:
    """Yield resolvable Java executables in priority order.

    Sources are only consulted when the previous ones have been consumed,
    so taking the first item never spawns ``which``.
    """
    if configured_path:
        found = resolve_java_path(configured_path)
        if found:
            yield RuntimeCandidate(found, SOURCE_CONFIGURED)

    java_home = os.environ.get(JAVA_HOME_ENV)
    if java_home:
        found = resolve_java_path(java_home)
        if found:
            yield RuntimeCandidate(found, SOURCE_ENV_HOME)

    found = _search_path(runner)
    if found:
        yield RuntimeCandidate(found, SOURCE_SEARCH_PATH)


def locate_java(
    configured_path: str | None = None,
    runner: Runner = subprocess.run,
) -> RuntimeCandidate | None:
    return next(iter_candidates(configured_path, runner), None)


def find_java_executable(
    configured_path: str | None = None,
    runner: Runner = subprocess.run,
) -> str | None:
    candidate = locate_java(configured_path, runner)
    return candidate.path if candidate else None


def resolve_runtime(
    configured_path: str | None = None,
    minimum_version: int = MIN_JAVA_VERSION,
    runner: Runner = subprocess.run,
) -> RuntimeInfo:
    """Return the Java runtime to launch the analysis server with.

    A runtime whose version cannot be determined is accepted; the caller
    reports it as ``unknown``.

    Raises:
        ExecutableNotFoundError:  nothing found in any source
        VersionBelowMinimumError: the runtime found is too old
    """
    candidate = locate_java(configured_path, runner)
    if candidate is None:
        tried = []
        if configured_path:
            tried.append(f"java.home = '{configured_path}'")
        tried.append(f"{JAVA_HOME_ENV} = '{os.environ.get(JAVA_HOME_ENV, '')}'")
        tried.append("java on PATH")
        raise ExecutableNotFoundError(
            f"Java {minimum_version}+ is required but was not found (tried: {'; '.join(tried)}). "
            f"Set 'java.home' in the config file, or ensure {JAVA_HOME_ENV} or java is on PATH."
        )

    version = get_java_version(candidate.path, runner)
    if version is not None and version < minimum_version:
        raise VersionBelowMinimumError(candidate.path, version, minimum_version)

    return RuntimeInfo(path=candidate.path, source=candidate.source, version=version)
