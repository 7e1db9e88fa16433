"""Build and version metadata.

Git context is injected through environment variables by the packaging
pipeline (``SENSILLUM_GIT_COMMIT``, ``SENSILLUM_GIT_TAG``,
``SENSILLUM_GIT_DIRTY``). The build time comes from ``SENSILLUM_BUILD_TIME``
or, when unset, from the install timestamp of the package itself.
"""

import os
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path

from sensillum import __version__


def version() -> str:
    """Package version (e.g. "0.1.0")."""
    return __version__


@lru_cache(maxsize=1)
def build_time() -> str:
    """UTC timestamp of this build in ISO-8601 form."""
    env_value = os.environ.get("SENSILLUM_BUILD_TIME", "").strip()
    if env_value:
        return env_value

    mtime = Path(__file__).with_name("__init__.py").stat().st_mtime
    return datetime.fromtimestamp(mtime, tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def git_commit() -> str | None:
    """Short git commit hash, if known."""
    return os.environ.get("SENSILLUM_GIT_COMMIT") or None


def git_tag() -> str | None:
    """Git tag pointing exactly at the built commit, if any."""
    return os.environ.get("SENSILLUM_GIT_TAG") or None


def git_dirty() -> bool:
    """Whether the working tree had uncommitted changes at build time."""
    return os.environ.get("SENSILLUM_GIT_DIRTY", "").lower() == "true"


def full_version() -> str:
    """Full version string including git context.

    Examples:
        "0.1.0 @ v0.1.0 (built 2026-02-18T12:00:00Z)"
        "0.1.0 @ a1b2c3d-dirty (built 2026-02-18T12:00:00Z)"
        "0.1.0 (built 2026-02-18T12:00:00Z)"
    """
    ref = git_tag() or git_commit()
    git_part = ""
    if ref:
        git_part = f" @ {ref}{'-dirty' if git_dirty() else ''}"
    return f"{version()}{git_part} (built {build_time()})"
