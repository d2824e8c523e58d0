"""
issuance.version — semantic version string and VCS describe helper.

Usage:
    from issuance.version import __version__, git_describe
"""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "0.1.0"


@lru_cache(maxsize=1)
def git_describe() -> str:
    """
    Return a best-effort 'git describe' style string.

    Resolution order:
      1) Environment override ISSUANCE_GIT_DESCRIBE (useful in containers).
      2) `git describe --tags --dirty --always` (if .git and git available).
      3) Fallback to __version__ + "+local".
    """
    override = os.getenv("ISSUANCE_GIT_DESCRIBE")
    if override:
        return override.strip()

    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--dirty", "--always"],
            stderr=subprocess.DEVNULL,
        )
        desc = out.decode("utf-8", "replace").strip()
        if desc:
            return desc
    except (OSError, subprocess.CalledProcessError):
        pass

    return f"{__version__}+local"


__all__ = ["__version__", "git_describe"]
