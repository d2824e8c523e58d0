"""
Issuance engine — authorization and supply accounting for signature mints,
drops (claim conditions) and lazy-minted batches with delayed reveal.

This package exposes only lightweight metadata at import time. Import the
coordinator explicitly from `issuance.runtime` to build an engine.
"""

try:
    from .version import __version__, git_describe  # type: ignore
except Exception:  # pragma: no cover - fallback for fresh checkouts
    __version__ = "0.0.0+local"

    def git_describe() -> str:
        """Return a best-effort version string when VCS metadata isn't available."""
        return __version__

__all__ = ["__version__", "git_describe"]
