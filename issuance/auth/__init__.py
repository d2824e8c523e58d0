"""issuance.auth — replay protection for signed requests."""

from .replay import ReplayGuard

__all__ = ["ReplayGuard"]
