"""issuance.drop — claim conditions for public and allowlisted sales."""

from .conditions import ClaimConditionBook, ClaimTerms, effective_terms, evaluate, verify_allowlist

__all__ = ["ClaimConditionBook", "ClaimTerms", "effective_terms", "evaluate", "verify_allowlist"]
