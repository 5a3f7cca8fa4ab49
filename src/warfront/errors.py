"""Error classes raised by the mission-state engine.

FatalConfigError    -- mission geometry or snapshot cannot be loaded; abort startup
InvariantViolation  -- an id the store guarantees to exist is missing (index corruption)
HostQueryError      -- a single live lookup against the host failed; skip and retry next tick
"""

from __future__ import annotations


class WarfrontError(Exception):
    """Base class for all warfront errors."""


class FatalConfigError(WarfrontError):
    """Mission geometry or persisted state is unusable."""


class InvariantViolation(WarfrontError, LookupError):
    """A lookup the store's own invariants guarantee has failed."""


class HostQueryError(WarfrontError):
    """A live position or line-of-sight query against the host failed."""
