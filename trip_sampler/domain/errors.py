"""
Error types for the Trip Sampler.

Every task-level failure derives from `SamplerError` and carries a stable
`kind` string. Runners report that string in task outcomes so failures stay
readable after they have been flattened into plain dictionaries.
"""

from __future__ import annotations


class SamplerError(Exception):
    """Base class for partition sampling failures."""

    kind: str = "SamplerError"


class SourceNotFound(SamplerError):
    """The source file for a partition does not exist or cannot be read."""

    kind = "SourceNotFound"


class SchemaMismatch(SamplerError):
    """A source row does not fit the declared schema (strict row policy)."""

    kind = "SchemaMismatch"


class InvalidSampleSize(SamplerError):
    """Sample size is not a positive integer."""

    kind = "InvalidSampleSize"


class InsufficientRecords(SamplerError):
    """Fewer decoded records than requested sample size."""

    kind = "InsufficientRecords"


class WriteFailure(SamplerError):
    """The sample artifact could not be written or published."""

    kind = "WriteFailure"


class FieldDecodeError(ValueError):
    """A single field could not be decoded to its declared column type."""


class RunFailed(RuntimeError):
    """Raised by the orchestrator when a strict run has failed partitions."""

    def __init__(self, message: str, failed: list[str] | None = None) -> None:
        super().__init__(message)
        self.failed = failed or []


__all__ = [
    "SamplerError",
    "SourceNotFound",
    "SchemaMismatch",
    "InvalidSampleSize",
    "InsufficientRecords",
    "WriteFailure",
    "FieldDecodeError",
    "RunFailed",
]
