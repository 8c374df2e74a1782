"""Tagged errors raised by the matching pipeline.

Every error records the pipeline stage that failed so the caller can report
"match could not be computed" with context.  An empty result is never an
error.
"""

from __future__ import annotations


class MatchingError(Exception):
    stage: str = "match"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class EmptyVocabulary(MatchingError):
    """No distinct values are available to map against."""

    stage = "resolve"


class ResolutionFailed(MatchingError):
    """Classification backend unreachable or its answer was out of vocabulary."""

    stage = "resolve"


class InvalidMapping(MatchingError):
    """Structurally malformed vocabulary mapping (missing keys, wrong types)."""

    stage = "resolve"


class DatasetUnavailable(MatchingError):
    stage = "dataset"


class ProfileExtractionFailed(MatchingError):
    stage = "extract"
