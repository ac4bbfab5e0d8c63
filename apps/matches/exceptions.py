# apps/matches/exceptions.py
"""Errors raised by the match ingestion pipeline."""

from __future__ import annotations

from common.errors import ServiceError


class MatchValidationError(ServiceError):
    """The submission is malformed or incomplete. Not retryable."""

    status_code = 400
    default_detail = "The match submission is invalid."


class IncompleteConfirmationError(MatchValidationError):
    default_detail = "Select your team, your opponent and the result before saving."

    def __init__(self, missing: list[str]) -> None:
        super().__init__(missing=missing)
        self.missing = missing


class WorkflowStateError(MatchValidationError):
    default_detail = "That step is not available right now."


class InvalidSelectionError(MatchValidationError):
    default_detail = "That selection is not allowed."


class UnknownPlayerError(MatchValidationError):
    default_detail = "Both participants must be registered players."


class InvalidImageError(MatchValidationError):
    default_detail = "Upload a PNG, JPEG, WEBP or HEIC screenshot."


class DuplicateMatchError(ServiceError):
    """A match with the same fingerprint is already stored."""

    status_code = 409
    default_detail = "This match has already been uploaded."


class MatchCommitError(ServiceError):
    """The store failed mid-commit; nothing was written and the caller may retry."""

    status_code = 503
    default_detail = "Could not save the match right now. Please try again."
    retryable = True


class ExtractionError(ServiceError):
    """The AI service could not read the screenshot."""

    status_code = 502
    default_detail = "Could not read stats from the screenshot. Try another image."
    retryable = True


class ImmutableMatchError(RuntimeError):
    """Programming error: something tried to rewrite a committed match."""
