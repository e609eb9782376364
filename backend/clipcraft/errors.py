"""Domain exceptions raised by clip generation and rendering services."""

from __future__ import annotations


class ClipCraftError(RuntimeError):
    """Base class for all errors surfaced to the caller of a run or export."""

    kind = "error"


class InputValidationError(ClipCraftError):
    """The input cannot produce clips (too short, nothing usable, bad config)."""

    kind = "validation"


class VideoTooShortError(InputValidationError):
    pass


class NoClipWorthyContentError(InputValidationError):
    def __init__(self, message: str = "No clip-worthy content found in this video") -> None:
        super().__init__(message)


class CredentialError(ClipCraftError):
    """The content-analysis collaborator rejected or is missing its API key."""

    kind = "credential_invalid"


class AnalysisError(ClipCraftError):
    """Malformed response, parse failure or transport error from the collaborator."""

    kind = "analysis"


class EngineInitError(ClipCraftError):
    """The transcoding engine could not be loaded."""

    kind = "engine"


class StagingError(ClipCraftError):
    """A file could not be copied into (or located for) the engine's working storage."""

    kind = "engine"


class TranscodeError(ClipCraftError):
    """The transcoding engine returned a failure for one job."""

    kind = "engine"

    def __init__(self, message: str, *, returncode: int | None = None, log_tail: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.log_tail = log_tail


def is_credential_message(message: str) -> bool:
    """Return True if a collaborator failure message points at a bad or missing key."""
    lower = message.lower()
    return (
        "api key" in lower
        or "api_key" in lower
        or "permission_denied" in lower
        or "unauthenticated" in lower
    )
