# gutcheck/core/errors.py
"""
Error taxonomy for the idea evaluation pipeline.

Every error carries a stable machine-readable ``code``, a human-readable
message, the HTTP status it maps to, and optional structured ``extra`` data
(counts, limits, "needs own key" flags) that clients use to drive remediation UI.
The FastAPI exception handler in ``gutcheck.main`` renders them as
``{"success": False, "error": {"code", "message", **extra}}``.
"""
from typing import Any, Dict, Optional


class GutCheckError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra}


class ValidationError(GutCheckError):
    """Bad input shape or length; the caller can resubmit corrected input."""
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidInputError(ValidationError):
    """Malformed payload (e.g. an undecodable audio data URL)."""
    code = "INVALID_INPUT"


class IdeaArchivedError(ValidationError):
    """Mutation attempted on an archived (terminal) idea."""
    code = "IDEA_ARCHIVED"
    status_code = 409


class VoiceUnavailableError(ValidationError):
    """Voice was the only content and no transcription credential exists."""
    code = "VOICE_TRANSCRIPTION_UNAVAILABLE"
    status_code = 422


class NotFoundError(GutCheckError):
    """Unknown id or cross-owner access. Never reveals existence to non-owners."""
    code = "NOT_FOUND"
    status_code = 404


class QuotaExceededError(GutCheckError):
    code = "QUOTA_EXCEEDED"
    status_code = 429

    def __init__(self, capability: str, count: int, limit: int):
        super().__init__(
            f"Free {capability} limit reached ({count}/{limit}). "
            f"Please provide your own API key to continue.",
            extra={
                "capability": capability,
                "count": count,
                "limit": limit,
                "needsOwnKey": True,
            },
        )
        self.capability = capability
        self.count = count
        self.limit = limit


class ConfigurationError(GutCheckError):
    """Server-side misconfiguration (missing master key / provider credential)."""
    code = "CONFIGURATION_ERROR"
    status_code = 503


class ProviderError(GutCheckError):
    """Upstream LLM or transcription call failed; retry later."""
    code = "PROVIDER_ERROR"
    status_code = 502


class TranscriptionError(ProviderError):
    code = "TRANSCRIPTION_ERROR"


class ParseError(GutCheckError):
    """The model replied, but not in a usable structure."""
    code = "PARSE_ERROR"
    status_code = 502


class EvaluationUnparsable(ParseError):
    code = "EVALUATION_UNPARSABLE"


class IntegrityError(GutCheckError):
    """A stored credential blob failed authentication on decrypt."""
    code = "CREDENTIAL_INTEGRITY"
    status_code = 500
