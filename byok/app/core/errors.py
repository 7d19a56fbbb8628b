# byok/app/core/errors.py
"""
Error taxonomy shared by the vault, the orchestrator and the API layer.

Every error carries the HTTP status the API answers with, so endpoints can
let service errors propagate and a single exception handler renders them.

Vault decryption failures are NOT part of this taxonomy: they degrade to a
`None` / "invalid" result and never raise.
"""


class ByokError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    default_message = "Unexpected error."

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ByokError):
    """Bad input shape or range. Never retried."""

    status_code = 400
    default_message = "Invalid request."


class CredentialError(ByokError):
    """Missing or undecryptable provider key. Requires user action."""

    status_code = 409
    default_message = "No usable API key for this provider."


class ProviderPermissionError(ByokError):
    """The provider is not allowed for the current user."""

    status_code = 403
    default_message = "You do not have permission to use this provider."


class ProviderError(ByokError):
    """A provider adapter call failed."""

    status_code = 502
    default_message = "Video generation provider request failed."


class GenerationTimeoutError(ByokError):
    """The poll budget ran out before the provider reported a result."""

    status_code = 504
    default_message = "Video generation timed out."


class NotFoundError(ByokError):
    status_code = 404
    default_message = "Not found."


class InvalidTransitionError(ByokError):
    """A job in a terminal state was asked to change state."""

    status_code = 409
    default_message = "Generation is already finished."
