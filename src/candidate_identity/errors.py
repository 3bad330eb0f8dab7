"""Error taxonomy for identity reconciliation and OTP verification.

Every error carries the HTTP status it maps to and a caller-facing message,
so the API layer can render it without knowing the individual types.
"""

from __future__ import annotations

from enum import Enum


class ConflictKind(str, Enum):
    """Which contact collided with a profile bound to another identity."""

    PHONE = "phone"
    EMAIL = "email"


class ChallengeFailure(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    INVALID = "invalid"


class IdentityError(Exception):
    """Base class for all expected, caller-actionable failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(IdentityError):
    """Malformed input. Raised before any state is touched."""

    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field

    def to_body(self) -> dict:
        return {**super().to_body(), "field": self.field}


class ConflictError(IdentityError):
    """The contact belongs to a profile bound to a different subject id.

    The caller must prove ownership of the contact through an OTP merge.
    """

    status_code = 409

    def __init__(self, kind: ConflictKind) -> None:
        super().__init__(
            f"This {kind.value} is already registered to another account. "
            f"Verify the {kind.value} to merge it with your sign-in."
        )
        self.kind = kind

    def to_body(self) -> dict:
        return {**super().to_body(), "conflictType": self.kind.value}


_CHALLENGE_MESSAGES = {
    ChallengeFailure.NOT_FOUND: "No code found for this contact. Request a new code.",
    ChallengeFailure.EXPIRED: "Code expired. Request a new code.",
    ChallengeFailure.INVALID: "Invalid code",
}


class ChallengeError(IdentityError):
    status_code = 400

    def __init__(self, reason: ChallengeFailure) -> None:
        super().__init__(_CHALLENGE_MESSAGES[reason])
        self.reason = reason

    def to_body(self) -> dict:
        return {**super().to_body(), "reason": self.reason.value}


class ChannelUnavailableError(IdentityError):
    """The delivery channel has no provider credentials configured."""

    def __init__(self, channel: str, message: str, status_code: int) -> None:
        super().__init__(message)
        self.channel = channel
        self.status_code = status_code


class DeliveryError(IdentityError):
    """The sender was configured but did not accept the message."""

    status_code = 502

    def __init__(self, channel: str) -> None:
        super().__init__(f"Failed to send the verification code by {channel}. Please try again.")
        self.channel = channel


class StoreConstraintError(IdentityError):
    """A uniqueness constraint rejected the write (concurrent registration)."""

    status_code = 409

    def __init__(self, field: str | None = None) -> None:
        super().__init__(
            "This account changed while your request was processed. Please try again."
        )
        self.field = field

    def to_body(self) -> dict:
        return {**super().to_body(), "field": self.field}


class ProfileNotFoundError(IdentityError):
    status_code = 404


class ProfileNotLinkedError(IdentityError):
    status_code = 403

    def __init__(self) -> None:
        super().__init__(
            "Complete your profile first. Go to the registration page and "
            "enter your name, email, and phone."
        )


class AuthenticationError(IdentityError):
    status_code = 401


class IdentityProviderUnavailableError(IdentityError):
    status_code = 503
