"""Domain exceptions raised by the Meriter core services.

Permission checks never raise for a denial; these errors are reserved for
requests the caller cannot proceed with at all (missing invite, exhausted
quota, wrong role for an invite type and so on). Each error carries a stable
machine-readable ``code`` and the HTTP status the API layer maps it to.
"""

from __future__ import annotations


class CoreError(RuntimeError):
    """Base class for all domain errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotLoggedInError(CoreError):
    """Raised when an action requires an authenticated user."""

    code = "notLoggedIn"
    status_code = 401


class NotFoundError(CoreError):
    """Raised when a resource, invite or community does not exist."""

    code = "notFound"
    status_code = 404


class AlreadyUsedError(CoreError):
    """Raised when redeeming an invite that has already been consumed."""

    code = "alreadyUsed"
    status_code = 409


class ExpiredError(CoreError):
    """Raised when redeeming an invite after its expiry."""

    code = "expired"
    status_code = 410


class NotForYouError(CoreError):
    """Raised when an invite addressed to another user is redeemed."""

    code = "notForYou"
    status_code = 403


class ForbiddenError(CoreError):
    """Raised on a role or community type mismatch."""

    code = "forbidden"
    status_code = 403


class NoTeamCommunityError(CoreError):
    """Raised when a lead-to-participant invite cannot find the creator's team."""

    code = "noTeamCommunity"
    status_code = 400


class InsufficientQuotaError(CoreError):
    """Raised when a charge needs more daily quota than remains."""

    code = "insufficientQuota"
    status_code = 400


class InsufficientBalanceError(CoreError):
    """Raised when a charge needs more wallet balance than is available."""

    code = "insufficientBalance"
    status_code = 400
