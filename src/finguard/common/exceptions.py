"""Finguard exception hierarchy."""


class FinguardError(Exception):
    """Base exception for all Finguard errors."""

    def __init__(self, message: str = "", code: str = "FINGUARD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthorizationDenied(FinguardError):
    """Raised when the policy engine denies a capability."""

    def __init__(self, message: str = "You do not have permission to do this", code: str = "AUTHZ_DENIED"):
        super().__init__(message, code=code)


class LastAdminProtectionError(AuthorizationDenied):
    """Raised when an operation would leave a company without any admin."""

    def __init__(self, message: str = "cannot remove last admin"):
        super().__init__(message, code="LAST_ADMIN")


class SubscriptionInactiveError(FinguardError):
    """Raised when the company's subscription is suspended or cancelled.

    Kept apart from AuthorizationDenied so callers can route the user to a
    billing flow instead of a generic permission error.
    """

    def __init__(self, message: str = "subscription inactive"):
        super().__init__(message, code="SUBSCRIPTION_INACTIVE")


class TenantNotFoundError(FinguardError):
    """Raised at API boundaries when a principal has no home company yet."""

    def __init__(self, message: str = "No company found for this user"):
        super().__init__(message, code="NOT_FOUND")


class CompanyNotFoundError(FinguardError):
    def __init__(self, message: str = "Company not found"):
        super().__init__(message, code="NOT_FOUND")


class MemberNotFoundError(FinguardError):
    def __init__(self, message: str = "Member not found"):
        super().__init__(message, code="NOT_FOUND")


class CredentialNotFoundError(FinguardError):
    def __init__(self, message: str = "Credential not found"):
        super().__init__(message, code="NOT_FOUND")


class SubscriptionNotFoundError(FinguardError):
    def __init__(self, message: str = "Subscription not found"):
        super().__init__(message, code="NOT_FOUND")


class MembershipConflictError(FinguardError):
    """Raised when a principal already holds a role in some company."""

    def __init__(self, message: str = "User already belongs to a company"):
        super().__init__(message, code="MEMBERSHIP_CONFLICT")


class InvalidInputError(FinguardError):
    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="INVALID_INPUT")


class AuditImmutableError(FinguardError):
    """Raised when something tries to update or delete an audit record."""

    def __init__(self, message: str = "Audit records are append-only"):
        super().__init__(message, code="AUDIT_IMMUTABLE")


_HTTP_STATUS = {
    "AUTHZ_DENIED": 403,
    "LAST_ADMIN": 403,
    "SUBSCRIPTION_INACTIVE": 402,
    "NOT_FOUND": 404,
    "MEMBERSHIP_CONFLICT": 409,
    "INVALID_INPUT": 422,
    "AUDIT_IMMUTABLE": 409,
}


def http_status_for(exc: FinguardError) -> int:
    """Map an error code onto the HTTP status returned by the API."""
    return _HTTP_STATUS.get(exc.code, 400)
