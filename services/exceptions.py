"""
Error taxonomy for the auth core.

Every AuthError is user-facing and final: the caller has to re-authenticate or
re-register. Messages are safe to return verbatim. Infrastructure failures
(database down, signer misconfigured) are NOT AuthErrors and surface as a
generic 500.
"""


class AuthError(Exception):
    code = "AUTH_ERROR"
    status = 400
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateIdentity(AuthError):
    code = "DUPLICATE_IDENTITY"
    status = 409
    default_message = "Email already registered"


class InvalidCredentials(AuthError):
    """Unknown email and wrong password on purpose share this one message."""

    code = "INVALID_CREDENTIALS"
    status = 401
    default_message = "Invalid email or password"


class AccountDisabled(AuthError):
    code = "ACCOUNT_DISABLED"
    status = 403
    default_message = "Account is disabled"


class InvalidToken(AuthError):
    code = "INVALID_TOKEN"
    status = 401
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    """Signature is fine but the embedded exp has passed."""

    code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class TokenExpiredOrRevoked(AuthError):
    code = "TOKEN_EXPIRED_OR_REVOKED"
    status = 401
    default_message = "Refresh token is expired or revoked"


class PrincipalNotFound(AuthError):
    code = "PRINCIPAL_NOT_FOUND"
    status = 404
    default_message = "User not found"


class SignerConfigurationError(RuntimeError):
    """Raised at startup when the signing key is unusable."""
