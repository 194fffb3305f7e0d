# =======================================================================================
# gate_service/utils/exceptions.py - Custom Exceptions
# =======================================================================================
class GateServiceError(Exception):
    """Base exception for the gate verification service."""
    pass

class ConfigurationError(GateServiceError):
    """Raised when a required setting (e.g. the QR signing secret) is missing."""
    pass

class AuthenticationError(GateServiceError):
    """Raised when the caller has no valid session."""
    pass

class AuthorizationError(GateServiceError):
    """Raised when the caller's role does not allow the operation."""
    pass

ForbiddenError = AuthorizationError

class TokenError(GateServiceError):
    """Base class for QR token rejections."""
    pass

class MalformedTokenError(TokenError):
    """Raised when a token is not entityId:issuedAtMs:signature."""
    pass

class InvalidSignatureError(TokenError):
    """Raised when the token signature does not match."""
    pass

class TokenExpiredError(TokenError):
    """Raised when the token is older than the allowed age."""
    pass

class EntityIdGenerationError(GateServiceError):
    """Raised when a unique entity ID could not be generated."""
    pass

class OnboardingIncompleteError(GateServiceError):
    """Raised when a participant has no entity ID or QR token yet."""
    pass

class PersistenceError(GateServiceError):
    """Raised when the storage layer fails unexpectedly."""
    pass

class InvalidRequestError(GateServiceError):
    """Raised for request values that are well-typed but not acceptable."""
    pass
