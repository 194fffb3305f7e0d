# =======================================================================================
# gate_service/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "GateServiceError", "ConfigurationError", "AuthenticationError", "AuthorizationError",
    "ForbiddenError", "TokenError", "MalformedTokenError", "InvalidSignatureError",
    "TokenExpiredError", "EntityIdGenerationError",
    "OnboardingIncompleteError", "PersistenceError", "InvalidRequestError", "RequestValidator",
]
