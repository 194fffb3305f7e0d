# =======================================================================================
# gate_service/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *

__all__ = [
    "Participant", "EntryLog", "ScanSession", "VerifyQRRequest", "ParticipantPublic",
    "NamedRef", "Verdict", "LoginRequest", "LoginResponse", "OnboardingRequest",
    "OnboardingResponse", "QRTokenResponse", "EntryLogItem", "EntryLogsResponse",
    "ScanSessionItem", "ScanSessionsResponse", "HealthResponse",
    "ScanType", "EntryStatus", "Role", "GATE_OPERATOR_ROLES", "LOG_VIEWER_ROLES", "has_role",
]
