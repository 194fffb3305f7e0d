# =======================================================================================
# gate_service/services/__init__.py - Services Package
# =======================================================================================
from .token_codec import QRTokenCodec, DecodedToken
from .entry_log import EntryLogWriter
from .session_tracker import SessionTracker
from .gate_verification import GateVerificationService
from .auth_service import AuthService
from .onboarding_service import OnboardingService
from .dashboard_service import DashboardService

__all__ = [
    "QRTokenCodec", "DecodedToken", "EntryLogWriter", "SessionTracker", "GateVerificationService",
    "AuthService", "OnboardingService", "DashboardService",
]
