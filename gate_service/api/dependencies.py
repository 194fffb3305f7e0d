# =======================================================================================
# gate_service/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from datetime import timedelta
from typing import Callable, Iterator, Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from ..config import config
from ..database import db_manager
from ..models.enums import GATE_OPERATOR_ROLES, LOG_VIEWER_ROLES, has_role
from ..models.schemas import Participant
from ..repositories import GateRepository, InMemoryGateRepository, InMemoryStore, SqlGateRepository
from ..services import AuthService, GateVerificationService, OnboardingService, QRTokenCodec
from ..utils.exceptions import AuthenticationError, AuthorizationError
from ..utils.timeutils import Clock, utc_now

bearer = HTTPBearer(auto_error=False)

# Shared by every request when STORAGE_BACKEND=memory
memory_store = InMemoryStore()


def get_repository() -> Iterator[GateRepository]:
    """One repository per request; SQL work runs in a single transaction."""
    if config.STORAGE_BACKEND == "memory":
        yield InMemoryGateRepository(memory_store)
        return

    with db_manager.get_connection() as conn:
        yield SqlGateRepository(conn)


def get_clock() -> Clock:
    return utc_now


def get_token_codec(clock: Clock = Depends(get_clock)) -> QRTokenCodec:
    """Raises ConfigurationError while QR_SECRET is unset."""
    return QRTokenCodec(config.QR_SECRET, max_age=timedelta(hours=config.QR_MAX_AGE_HOURS), clock=clock)


def get_auth_service() -> AuthService:
    return AuthService()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    repository: GateRepository = Depends(get_repository),
    auth_service: AuthService = Depends(get_auth_service),
) -> Participant:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return auth_service.resolve_user(repository, credentials.credentials)


def require_roles(allowed, message: str = "Unauthorized") -> Callable[..., Participant]:
    """Dependency factory: current user must hold one of ``allowed``."""
    def dependency(user: Participant = Depends(get_current_user)) -> Participant:
        if not has_role(user.role, allowed):
            raise AuthorizationError(message)
        return user
    return dependency


require_gate_operator = require_roles(GATE_OPERATOR_ROLES, "Unauthorized - Gate volunteer access required")
require_log_viewer = require_roles(LOG_VIEWER_ROLES, "Forbidden - Admin access required")


def get_gate_service(
    repository: GateRepository = Depends(get_repository),
    codec: QRTokenCodec = Depends(get_token_codec),
    clock: Clock = Depends(get_clock),
) -> GateVerificationService:
    return GateVerificationService(
        repository,
        codec,
        clock=clock,
        default_location=config.DEFAULT_GATE_LOCATION,
        audit_deactivated=config.AUDIT_DEACTIVATED_SCANS,
    )


def get_onboarding_service(
    repository: GateRepository = Depends(get_repository),
    codec: QRTokenCodec = Depends(get_token_codec),
    clock: Clock = Depends(get_clock),
) -> OnboardingService:
    return OnboardingService(repository, codec, clock=clock)
