# =======================================================================================
# gate_service/services/auth_service.py - Login and Session Tokens
# =======================================================================================
import logging
from datetime import timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from ..config import config
from ..models.schemas import Participant
from ..repositories.base import GateRepository
from ..utils.exceptions import AuthenticationError, ConfigurationError
from ..utils.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthService:
    """Handles email/password login and signed session tokens."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 expire_minutes: Optional[int] = None, clock: Clock = utc_now):
        self.secret = secret if secret is not None else config.JWT_SECRET
        self.algorithm = algorithm or config.JWT_ALGORITHM
        self.expire_minutes = expire_minutes or config.JWT_EXPIRE_MINUTES
        self.clock = clock

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def create_user(self, repository: GateRepository, email: str, password: str, full_name: str,
                    role: str = "participant", **fields) -> Participant:
        return repository.create_participant(
            email=email,
            password_hash=self.hash_password(password),
            full_name=full_name,
            role=role,
            **fields,
        )

    def authenticate(self, repository: GateRepository, email: str, password: str) -> Optional[Participant]:
        """Active account with matching password, or None. Bumps login counters."""
        user = repository.find_participant_by_email(email)
        if not user or not user.is_active or not user.password_hash:
            return None

        if not self.verify_password(password, user.password_hash):
            return None

        repository.record_login(user.id, self.clock())
        return user

    # ---------- tokens ----------

    def _require_secret(self) -> str:
        if not self.secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        return self.secret

    def create_access_token(self, user: Participant) -> str:
        now = self.clock()
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.expire_minutes)).timestamp()),
        }
        return jwt.encode(claims, self._require_secret(), algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self._require_secret(), algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError("Invalid or expired session") from e

        if not payload.get("sub"):
            raise AuthenticationError("Invalid or expired session")
        return payload

    def resolve_user(self, repository: GateRepository, token: str) -> Participant:
        """Reload the session's user so role and active flag are current."""
        payload = self.decode_token(token)
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise AuthenticationError("Invalid or expired session") from e

        user = repository.find_participant_by_id(user_id)
        if user is None or not user.is_active:
            logger.warning("Session for missing or inactive user %s", user_id)
            raise AuthenticationError("Not authenticated")
        return user
