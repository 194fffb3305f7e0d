# =======================================================================================
# gate_service/services/onboarding_service.py - Entity IDs and QR Credentials
# =======================================================================================
import logging
import secrets
from typing import Callable, Optional, Tuple
from ..config import config
from ..models.schemas import Participant
from ..repositories.base import GateRepository
from ..utils.exceptions import EntityIdGenerationError, OnboardingIncompleteError
from ..utils.timeutils import Clock, utc_now
from .token_codec import QRTokenCodec

logger = logging.getLogger(__name__)


class OnboardingService:
    """Assigns entity IDs at onboarding completion and (re)issues QR tokens."""

    def __init__(self, repository: GateRepository, codec: QRTokenCodec, clock: Clock = utc_now,
                 prefix: Optional[str] = None, max_attempts: Optional[int] = None,
                 random_suffix: Callable[[], str] = lambda: secrets.token_hex(2).upper()):
        self.repository = repository
        self.codec = codec
        self.clock = clock
        self.prefix = prefix or config.ENTITY_ID_PREFIX
        self.max_attempts = max_attempts or config.ENTITY_ID_MAX_ATTEMPTS
        self.random_suffix = random_suffix

    def generate_entity_id(self) -> str:
        """e.g. OF-2026-A7F3"""
        return f"{self.prefix}-{self.clock().year}-{self.random_suffix()}"

    def allocate_entity_id(self) -> str:
        """Draw IDs until one is unused, up to max_attempts."""
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate_entity_id()
            if not self.repository.entity_id_exists(candidate):
                return candidate
            logger.info("Entity ID collision on %s (attempt %s)", candidate, attempt)

        raise EntityIdGenerationError("Failed to generate unique Entity ID. Please try again.")

    def complete_onboarding(self, user: Participant, photo_url: str) -> Tuple[str, str]:
        """
        Keep an existing entity ID or allocate a new one, then always issue a
        fresh QR token. Returns (entity_id, qr_token).
        """
        entity_id = user.entity_id or self.allocate_entity_id()
        now = self.clock()
        qr_token = self.codec.issue(entity_id, now=now)

        self.repository.save_credentials(user.id, entity_id, qr_token, now, photo_url=photo_url)
        logger.info("Onboarding completed for user %s as %s", user.id, entity_id)
        return entity_id, qr_token

    def refresh_qr(self, user: Participant) -> str:
        if not user.entity_id:
            raise OnboardingIncompleteError("Entity ID not found. Please complete onboarding first.")

        now = self.clock()
        qr_token = self.codec.issue(user.entity_id, now=now)
        self.repository.save_credentials(user.id, user.entity_id, qr_token, now)
        return qr_token

    @staticmethod
    def current_qr(user: Participant) -> Tuple[str, str]:
        if not user.entity_id or not user.qr_token:
            raise OnboardingIncompleteError("Please complete onboarding first")
        return user.entity_id, user.qr_token
