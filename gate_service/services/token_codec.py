# =======================================================================================
# gate_service/services/token_codec.py - Signed QR Tokens
# =======================================================================================
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union
from ..utils.exceptions import (
    ConfigurationError, MalformedTokenError, InvalidSignatureError, TokenExpiredError,
)
from ..utils.timeutils import Clock, utc_now, to_epoch_ms

DEFAULT_MAX_AGE = timedelta(hours=24)


@dataclass(frozen=True)
class DecodedToken:
    entity_id: str
    issued_at_ms: int


class QRTokenCodec:
    """
    Issues and checks participant QR tokens of the form

        <entityId>:<issuedAtMs>:<hex HMAC-SHA256 of "entityId:issuedAtMs">

    Tokens are bearer credentials: any number of scans may reuse one until it
    is older than ``max_age``.
    """

    def __init__(self, secret: Optional[str], max_age: timedelta = DEFAULT_MAX_AGE,
                 clock: Clock = utc_now):
        if not secret:
            raise ConfigurationError("QR_SECRET is not configured")
        self._secret = secret.encode("utf-8")
        self.max_age_ms = int(max_age.total_seconds() * 1000)
        self.clock = clock

    def sign(self, entity_id: str, issued_at: Union[int, str]) -> str:
        payload = f"{entity_id}:{issued_at}".encode("utf-8")
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def issue(self, entity_id: str, now: Optional[datetime] = None) -> str:
        """Build a fresh token for an entity ID."""
        if not entity_id or ":" in entity_id:
            raise ValueError(f"Entity ID cannot be encoded in a QR token: {entity_id!r}")
        issued_at_ms = to_epoch_ms(now or self.clock())
        return f"{entity_id}:{issued_at_ms}:{self.sign(entity_id, issued_at_ms)}"

    def verify(self, token: str, now: Optional[datetime] = None) -> DecodedToken:
        """Check format, then signature, then age."""
        parts = (token or "").strip().split(":")
        if len(parts) != 3:
            raise MalformedTokenError("Invalid QR format")

        entity_id, timestamp, signature = parts
        if not entity_id or not (timestamp.isascii() and timestamp.isdigit()):
            raise MalformedTokenError("Invalid QR format")

        # Signed over the scanned timestamp text, not its integer re-rendering
        expected = self.sign(entity_id, timestamp)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            raise InvalidSignatureError("Invalid QR signature")

        issued_at_ms = int(timestamp)
        if to_epoch_ms(now or self.clock()) - issued_at_ms > self.max_age_ms:
            raise TokenExpiredError("QR code has expired")

        return DecodedToken(entity_id=entity_id, issued_at_ms=issued_at_ms)

    @staticmethod
    def entity_id_hint(token: str) -> str:
        """Best-effort entity ID for auditing a token that failed to parse."""
        head = (token or "").strip().split(":", 1)[0]
        return head[:64] or "unknown"
