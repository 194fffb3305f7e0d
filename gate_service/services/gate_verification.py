# =======================================================================================
# gate_service/services/gate_verification.py - Core Business Logic
# =======================================================================================
import logging
from typing import Optional
from ..models.enums import GATE_OPERATOR_ROLES, ScanType, has_role
from ..models.schemas import Participant, ParticipantPublic, Verdict
from ..repositories.base import GateRepository
from ..utils.exceptions import ForbiddenError, TokenExpiredError, TokenError
from ..utils.timeutils import Clock, utc_now
from .entry_log import EntryLogWriter
from .session_tracker import SessionTracker
from .token_codec import QRTokenCodec

logger = logging.getLogger(__name__)

PARTICIPANT_NOT_FOUND = "Participant not found"
PARTICIPANT_DEACTIVATED = "Participant account is deactivated"


class GateVerificationService:
    """Turns one scanned QR token into a verdict, an audit row and a session change."""

    def __init__(self, repository: GateRepository, codec: QRTokenCodec, clock: Clock = utc_now,
                 default_location: Optional[str] = None, audit_deactivated: bool = False):
        self.repository = repository
        self.codec = codec
        self.clock = clock
        self.entry_logs = EntryLogWriter(repository, clock)
        self.sessions = SessionTracker(repository, clock)
        self.default_location = default_location
        self.audit_deactivated = audit_deactivated

    def verify(self, raw_token: str, scan_type: ScanType = "entry", location: Optional[str] = None,
               caller: Optional[Participant] = None) -> Verdict:
        """
        Run the gate pipeline:
        - Caller must hold a gate-operator role (ForbiddenError otherwise, nothing logged)
        - Decode token: malformed/bad signature -> invalid, too old -> expired
        - Resolve participant: unknown -> invalid, deactivated -> invalid
        - Log the scan, then open (entry) or close (exit) the attendance session
        Domain rejections come back as verdicts; only infrastructure failures raise.
        """
        if caller is None or not has_role(caller.role, GATE_OPERATOR_ROLES):
            raise ForbiddenError("Gate volunteer access required")

        location = location or self.default_location
        now = self.clock()

        # 1) Token
        try:
            decoded = self.codec.verify(raw_token, now=now)
        except TokenError as e:
            status = "expired" if isinstance(e, TokenExpiredError) else "invalid"
            entity_id = self.codec.entity_id_hint(raw_token)
            self.entry_logs.record(entity_id, None, caller.id, status, scan_type, location)
            logger.warning("Rejected QR for %s at %s: %s", entity_id, location, e)
            return Verdict.rejected(status, str(e))

        entity_id = decoded.entity_id

        # 2) Participant
        participant = self.repository.find_participant_by_entity_id(entity_id)
        if participant is None:
            self.entry_logs.record(entity_id, None, caller.id, "invalid", scan_type, location)
            logger.warning("QR for unknown entity %s at %s", entity_id, location)
            return Verdict.rejected("invalid", PARTICIPANT_NOT_FOUND)

        if not participant.is_active:
            if self.audit_deactivated:
                self.entry_logs.record(entity_id, participant.id, caller.id, "invalid", scan_type, location)
            logger.warning("QR for deactivated participant %s at %s", entity_id, location)
            return Verdict.rejected("invalid", PARTICIPANT_DEACTIVATED)

        # 3) Audit first, then session state
        log = self.entry_logs.record(entity_id, participant.id, caller.id, "valid", scan_type, location)

        if scan_type == "entry":
            self.sessions.open_if_absent(participant.id, log.id)
        else:
            self.sessions.close_latest_active(participant.id, log.id)

        logger.info("Valid %s scan for %s at %s by %s", scan_type, entity_id, location, caller.id)
        return Verdict(
            valid=True,
            status="valid",
            participant=ParticipantPublic.from_participant(participant),
            scanType=scan_type,
            scannedAt=log.scanned_at,
        )
