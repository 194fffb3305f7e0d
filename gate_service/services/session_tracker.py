# =======================================================================================
# gate_service/services/session_tracker.py - Attendance Sessions
# =======================================================================================
import logging
from typing import Optional
from ..models.schemas import ScanSession
from ..repositories.base import GateRepository
from ..utils.timeutils import Clock, utc_now, minutes_between

logger = logging.getLogger(__name__)


class SessionTracker:
    """
    Keeps at most one open scan session per participant.

    An entry scan opens a session unless one is already open; an exit scan
    closes the newest open one. Both take the participant lock first so two
    gates scanning the same person cannot interleave.
    """

    def __init__(self, repository: GateRepository, clock: Clock = utc_now):
        self.repository = repository
        self.clock = clock

    def open_if_absent(self, participant_id: int, entry_log_id: int) -> Optional[ScanSession]:
        """Open a session; None if one is already open."""
        self.repository.lock_participant(participant_id)

        existing = self.repository.find_latest_active_session(participant_id)
        if existing is not None:
            logger.info("Participant %s already on site since %s (session %s)",
                        participant_id, existing.session_start.isoformat(), existing.id)
            return None

        session = self.repository.create_session(participant_id, entry_log_id, self.clock())
        if session is not None:
            logger.info("Opened session %s for participant %s", session.id, participant_id)
        return session

    def close_latest_active(self, participant_id: int, exit_log_id: int) -> Optional[ScanSession]:
        """Close the newest open session; None (and no write) if nothing is open."""
        self.repository.lock_participant(participant_id)

        active = self.repository.find_latest_active_session(participant_id)
        if active is None:
            logger.info("Exit scan for participant %s with no open session", participant_id)
            return None

        ended = self.clock()
        closed = self.repository.close_session(
            active.id,
            exit_log_id=exit_log_id,
            session_end=ended,
            duration_minutes=minutes_between(active.session_start, ended),
        )
        logger.info("Closed session %s for participant %s after %s min",
                    closed.id, participant_id, closed.duration_minutes)
        return closed
