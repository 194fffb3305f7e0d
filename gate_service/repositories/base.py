# =======================================================================================
# gate_service/repositories/base.py - Storage Interface
# =======================================================================================
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from ..models.schemas import Participant, EntryLog, ScanSession


class GateRepository(ABC):
    """
    Storage seen by the gate services.

    Backends only move rows; every decision (what to log, when a session
    opens or closes) stays in the services so they are storage-agnostic.
    """

    # ---------- participants ----------

    @abstractmethod
    def find_participant_by_entity_id(self, entity_id: str) -> Optional[Participant]:
        ...

    @abstractmethod
    def find_participant_by_id(self, participant_id: int) -> Optional[Participant]:
        ...

    @abstractmethod
    def find_participant_by_email(self, email: str) -> Optional[Participant]:
        ...

    @abstractmethod
    def create_participant(self, email: str, password_hash: str, full_name: str,
                           role: str = "participant", phone_number: Optional[str] = None,
                           team_id: Optional[int] = None, college_id: Optional[int] = None,
                           is_active: bool = True) -> Participant:
        ...

    @abstractmethod
    def entity_id_exists(self, entity_id: str) -> bool:
        ...

    @abstractmethod
    def save_credentials(self, participant_id: int, entity_id: str, qr_token: str,
                         generated_at: datetime, photo_url: Optional[str] = None) -> None:
        """Store entity ID, QR token and (when given) the onboarding photo."""

    @abstractmethod
    def record_login(self, participant_id: int, at: datetime) -> None:
        ...

    def lock_participant(self, participant_id: int) -> None:
        """Serialize session changes for one participant. No-op by default."""

    # ---------- entry logs ----------

    @abstractmethod
    def create_entry_log(self, entity_id: str, participant_id: Optional[int],
                         scanned_by: Optional[int], status: str, scan_type: str,
                         location: Optional[str], scanned_at: datetime) -> EntryLog:
        ...

    @abstractmethod
    def list_entry_logs(self, limit: int = 100, offset: int = 0, status: Optional[str] = None,
                        scan_type: Optional[str] = None) -> Tuple[List[EntryLog], int]:
        """Newest first. Returns (page, total matching)."""

    # ---------- scan sessions ----------

    @abstractmethod
    def find_latest_active_session(self, participant_id: int) -> Optional[ScanSession]:
        ...

    @abstractmethod
    def create_session(self, participant_id: int, entry_log_id: int,
                       session_start: datetime) -> Optional[ScanSession]:
        """Insert an active session; None if one is already open."""

    @abstractmethod
    def close_session(self, session_id: int, exit_log_id: int, session_end: datetime,
                      duration_minutes: int) -> ScanSession:
        ...

    @abstractmethod
    def list_sessions(self, participant_id: int) -> List[ScanSession]:
        """Newest first."""

    # ---------- health ----------

    @abstractmethod
    def ping(self) -> None:
        """Raise if storage is unreachable."""
