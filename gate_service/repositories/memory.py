# =======================================================================================
# gate_service/repositories/memory.py - In-Process Backend
# =======================================================================================
import itertools
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from ..models.schemas import Participant, EntryLog, ScanSession
from ..utils.exceptions import PersistenceError
from .base import GateRepository


class InMemoryStore:
    """Process-wide tables shared by every InMemoryGateRepository."""

    def __init__(self):
        self.lock = threading.RLock()
        self.participants: Dict[int, Participant] = {}
        self.teams: Dict[int, str] = {}
        self.colleges: Dict[int, str] = {}
        self.entry_logs: List[EntryLog] = []
        self.sessions: Dict[int, ScanSession] = {}
        self._ids = {name: itertools.count(1) for name in ("users", "teams", "colleges", "logs", "sessions")}

    def next_id(self, table: str) -> int:
        return next(self._ids[table])

    def add_team(self, name: str) -> int:
        with self.lock:
            team_id = self.next_id("teams")
            self.teams[team_id] = name
            return team_id

    def add_college(self, name: str) -> int:
        with self.lock:
            college_id = self.next_id("colleges")
            self.colleges[college_id] = name
            return college_id


class InMemoryGateRepository(GateRepository):
    """GateRepository over an InMemoryStore. Records are copied on the way in and out."""

    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()

    # ---------- helpers ----------

    def _resolve(self, p: Participant) -> Participant:
        return p.model_copy(update={
            "team_name": self.store.teams.get(p.team_id) if p.team_id is not None else None,
            "college_name": self.store.colleges.get(p.college_id) if p.college_id is not None else None,
        })

    def _require_participant(self, participant_id: int) -> Participant:
        p = self.store.participants.get(participant_id)
        if p is None:
            raise PersistenceError(f"users row {participant_id} does not exist")
        return p

    # ---------- participants ----------

    def find_participant_by_entity_id(self, entity_id: str) -> Optional[Participant]:
        with self.store.lock:
            for p in self.store.participants.values():
                if p.entity_id == entity_id:
                    return self._resolve(p)
        return None

    def find_participant_by_id(self, participant_id: int) -> Optional[Participant]:
        with self.store.lock:
            p = self.store.participants.get(participant_id)
            return self._resolve(p) if p else None

    def find_participant_by_email(self, email: str) -> Optional[Participant]:
        email = email.strip().lower()
        with self.store.lock:
            for p in self.store.participants.values():
                if p.email == email:
                    return self._resolve(p)
        return None

    def create_participant(self, email: str, password_hash: str, full_name: str,
                           role: str = "participant", phone_number: Optional[str] = None,
                           team_id: Optional[int] = None, college_id: Optional[int] = None,
                           is_active: bool = True) -> Participant:
        email = email.strip().lower()
        with self.store.lock:
            if any(p.email == email for p in self.store.participants.values()):
                raise PersistenceError(f"Duplicate email {email}")
            p = Participant(
                id=self.store.next_id("users"),
                email=email,
                password_hash=password_hash,
                full_name=full_name,
                role=role,
                phone_number=phone_number,
                team_id=team_id,
                college_id=college_id,
                is_active=is_active,
            )
            self.store.participants[p.id] = p
            return self._resolve(p)

    def entity_id_exists(self, entity_id: str) -> bool:
        with self.store.lock:
            return any(p.entity_id == entity_id for p in self.store.participants.values())

    def save_credentials(self, participant_id: int, entity_id: str, qr_token: str,
                         generated_at: datetime, photo_url: Optional[str] = None) -> None:
        with self.store.lock:
            p = self._require_participant(participant_id)
            if any(o.entity_id == entity_id and o.id != participant_id for o in self.store.participants.values()):
                raise PersistenceError(f"Duplicate entity_id {entity_id}")
            update = {"entity_id": entity_id, "qr_token": qr_token, "qr_generated_at": generated_at}
            if photo_url is not None:
                update["photo_url"] = photo_url
            self.store.participants[participant_id] = p.model_copy(update=update)

    def record_login(self, participant_id: int, at: datetime) -> None:
        with self.store.lock:
            p = self._require_participant(participant_id)
            self.store.participants[participant_id] = p.model_copy(
                update={"last_login_at": at, "login_count": p.login_count + 1}
            )

    # ---------- entry logs ----------

    def create_entry_log(self, entity_id: str, participant_id: Optional[int],
                         scanned_by: Optional[int], status: str, scan_type: str,
                         location: Optional[str], scanned_at: datetime) -> EntryLog:
        with self.store.lock:
            log = EntryLog(
                id=self.store.next_id("logs"),
                entity_id=entity_id,
                participant_id=participant_id,
                scanned_by=scanned_by,
                status=status,
                scan_type=scan_type,
                location=location,
                scanned_at=scanned_at,
            )
            self.store.entry_logs.append(log)
            return log.model_copy()

    def list_entry_logs(self, limit: int = 100, offset: int = 0, status: Optional[str] = None,
                        scan_type: Optional[str] = None) -> Tuple[List[EntryLog], int]:
        with self.store.lock:
            matching = [
                log for log in self.store.entry_logs
                if (not status or log.status == status) and (not scan_type or log.scan_type == scan_type)
            ]
        matching.sort(key=lambda log: (log.scanned_at, log.id), reverse=True)
        return [log.model_copy() for log in matching[offset:offset + limit]], len(matching)

    # ---------- scan sessions ----------

    def _active_sessions(self, participant_id: int) -> List[ScanSession]:
        active = [s for s in self.store.sessions.values() if s.participant_id == participant_id and s.is_active]
        active.sort(key=lambda s: (s.session_start, s.id), reverse=True)
        return active

    def find_latest_active_session(self, participant_id: int) -> Optional[ScanSession]:
        with self.store.lock:
            active = self._active_sessions(participant_id)
            return active[0].model_copy() if active else None

    def create_session(self, participant_id: int, entry_log_id: int,
                       session_start: datetime) -> Optional[ScanSession]:
        with self.store.lock:
            # Same guarantee as the partial unique index on the SQL side
            if self._active_sessions(participant_id):
                return None
            session = ScanSession(
                id=self.store.next_id("sessions"),
                participant_id=participant_id,
                entry_log_id=entry_log_id,
                session_start=session_start,
                is_active=True,
            )
            self.store.sessions[session.id] = session
            return session.model_copy()

    def close_session(self, session_id: int, exit_log_id: int, session_end: datetime,
                      duration_minutes: int) -> ScanSession:
        with self.store.lock:
            session = self.store.sessions.get(session_id)
            if session is None:
                raise PersistenceError(f"scan_sessions row {session_id} does not exist")
            closed = session.model_copy(update={
                "exit_log_id": exit_log_id,
                "session_end": session_end,
                "duration_minutes": duration_minutes,
                "is_active": False,
            })
            self.store.sessions[session_id] = closed
            return closed.model_copy()

    def list_sessions(self, participant_id: int) -> List[ScanSession]:
        with self.store.lock:
            sessions = [s for s in self.store.sessions.values() if s.participant_id == participant_id]
        sessions.sort(key=lambda s: (s.session_start, s.id), reverse=True)
        return [s.model_copy() for s in sessions]

    def ping(self) -> None:
        return None
