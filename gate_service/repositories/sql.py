# =======================================================================================
# gate_service/repositories/sql.py - Relational Backend (SQLAlchemy Core)
# =======================================================================================
import functools
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import Boolean, DateTime, bindparam, insert, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from ..database import entry_logs, scan_sessions, users
from ..models.schemas import Participant, EntryLog, ScanSession
from ..utils.exceptions import PersistenceError
from ..utils.timeutils import as_utc, to_naive_utc
from .base import GateRepository

logger = logging.getLogger(__name__)

PARTICIPANT_SELECT = """
    SELECT u.id, u.email, u.password_hash, u.full_name, u.phone_number, u.role,
           u.photo_url, u.entity_id, u.qr_token, u.qr_generated_at,
           u.team_id, t.name AS team_name, u.college_id, c.name AS college_name,
           u.is_active, u.last_login_at, u.login_count
    FROM users u
    LEFT JOIN teams t ON u.team_id = t.id
    LEFT JOIN colleges c ON u.college_id = c.id
"""

ENTRY_LOG_SELECT = """
    SELECT id, entity_id, participant_id, scanned_by, status, scan_type, location, scanned_at
    FROM entry_logs
"""

SESSION_SELECT = """
    SELECT id, participant_id, entry_log_id, session_start, exit_log_id,
           session_end, duration_minutes, is_active
    FROM scan_sessions
"""


def _typed_participant(sql: str):
    return text(sql).columns(qr_generated_at=DateTime, last_login_at=DateTime, is_active=Boolean)

def _typed_log(sql: str):
    return text(sql).columns(scanned_at=DateTime)

def _typed_session(sql: str):
    return text(sql).columns(session_start=DateTime, session_end=DateTime, is_active=Boolean)


def _storage_errors(func):
    """Re-raise driver failures as PersistenceError."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Storage failure in %s: %s", func.__name__, e)
            raise PersistenceError(str(e)) from e
    return wrapper


def _participant(row) -> Participant:
    data = dict(row)
    data["qr_generated_at"] = as_utc(data["qr_generated_at"])
    data["last_login_at"] = as_utc(data["last_login_at"])
    data["login_count"] = data["login_count"] or 0
    return Participant(**data)

def _entry_log(row) -> EntryLog:
    data = dict(row)
    data["scanned_at"] = as_utc(data["scanned_at"])
    return EntryLog(**data)

def _session(row) -> ScanSession:
    data = dict(row)
    data["session_start"] = as_utc(data["session_start"])
    data["session_end"] = as_utc(data["session_end"])
    return ScanSession(**data)


class SqlGateRepository(GateRepository):
    """GateRepository over one transactional connection (one per request)."""

    def __init__(self, conn: Connection):
        self.conn = conn

    # ---------- participants ----------

    @_storage_errors
    def find_participant_by_entity_id(self, entity_id: str) -> Optional[Participant]:
        row = self.conn.execute(
            _typed_participant(PARTICIPANT_SELECT + " WHERE u.entity_id = :eid"),
            {"eid": entity_id},
        ).mappings().first()
        return _participant(row) if row else None

    @_storage_errors
    def find_participant_by_id(self, participant_id: int) -> Optional[Participant]:
        row = self.conn.execute(
            _typed_participant(PARTICIPANT_SELECT + " WHERE u.id = :pid"),
            {"pid": participant_id},
        ).mappings().first()
        return _participant(row) if row else None

    @_storage_errors
    def find_participant_by_email(self, email: str) -> Optional[Participant]:
        row = self.conn.execute(
            _typed_participant(PARTICIPANT_SELECT + " WHERE u.email = :email"),
            {"email": email.strip().lower()},
        ).mappings().first()
        return _participant(row) if row else None

    @_storage_errors
    def create_participant(self, email: str, password_hash: str, full_name: str,
                           role: str = "participant", phone_number: Optional[str] = None,
                           team_id: Optional[int] = None, college_id: Optional[int] = None,
                           is_active: bool = True) -> Participant:
        result = self.conn.execute(
            insert(users).values(
                email=email.strip().lower(),
                password_hash=password_hash,
                full_name=full_name,
                role=role,
                phone_number=phone_number,
                team_id=team_id,
                college_id=college_id,
                is_active=is_active,
                login_count=0,
            )
        )
        return self.find_participant_by_id(result.inserted_primary_key[0])

    @_storage_errors
    def entity_id_exists(self, entity_id: str) -> bool:
        row = self.conn.execute(
            text("SELECT id FROM users WHERE entity_id = :eid"), {"eid": entity_id}
        ).first()
        return row is not None

    @_storage_errors
    def save_credentials(self, participant_id: int, entity_id: str, qr_token: str,
                         generated_at: datetime, photo_url: Optional[str] = None) -> None:
        fields = ["entity_id = :eid", "qr_token = :token", "qr_generated_at = :generated_at"]
        params = {
            "pid": participant_id,
            "eid": entity_id,
            "token": qr_token,
            "generated_at": to_naive_utc(generated_at),
        }
        if photo_url is not None:
            fields.append("photo_url = :photo")
            params["photo"] = photo_url

        self.conn.execute(
            text(f"UPDATE users SET {', '.join(fields)} WHERE id = :pid").bindparams(
                bindparam("generated_at", type_=DateTime)
            ),
            params,
        )

    @_storage_errors
    def record_login(self, participant_id: int, at: datetime) -> None:
        self.conn.execute(
            text("""
                UPDATE users
                SET last_login_at = :at, login_count = COALESCE(login_count, 0) + 1
                WHERE id = :pid
            """).bindparams(bindparam("at", type_=DateTime)),
            {"at": to_naive_utc(at), "pid": participant_id},
        )

    @_storage_errors
    def lock_participant(self, participant_id: int) -> None:
        # Row lock held until the request transaction ends
        if self.conn.dialect.name == "sqlite":
            return
        self.conn.execute(
            text("SELECT id FROM users WHERE id = :pid FOR UPDATE"), {"pid": participant_id}
        )

    # ---------- entry logs ----------

    @_storage_errors
    def create_entry_log(self, entity_id: str, participant_id: Optional[int],
                         scanned_by: Optional[int], status: str, scan_type: str,
                         location: Optional[str], scanned_at: datetime) -> EntryLog:
        result = self.conn.execute(
            insert(entry_logs).values(
                entity_id=entity_id,
                participant_id=participant_id,
                scanned_by=scanned_by,
                status=status,
                scan_type=scan_type,
                location=location,
                scanned_at=to_naive_utc(scanned_at),
            )
        )
        return EntryLog(
            id=result.inserted_primary_key[0],
            entity_id=entity_id,
            participant_id=participant_id,
            scanned_by=scanned_by,
            status=status,
            scan_type=scan_type,
            location=location,
            scanned_at=as_utc(scanned_at),
        )

    @_storage_errors
    def list_entry_logs(self, limit: int = 100, offset: int = 0, status: Optional[str] = None,
                        scan_type: Optional[str] = None) -> Tuple[List[EntryLog], int]:
        where_clauses = []
        params = {}

        if status:
            where_clauses.append("status = :status")
            params["status"] = status
        if scan_type:
            where_clauses.append("scan_type = :scan_type")
            params["scan_type"] = scan_type

        where = f" WHERE {' AND '.join(where_clauses)}" if where_clauses else ""

        rows = self.conn.execute(
            _typed_log(ENTRY_LOG_SELECT + where + " ORDER BY scanned_at DESC, id DESC LIMIT :limit OFFSET :offset"),
            {**params, "limit": limit, "offset": offset},
        ).mappings().all()
        total = self.conn.execute(
            text("SELECT COUNT(*) FROM entry_logs" + where), params
        ).scalar_one()

        return [_entry_log(r) for r in rows], int(total)

    # ---------- scan sessions ----------

    @_storage_errors
    def find_latest_active_session(self, participant_id: int) -> Optional[ScanSession]:
        row = self.conn.execute(
            _typed_session(SESSION_SELECT + """
                WHERE participant_id = :pid AND is_active = :active
                ORDER BY session_start DESC, id DESC
                LIMIT 1
            """),
            {"pid": participant_id, "active": True},
        ).mappings().first()
        return _session(row) if row else None

    @_storage_errors
    def create_session(self, participant_id: int, entry_log_id: int,
                       session_start: datetime) -> Optional[ScanSession]:
        try:
            # Savepoint so a unique-index conflict leaves the request transaction usable
            with self.conn.begin_nested():
                result = self.conn.execute(
                    insert(scan_sessions).values(
                        participant_id=participant_id,
                        entry_log_id=entry_log_id,
                        session_start=to_naive_utc(session_start),
                        is_active=True,
                    )
                )
        except IntegrityError:
            logger.info("Active session already open for participant %s", participant_id)
            return None

        return ScanSession(
            id=result.inserted_primary_key[0],
            participant_id=participant_id,
            entry_log_id=entry_log_id,
            session_start=as_utc(session_start),
            is_active=True,
        )

    @_storage_errors
    def close_session(self, session_id: int, exit_log_id: int, session_end: datetime,
                      duration_minutes: int) -> ScanSession:
        self.conn.execute(
            text("""
                UPDATE scan_sessions
                SET exit_log_id = :exit_id, session_end = :ended, duration_minutes = :minutes,
                    is_active = :active
                WHERE id = :sid
            """).bindparams(bindparam("ended", type_=DateTime)),
            {
                "exit_id": exit_log_id,
                "ended": to_naive_utc(session_end),
                "minutes": duration_minutes,
                "active": False,
                "sid": session_id,
            },
        )
        row = self.conn.execute(
            _typed_session(SESSION_SELECT + " WHERE id = :sid"), {"sid": session_id}
        ).mappings().first()
        return _session(row)

    @_storage_errors
    def list_sessions(self, participant_id: int) -> List[ScanSession]:
        rows = self.conn.execute(
            _typed_session(SESSION_SELECT + " WHERE participant_id = :pid ORDER BY session_start DESC, id DESC"),
            {"pid": participant_id},
        ).mappings().all()
        return [_session(r) for r in rows]

    # ---------- health ----------

    @_storage_errors
    def ping(self) -> None:
        self.conn.execute(text("SELECT 1"))
