# =======================================================================================
# gate_service/database.py - Database Management
# =======================================================================================
import logging
from contextlib import contextmanager
from typing import Optional
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, MetaData, String, Table,
    create_engine, text, true,
)
from sqlalchemy.engine import Engine
from .config import config

logger = logging.getLogger(__name__)

metadata = MetaData()

colleges = Table(
    "colleges", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
)

teams = Table(
    "teams", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
)

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("full_name", String(200), nullable=False),
    Column("phone_number", String(50)),
    Column("role", String(32), nullable=False, server_default="participant"),
    Column("photo_url", String(500)),
    Column("entity_id", String(64), unique=True),
    Column("qr_token", String(255)),
    Column("qr_generated_at", DateTime),
    Column("team_id", Integer, ForeignKey("teams.id")),
    Column("college_id", Integer, ForeignKey("colleges.id")),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("last_login_at", DateTime),
    Column("login_count", Integer, nullable=False, server_default=text("0")),
    Column("created_at", DateTime, server_default=text("CURRENT_TIMESTAMP")),
)

entry_logs = Table(
    "entry_logs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_id", String(64), nullable=False, index=True),
    Column("participant_id", Integer, ForeignKey("users.id"), index=True),
    Column("scanned_by", Integer, ForeignKey("users.id")),
    Column("status", String(16), nullable=False),
    Column("scan_type", String(16), nullable=False, server_default="entry"),
    Column("location", String(100)),
    Column("scanned_at", DateTime, nullable=False, index=True),
)

scan_sessions = Table(
    "scan_sessions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("participant_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("entry_log_id", Integer, ForeignKey("entry_logs.id")),
    Column("exit_log_id", Integer, ForeignKey("entry_logs.id")),
    Column("session_start", DateTime, nullable=False),
    Column("session_end", DateTime),
    Column("duration_minutes", Integer),
    Column("is_active", Boolean, nullable=False, server_default=true()),
)

# One open session per participant. MySQL has no partial indexes; there the
# participant row lock taken by the repository serializes session changes.
Index(
    "uq_scan_sessions_one_active",
    scan_sessions.c.participant_id,
    unique=True,
    postgresql_where=scan_sessions.c.is_active.is_(True),
    sqlite_where=scan_sessions.c.is_active.is_(True),
).ddl_if(dialect=("postgresql", "sqlite"))


class DatabaseManager:
    """Manages database connections and transactions."""

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        self.url = url or config.DB_URL
        self._engine: Optional[Engine] = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            kwargs = {"pool_pre_ping": True, "future": True}
            if not self.url.startswith("sqlite"):
                kwargs.update(
                    pool_size=config.DB_POOL_SIZE,
                    max_overflow=config.DB_MAX_OVERFLOW,
                    isolation_level="READ COMMITTED",
                )
            self._engine = create_engine(self.url, **kwargs)
        return self._engine

    @contextmanager
    def get_connection(self):
        """Get a database connection with automatic commit/rollback."""
        with self.engine.begin() as conn:
            yield conn

    def init_schema(self) -> None:
        """Create missing tables."""
        metadata.create_all(self.engine)
        logger.info("Schema ensured on %s", self.engine.url.render_as_string(hide_password=True))

# Global database instance; the engine is created on first use
db_manager = DatabaseManager()
