# =======================================================================================
# gate_service/services/entry_log.py - Scan Audit Trail
# =======================================================================================
import logging
from typing import Optional
from ..models.enums import ENTRY_STATUSES, SCAN_TYPES, EntryStatus, ScanType
from ..models.schemas import EntryLog
from ..repositories.base import GateRepository
from ..utils.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)


class EntryLogWriter:
    """Appends one immutable entry_logs row per verification attempt."""

    def __init__(self, repository: GateRepository, clock: Clock = utc_now):
        self.repository = repository
        self.clock = clock

    def record(self, entity_id: str, participant_id: Optional[int], scanned_by: Optional[int],
               status: EntryStatus, scan_type: ScanType, location: Optional[str]) -> EntryLog:
        if status not in ENTRY_STATUSES:
            raise ValueError(f"Unknown entry status: {status}")
        if scan_type not in SCAN_TYPES:
            raise ValueError(f"Unknown scan type: {scan_type}")

        log = self.repository.create_entry_log(
            entity_id=entity_id,
            participant_id=participant_id,
            scanned_by=scanned_by,
            status=status,
            scan_type=scan_type,
            location=location,
            scanned_at=self.clock(),
        )
        logger.debug("Entry log %s: %s %s for %s", log.id, scan_type, status, entity_id)
        return log
