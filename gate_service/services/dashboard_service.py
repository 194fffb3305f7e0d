# =======================================================================================
# gate_service/services/dashboard_service.py
# =======================================================================================

from typing import Optional
from ..models.schemas import (
    EntryLogItem, EntryLogsResponse, ScanSessionItem, ScanSessionsResponse,
)
from ..repositories.base import GateRepository

MAX_PAGE_SIZE = 500


class DashboardService:
    """Read-only views over the entry log and scan sessions."""

    def get_logs(self, repository: GateRepository, limit: int = 100, offset: int = 0,
                 status: Optional[str] = None, scan_type: Optional[str] = None) -> EntryLogsResponse:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        logs, total = repository.list_entry_logs(limit=limit, offset=offset, status=status, scan_type=scan_type)
        return EntryLogsResponse(
            logs=[EntryLogItem.from_record(log) for log in logs],
            total=total,
            limit=limit,
            offset=offset,
        )

    def get_sessions(self, repository: GateRepository, participant_id: int) -> ScanSessionsResponse:
        sessions = repository.list_sessions(participant_id)
        return ScanSessionsResponse(
            sessions=[ScanSessionItem.from_record(s) for s in sessions],
            totalScans=len(sessions),
            isActiveSession=any(s.is_active for s in sessions),
        )
