# =======================================================================================
# gate_service/utils/validators.py - Validation Helpers
# =======================================================================================

from typing import Optional, Tuple
from .exceptions import InvalidRequestError
from ..models.enums import ENTRY_STATUSES, SCAN_TYPES


class RequestValidator:
    """Normalizes and checks request values the schemas cannot express."""

    @staticmethod
    def normalize_location(location: Optional[str]) -> Optional[str]:
        """Collapse whitespace; blank means "not given"."""
        if location is None:
            return None
        normalized = " ".join(location.split())
        return normalized or None

    @staticmethod
    def validate_log_filters(status: Optional[str], scan_type: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """Lower-case and check entry log filters."""
        status = status.strip().lower() if status and status.strip() else None
        scan_type = scan_type.strip().lower() if scan_type and scan_type.strip() else None

        if status is not None and status not in ENTRY_STATUSES:
            raise InvalidRequestError(f"Unknown status filter: {status}")

        if scan_type is not None and scan_type not in SCAN_TYPES:
            raise InvalidRequestError(f"Unknown scanType filter: {scan_type}")

        return status, scan_type
