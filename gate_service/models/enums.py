# =======================================================================================
# gate_service/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import FrozenSet, Literal

# Type aliases for better type hints
ScanType = Literal["entry", "exit"]
EntryStatus = Literal["valid", "invalid", "expired"]

SCAN_TYPES = ("entry", "exit")
ENTRY_STATUSES = ("valid", "invalid", "expired")

class Role(str, Enum):
    """Account roles."""
    PARTICIPANT = "participant"
    TEAM_LEAD = "team_lead"
    CLUSTER_MONITOR = "cluster_monitor"
    GATE_VOLUNTEER = "gate_volunteer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

# Roles allowed to verify QR codes at the gate
GATE_OPERATOR_ROLES: FrozenSet[Role] = frozenset({
    Role.GATE_VOLUNTEER,
    Role.CLUSTER_MONITOR,
    Role.ADMIN,
    Role.SUPER_ADMIN,
})

# Roles allowed to browse the entry log
LOG_VIEWER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.SUPER_ADMIN})

def has_role(role: str, allowed: FrozenSet[Role]) -> bool:
    """Check a stored role string against a capability set."""
    try:
        return Role(role) in allowed
    except ValueError:
        return False
