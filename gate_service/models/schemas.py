# =======================================================================================
# gate_service/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from .enums import ScanType, EntryStatus

# ========== Stored records ==========

class Participant(BaseModel):
    """A row of the users table, as seen by the gate."""
    id: int
    email: str
    full_name: str
    password_hash: Optional[str] = None
    phone_number: Optional[str] = None
    role: str = "participant"
    photo_url: Optional[str] = None
    entity_id: Optional[str] = None
    qr_token: Optional[str] = None
    qr_generated_at: Optional[datetime] = None
    team_id: Optional[int] = None
    team_name: Optional[str] = None
    college_id: Optional[int] = None
    college_name: Optional[str] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    login_count: int = 0

class EntryLog(BaseModel):
    """Append-only scan audit record."""
    id: int
    entity_id: str
    participant_id: Optional[int] = None
    scanned_by: Optional[int] = None
    status: EntryStatus
    scan_type: ScanType
    location: Optional[str] = None
    scanned_at: datetime

class ScanSession(BaseModel):
    """One continuous on-site presence interval."""
    id: int
    participant_id: int
    entry_log_id: Optional[int] = None
    session_start: datetime
    exit_log_id: Optional[int] = None
    session_end: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    is_active: bool = True

# ========== Gate verification ==========

class VerifyQRRequest(BaseModel):
    """Gate scan request model."""
    qrToken: str = Field(..., min_length=1, description="entityId:issuedAtMs:signature")
    scanType: ScanType = Field("entry", description="entry or exit")
    location: Optional[str] = Field(None, max_length=100, description="Gate location label")

class NamedRef(BaseModel):
    id: int
    name: str

class ParticipantPublic(BaseModel):
    """Participant projection returned to gate operators (no credentials)."""
    id: int
    entityId: Optional[str] = None
    fullName: str
    email: str
    phoneNumber: Optional[str] = None
    role: str
    photoUrl: Optional[str] = None
    team: Optional[NamedRef] = None
    college: Optional[NamedRef] = None

    @classmethod
    def from_participant(cls, p: Participant) -> "ParticipantPublic":
        return cls(
            id=p.id,
            entityId=p.entity_id,
            fullName=p.full_name,
            email=p.email,
            phoneNumber=p.phone_number,
            role=p.role,
            photoUrl=p.photo_url,
            team=NamedRef(id=p.team_id, name=p.team_name) if p.team_id is not None and p.team_name else None,
            college=NamedRef(id=p.college_id, name=p.college_name) if p.college_id is not None and p.college_name else None,
        )

class Verdict(BaseModel):
    """Outcome of a verification request. Always returned with HTTP 200."""
    valid: bool
    status: EntryStatus
    error: Optional[str] = None
    participant: Optional[ParticipantPublic] = None
    scanType: Optional[ScanType] = None
    scannedAt: Optional[datetime] = None

    @classmethod
    def rejected(cls, status: EntryStatus, error: str) -> "Verdict":
        return cls(valid=False, status=status, error=error)

    def to_response(self) -> Dict[str, Any]:
        """Wire shape: success carries participant/scanType/scannedAt, failure carries error."""
        if not self.valid:
            return {"valid": False, "status": self.status, "error": self.error}
        return {
            "valid": True,
            "status": self.status,
            "participant": self.participant.model_dump() if self.participant else None,
            "scanType": self.scanType,
            "scannedAt": self.scannedAt.isoformat() if self.scannedAt else None,
        }

# ========== Auth ==========

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

class LoginResponse(BaseModel):
    token: str
    message: str
    user: ParticipantPublic

# ========== Onboarding / QR credential ==========

class OnboardingRequest(BaseModel):
    photoUrl: str = Field(..., min_length=1)

class OnboardingResponse(BaseModel):
    success: bool
    entityId: str
    message: str

class QRTokenResponse(BaseModel):
    entityId: str
    qrToken: str
    generatedAt: Optional[datetime] = None

# ========== Logs ==========

class EntryLogItem(BaseModel):
    id: int
    entityId: str
    participantId: Optional[int] = None
    scannedBy: Optional[int] = None
    status: EntryStatus
    scanType: ScanType
    location: Optional[str] = None
    scannedAt: datetime

    @classmethod
    def from_record(cls, log: EntryLog) -> "EntryLogItem":
        return cls(
            id=log.id,
            entityId=log.entity_id,
            participantId=log.participant_id,
            scannedBy=log.scanned_by,
            status=log.status,
            scanType=log.scan_type,
            location=log.location,
            scannedAt=log.scanned_at,
        )

class EntryLogsResponse(BaseModel):
    logs: List[EntryLogItem]
    total: int
    limit: int
    offset: int

class ScanSessionItem(BaseModel):
    id: int
    participantId: int
    entryLogId: Optional[int] = None
    exitLogId: Optional[int] = None
    sessionStart: datetime
    sessionEnd: Optional[datetime] = None
    durationMinutes: Optional[int] = None
    isActive: bool

    @classmethod
    def from_record(cls, s: ScanSession) -> "ScanSessionItem":
        return cls(
            id=s.id,
            participantId=s.participant_id,
            entryLogId=s.entry_log_id,
            exitLogId=s.exit_log_id,
            sessionStart=s.session_start,
            sessionEnd=s.session_end,
            durationMinutes=s.duration_minutes,
            isActive=s.is_active,
        )

class ScanSessionsResponse(BaseModel):
    sessions: List[ScanSessionItem]
    totalScans: int
    isActiveSession: bool

# ========== Health ==========

class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    qrConfigured: bool
    message: Optional[str] = None
