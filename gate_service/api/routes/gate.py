# =======================================================================================
# gate_service/api/routes/gate.py - Gate Scan Endpoints
# =======================================================================================
from typing import Optional
from fastapi import APIRouter, Depends, Query
from ...models.schemas import (
    EntryLogsResponse, Participant, ScanSessionsResponse, VerifyQRRequest,
)
from ...repositories.base import GateRepository
from ...services.dashboard_service import DashboardService
from ...services.gate_verification import GateVerificationService
from ...utils.validators import RequestValidator
from ..dependencies import (
    get_current_user, get_gate_service, get_repository, require_gate_operator, require_log_viewer,
)

router = APIRouter()
dashboard_service = DashboardService()


@router.post("/gate/verify-qr")
def verify_qr(
    request: VerifyQRRequest,
    user: Participant = Depends(get_current_user),
    gate_service: GateVerificationService = Depends(get_gate_service),
):
    """Verify a scanned QR token. Every verdict, valid or not, is a 200."""
    verdict = gate_service.verify(
        request.qrToken,
        scan_type=request.scanType,
        location=RequestValidator.normalize_location(request.location),
        caller=user,
    )
    return verdict.to_response()


@router.get("/gate/logs", response_model=EntryLogsResponse)
def list_entry_logs(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    status: Optional[str] = Query(None, description="valid | invalid | expired"),
    scanType: Optional[str] = Query(None, description="entry | exit"),
    _: Participant = Depends(require_log_viewer),
    repository: GateRepository = Depends(get_repository),
):
    status, scanType = RequestValidator.validate_log_filters(status, scanType)
    return dashboard_service.get_logs(repository, limit=limit, offset=offset, status=status, scan_type=scanType)


@router.get("/gate/sessions/{participant_id}", response_model=ScanSessionsResponse)
def list_sessions(
    participant_id: int,
    _: Participant = Depends(require_gate_operator),
    repository: GateRepository = Depends(get_repository),
):
    return dashboard_service.get_sessions(repository, participant_id)
