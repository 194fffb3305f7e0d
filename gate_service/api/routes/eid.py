# =======================================================================================
# gate_service/api/routes/eid.py - Onboarding and QR Credential Endpoints
# =======================================================================================
from fastapi import APIRouter, Depends
from ...models.schemas import (
    OnboardingRequest, OnboardingResponse, Participant, QRTokenResponse,
)
from ...services.onboarding_service import OnboardingService
from ..dependencies import get_current_user, get_onboarding_service

router = APIRouter()


@router.post("/onboarding/complete", response_model=OnboardingResponse)
def complete_onboarding(
    request: OnboardingRequest,
    user: Participant = Depends(get_current_user),
    onboarding: OnboardingService = Depends(get_onboarding_service),
):
    entity_id, _ = onboarding.complete_onboarding(user, request.photoUrl)
    return OnboardingResponse(success=True, entityId=entity_id, message="Onboarding completed successfully")


@router.get("/eid/qr", response_model=QRTokenResponse)
def get_qr(user: Participant = Depends(get_current_user)):
    entity_id, qr_token = OnboardingService.current_qr(user)
    return QRTokenResponse(entityId=entity_id, qrToken=qr_token, generatedAt=user.qr_generated_at)


@router.post("/eid/qr", response_model=QRTokenResponse)
def refresh_qr(
    user: Participant = Depends(get_current_user),
    onboarding: OnboardingService = Depends(get_onboarding_service),
):
    qr_token = onboarding.refresh_qr(user)
    return QRTokenResponse(entityId=user.entity_id, qrToken=qr_token, generatedAt=onboarding.clock())
