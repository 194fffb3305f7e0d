# =======================================================================================
# gate_service/api/routes/auth.py - Authentication Endpoints
# =======================================================================================


from fastapi import APIRouter, Depends
from ...models.schemas import LoginRequest, LoginResponse, Participant, ParticipantPublic
from ...repositories.base import GateRepository
from ...services.auth_service import AuthService
from ...utils.exceptions import AuthenticationError
from ..dependencies import get_auth_service, get_current_user, get_repository

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    repository: GateRepository = Depends(get_repository),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.authenticate(repository, request.email, request.password)
    if not user:
        raise AuthenticationError("Invalid email or password")

    return LoginResponse(
        token=auth_service.create_access_token(user),
        message="Login successful",
        user=ParticipantPublic.from_participant(user),
    )


@router.get("/auth/me", response_model=ParticipantPublic)
def me(user: Participant = Depends(get_current_user)):
    return ParticipantPublic.from_participant(user)
