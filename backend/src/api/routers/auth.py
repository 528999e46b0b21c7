"""Credential registration, login and session introspection."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response

from api.dependencies import get_current_user, get_services
from core.auth import SESSION_COOKIE, SessionUser, create_session_token
from models.user import User
from schemas.user import LoginRequest, RegisterRequest, SessionResponse, UserResponse
from services import user_service
from services.container import Services
from services.exceptions import InvalidCredentialsError, UserAlreadyExistsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_response(user: User, services: Services, response: Response) -> SessionResponse:
    settings = services.settings
    token = create_session_token(user.id, user.email, user.name, settings)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(
        token=token,
        expires_in=settings.session_max_age_seconds,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(
    data: RegisterRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> SessionResponse:
    """
    Register a credential account and start a session.

    The user's remote collection is provisioned in the background after the
    response is sent.
    """
    try:
        user = await user_service.register_user(
            services.users, data.email, data.password, data.name,
        )
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail="User already exists") from e

    if services.remote.is_configured():
        background_tasks.add_task(
            services.provisioner.ensure_collection, user.email, user.name,
        )
    return _session_response(user, services, response)


@router.post("/login", response_model=SessionResponse)
async def login(
    data: LoginRequest,
    response: Response,
    services: Services = Depends(get_services),
) -> SessionResponse:
    """Verify credentials and start a session."""
    try:
        user = await user_service.authenticate(services.users, data.email, data.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail="Invalid email or password") from e
    return _session_response(user, services, response)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> UserResponse:
    """Get the current authenticated user's profile."""
    user = await services.users.get_by_id(current_user.id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return UserResponse.model_validate(user)
