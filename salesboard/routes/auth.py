"""Dashboard authentication endpoints: login, team-leader registration, me."""

from fastapi import APIRouter, Depends

from salesboard.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)
from salesboard.dependencies import get_gateway, get_storage
from salesboard.errors import Conflict, Unauthenticated
from salesboard.logging_config import get_logger
from salesboard.models import ROLE_TL, User
from salesboard.schemas import AuthResponse, LoginRequest, TLRegisterRequest, UserResponse
from salesboard.services.mutation_service import MutationGateway
from salesboard.storage import Storage

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    storage: Storage = Depends(get_storage),
):
    """Exchange email + password for an access token."""
    user = await storage.get_user_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    logger.info("user_login", user_id=str(user.id), role=user.role)
    return AuthResponse(
        token=create_access_token(str(user.id)),
        user=UserResponse.model_validate(user),
    )


@router.post("/register/tl", response_model=AuthResponse, status_code=201)
async def register_team_leader(
    body: TLRegisterRequest,
    storage: Storage = Depends(get_storage),
    gateway: MutationGateway = Depends(get_gateway),
):
    """Create a team leader together with the team they own."""
    if await storage.get_user_by_email(body.email) is not None:
        raise Conflict("Email already registered")

    user = await storage.create_user(
        {
            "name": body.name,
            "email": body.email,
            "password_hash": hash_password(body.password),
            "role": ROLE_TL,
        }
    )
    team = await storage.create_team({"name": body.team_name, "tl_id": user.id})
    user = await storage.update_user(user.id, {"team_id": team.id}) or user

    logger.info("team_leader_registered", user_id=str(user.id), team_id=str(team.id))
    await gateway.publish_leaderboard()

    return AuthResponse(
        token=create_access_token(str(user.id)),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)
