"""Auth routes — register, login, logout and the current user."""

from fastapi import APIRouter, Depends, Request, Response
from loguru import logger

from ashteams_chat.application.exceptions import UnauthorizedError
from ashteams_chat.application.use_cases.accounts import AccountUseCase
from ashteams_chat.presentation.infrastructure.auth import (
    clear_auth_cookie,
    create_token,
    get_current_user_id,
    set_auth_cookie,
)
from ashteams_chat.presentation.schemas import CredentialsRequest, UserResponse

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(request: CredentialsRequest, raw_request: Request, response: Response):
    """Create an account and log it in."""
    accounts: AccountUseCase = raw_request.app.state.accounts
    settings = raw_request.app.state.settings

    user = accounts.register(request.email, request.password)
    set_auth_cookie(response, create_token(user.id, settings), settings)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
async def login(request: CredentialsRequest, raw_request: Request, response: Response):
    """Check credentials and set the session cookie."""
    accounts: AccountUseCase = raw_request.app.state.accounts
    settings = raw_request.app.state.settings

    user = accounts.authenticate(request.email, request.password)
    set_auth_cookie(response, create_token(user.id, settings), settings)
    logger.info("POST /api/login | user={}", user.id)
    return UserResponse.model_validate(user)


@router.post("/logout")
async def logout(raw_request: Request, response: Response):
    clear_auth_cookie(response, raw_request.app.state.settings)
    return {"message": "Logged out"}


@router.get("/user", response_model=UserResponse)
async def current_user(raw_request: Request, user_id: int | None = Depends(get_current_user_id)):
    accounts: AccountUseCase = raw_request.app.state.accounts
    user = accounts.get_user(user_id) if user_id is not None else None
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return UserResponse.model_validate(user)
