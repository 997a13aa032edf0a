from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from ..account_service import AccountService
from ..auth import create_access_token, get_current_user_id
from ..repositories import Repository, get_repository
from ..schemas import Token, UserCreate, UserLogin, UserOut
from ..utils import result_response

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


def _get_accounts(repo: Repository = Depends(get_repository)) -> AccountService:
    return AccountService(repo)


def _user_out(user: dict) -> UserOut:
    return UserOut(id=user["id"], email=user["email"], name=user["name"], created_at=user["created_at"])


# PUBLIC_INTERFACE
@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account. Duplicate emails are reported as a field error on `email`.",
    responses={
        201: {"description": "Account created"},
        422: {"description": "Validation error"},
    },
)
def register(payload: UserCreate, accounts: AccountService = Depends(_get_accounts)) -> JSONResponse:
    """
    Register a new user. The password is stored as a bcrypt hash only.
    """
    result = accounts.register(payload.name, payload.email, payload.password)
    return result_response(result, _user_out, success_status=status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=Token,
    summary="Login",
    description="Exchange email and password for a bearer access token.",
    responses={401: {"description": "Invalid email or password"}},
)
def login(credentials: UserLogin, accounts: AccountService = Depends(_get_accounts)) -> Token:
    """
    Verify credentials and issue a JWT access token.
    """
    user = accounts.authenticate(credentials.email, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=create_access_token(user["id"]))


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserOut,
    summary="Current user",
    responses={401: {"description": "Not authenticated"}},
)
def read_current_user(
    user_id: Optional[str] = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
) -> UserOut:
    """
    Return the authenticated user's profile.
    """
    user = repo.get_user(user_id) if user_id else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _user_out(user)
