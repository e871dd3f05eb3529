"""Auth API — sign-up, sign-in, sign-out, password reset.

Learn: Routes for the user session lifecycle:
- POST /auth/sign-up → create a user, returns a session token
- POST /auth/sign-in → email/password → session token
- POST /auth/sign-out → revoke the presented token
- POST /auth/password-reset/request → mint a reset token, hand it to the notifier
- POST /auth/password-reset → reset token + new password
- GET /auth/me → current user info
- POST /auth/revoked-tokens/purge → admin: delete expired blacklist rows

Every failure is raised as InkpressError and rendered by the handlers in
inkpress.main, so these functions only describe the happy path.
"""

import uuid
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from inkpress.auth.authenticator import IdentityClaim
from inkpress.auth.blacklist import TokenBlacklist
from inkpress.auth.dependencies import (
    Stores,
    get_blacklist,
    get_current_identity,
    get_session_issuer,
    get_settings,
    get_stores,
    require_admin,
)
from inkpress.auth.password import hash_password_async, verify_password_async
from inkpress.auth.sessions import SessionIssuer
from inkpress.config import Settings
from inkpress.db.models import Role, User
from inkpress.errors import ErrorKind, InkpressError
from inkpress.services.notifier import ResetNotifier

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Schemas ─────────────────────────────────────────────


class SignUpRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1)


class SignInRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: str = Field(min_length=1)


class PasswordResetBody(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, alias="newPassword")

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    message: str
    token: str


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PurgeResponse(BaseModel):
    message: str
    removed: int


def get_reset_notifier(request: Request) -> ResetNotifier:
    return request.app.state.reset_notifier


# ─── Sign up / sign in ───────────────────────────────────


@router.post("/sign-up", response_model=TokenResponse, status_code=201)
async def sign_up(
    body: SignUpRequest,
    stores: Stores = Depends(get_stores),
    issuer: SessionIssuer = Depends(get_session_issuer),
    app_settings: Settings = Depends(get_settings),
):
    """Register a new user and sign them in."""
    if await stores.users.find_by_email(body.email):
        raise InkpressError(ErrorKind.VALIDATION_FAILED, "User already exists")

    user = User(
        username=body.username,
        email=body.email,
        password_hash=await hash_password_async(
            body.password, rounds=app_settings.bcrypt_rounds
        ),
        role=Role.STANDARD.value,
    )
    user = await stores.users.save(user)

    logger.info("auth.user_registered", user_id=str(user.id))
    return TokenResponse(
        message="User registered successfully",
        token=issuer.issue_session(user.id),
    )


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(
    body: SignInRequest,
    stores: Stores = Depends(get_stores),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """Log in with email and password → session token."""
    user = await stores.users.find_by_email(body.email)
    if not user or not await verify_password_async(body.password, user.password_hash):
        raise InkpressError(ErrorKind.INVALID_CREDENTIAL, "Invalid credentials")

    logger.info("auth.user_logged_in", user_id=str(user.id))
    return TokenResponse(message="Login successful", token=issuer.issue_session(user.id))


@router.post("/sign-out", response_model=MessageResponse)
async def sign_out(
    claim: IdentityClaim = Depends(get_current_identity),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """Revoke the token this request was made with."""
    await issuer.sign_out(claim.token)
    logger.info("auth.signed_out", user_id=str(claim.subject))
    return MessageResponse(message="Successfully signed out")


# ─── Password reset ──────────────────────────────────────


@router.post("/password-reset/request", response_model=MessageResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    stores: Stores = Depends(get_stores),
    issuer: SessionIssuer = Depends(get_session_issuer),
    notifier: ResetNotifier = Depends(get_reset_notifier),
):
    """Issue a reset token for the account and pass it to the notifier."""
    user = await stores.users.find_by_email(body.email)
    if not user:
        raise InkpressError(ErrorKind.NOT_FOUND, "User not found")

    token = await issuer.issue_reset_token(user)
    await notifier.send_reset_token(user.email, token)
    return MessageResponse(message="Password reset email sent")


@router.post("/password-reset", response_model=MessageResponse)
async def reset_password(
    body: PasswordResetBody,
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """Set a new password with a reset token (single use)."""
    await issuer.consume_reset_token(body.token, body.new_password)
    return MessageResponse(message="Password reset successful")


# ─── Current user ────────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    claim: IdentityClaim = Depends(get_current_identity),
    stores: Stores = Depends(get_stores),
):
    """Get the current authenticated user's info."""
    user = await stores.users.find_by_id(claim.subject)
    if not user:
        raise InkpressError(ErrorKind.IDENTITY_NOT_FOUND)
    return user


# ─── Admin ───────────────────────────────────────────────


@router.post("/revoked-tokens/purge", response_model=PurgeResponse)
async def purge_revoked_tokens(
    claim: IdentityClaim = Depends(require_admin),
    blacklist: TokenBlacklist = Depends(get_blacklist),
):
    """Delete blacklist entries whose expiry has passed."""
    removed = await blacklist.purge_expired()
    return PurgeResponse(message="Expired revoked tokens purged", removed=removed)
