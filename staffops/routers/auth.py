# staffops/routers/auth.py
import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import settings
from staffops.core.auth import get_current_user
from staffops.core.exceptions import AlreadyExists, InvalidState, NotFound, ValidationError
from staffops.core.security import TokenService, get_token_service, hash_password, verify_password
from staffops.database import get_db
from staffops.models.user import User
from staffops.schemas.user import (
    ChangePasswordRequest, EmailRequest, LoginRequest, ResetPasswordRequest,
    Token, UserCreate, UserResponse, VerifyEmailRequest,
)
from staffops.services.notifications import (
    EmailNotifier, get_notifier, password_reset_email, verification_code_email,
)
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _new_code() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


def _issue_code(user: User) -> str:
    code = _new_code()
    user.verification_code = code
    user.verification_code_expires = utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
    return code


def _tokens(user: User, tokens: TokenService) -> Token:
    return Token(
        access_token=tokens.create_access_token(user.id),
        refresh_token=tokens.create_refresh_token(user.id),
        user=UserResponse.model_validate(user),
    )


async def _user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    notifier: EmailNotifier = Depends(get_notifier),
):
    if await _user_by_email(db, user_in.email) is not None:
        raise AlreadyExists("Email already registered")

    user = User(
        username=user_in.username,
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        role="user",
        verified=False,
    )
    code = _issue_code(user)
    db.add(user)
    await db.commit()
    logger.info("User %s registered", user.id)

    subject, html = verification_code_email(user.username, code, settings.VERIFICATION_CODE_TTL_MINUTES)
    notifier.dispatch(user.email, subject, html)
    return {
        "success": True,
        "message": "Registration successful. Check your email for the verification code.",
        "user": UserResponse.model_validate(user),
    }


@router.post("/verify", response_model=Token)
async def verify_email(
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await _user_by_email(db, body.email)
    if user is None:
        raise NotFound("User not found")
    if user.verified:
        raise InvalidState("Email already verified")
    if user.verification_code != body.code:
        raise ValidationError("Invalid verification code")
    if user.verification_code_expires is None or user.verification_code_expires < utcnow():
        raise ValidationError("Verification code has expired")

    user.verified = True
    user.verification_code = None
    user.verification_code_expires = None
    user.last_login = utcnow()
    await db.commit()
    return _tokens(user, tokens)


@router.post("/resend-verification")
async def resend_verification(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db),
    notifier: EmailNotifier = Depends(get_notifier),
):
    user = await _user_by_email(db, body.email)
    if user is None:
        raise NotFound("User not found")
    if user.verified:
        raise InvalidState("Email already verified")
    code = _issue_code(user)
    await db.commit()

    subject, html = verification_code_email(user.username, code, settings.VERIFICATION_CODE_TTL_MINUTES)
    notifier.dispatch(user.email, subject, html)
    return {"success": True, "message": "Verification code sent"}


@router.post("/login", response_model=Token)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await _user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Account is deactivated")
    if not user.verified:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Email address not verified")

    user.last_login = utcnow()
    await db.commit()
    return _tokens(user, tokens)


@router.post("/forgot-password")
async def forgot_password(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    notifier: EmailNotifier = Depends(get_notifier),
):
    # Same answer whether or not the address exists
    response = {"success": True, "message": "If the email is registered, a reset link has been sent"}
    user = await _user_by_email(db, body.email)
    if user is None or not user.is_active:
        return response

    ttl = timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)
    token = tokens.create_reset_token(user.id, ttl)
    user.reset_token = token
    user.reset_token_expires = utcnow() + ttl
    await db.commit()

    subject, html = password_reset_email(user.username, token)
    notifier.dispatch(user.email, subject, html)
    return response


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    payload = tokens.decode(body.token, token_type="reset")
    if payload is None:
        raise ValidationError("Invalid or expired reset token")
    user = await db.get(User, int(payload["sub"]))
    if user is None or user.reset_token != body.token:
        raise ValidationError("Invalid or expired reset token")
    if user.reset_token_expires is None or user.reset_token_expires < utcnow():
        raise ValidationError("Invalid or expired reset token")

    user.hashed_password = hash_password(body.new_password)
    user.reset_token = None
    user.reset_token_expires = None
    await db.commit()
    logger.info("Password reset for user %s", user.id)
    return {"success": True, "message": "Password has been reset"}


@router.get("/me")
async def read_users_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": UserResponse.model_validate(current_user)}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(body.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")
    if body.current_password == body.new_password:
        raise ValidationError("New password must be different from the current one")
    current_user.hashed_password = hash_password(body.new_password)
    await db.commit()
    return {"success": True, "message": "Password changed successfully"}
