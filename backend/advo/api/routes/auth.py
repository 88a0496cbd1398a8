import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from advo import crud
from advo.api.deps import get_db
from advo.core.config import settings
from advo.core.security import verify_password
from advo.models import (
    Message,
    OtpGenerated,
    OtpPasswordChange,
    OtpRequest,
    OtpVerified,
    OtpVerify,
    SignupResponse,
    UpdatePassword,
    User,
    UserCreate,
    UserRegister,
)
from advo.utils import generate_otp, send_otp_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_for_otp(session: Session, otp_in: OtpVerify) -> User:
    if not otp_in.user_id or not otp_in.otp:
        raise HTTPException(status_code=400, detail="User ID and OTP are required")
    user = session.get(User, otp_in.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not crud.verify_otp(db_user=user, otp=otp_in.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    return user


@router.post("/signup", status_code=201)
def signup(*, session: Session = Depends(get_db), user_in: UserRegister) -> SignupResponse:
    if crud.get_user_by_email(session=session, email=user_in.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    user = crud.create_user(
        session=session,
        user_create=UserCreate(
            email=user_in.email, password=user_in.password, full_name=user_in.username
        ),
    )
    logger.info("Registered user %s", user.id)
    return SignupResponse(message="User created successfully", user_id=user.id)


@router.post("/logout")
def logout(response: Response) -> Message:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return Message(message="Logged out successfully")


@router.post("/change-password")
def change_password(
    *, session: Session = Depends(get_db), body: UpdatePassword
) -> Message:
    user = crud.get_user_by_email(session=session, email=body.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    verified, _ = verify_password(body.current_password, user.hashed_password)
    if not verified:
        raise HTTPException(status_code=401, detail="Incorrect password")
    crud.set_password(session=session, db_user=user, password=body.new_password)
    return Message(message="Password updated successfully")


@router.post("/otp/generate")
def generate_otp_code(
    *, session: Session = Depends(get_db), body: OtpRequest
) -> OtpGenerated:
    """
    Send a one-time code to the account's e-mail address. Unknown addresses get
    the same answer so the endpoint cannot be used to probe for accounts.
    """
    message = "If an account exists with this email, a verification code has been sent"
    user = crud.get_user_by_email(session=session, email=body.email)
    if not user:
        return OtpGenerated(message=message)

    otp = generate_otp()
    crud.save_otp(session=session, db_user=user, otp=otp)
    if not send_otp_email(email_to=user.email, otp=otp):
        raise HTTPException(status_code=500, detail="Failed to send verification code")
    return OtpGenerated(message=message, user_id=user.id)


@router.post("/otp/verify")
def verify_otp_code(*, session: Session = Depends(get_db), body: OtpVerify) -> OtpVerified:
    user = _user_for_otp(session, body)
    crud.clear_otp(session=session, db_user=user, mark_verified=True)
    return OtpVerified(message="OTP verified successfully", verified=True)


@router.post("/change-password/complete")
def complete_password_change(
    *, session: Session = Depends(get_db), body: OtpPasswordChange
) -> Any:
    if not body.new_password:
        raise HTTPException(
            status_code=400, detail="User ID, OTP and new password are required"
        )
    user = _user_for_otp(session, body)
    crud.set_password(session=session, db_user=user, password=body.new_password)
    crud.clear_otp(session=session, db_user=user)
    return Message(message="Password updated successfully")
