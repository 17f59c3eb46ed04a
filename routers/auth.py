import logging
import secrets
from datetime import timedelta
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database

from config import Settings, get_settings
from database import create_document, get_db, utcnow
from errors import Conflict, Unauthorized, ValidationError
from notifications import Notifier, get_notifier
from schemas import User as UserSchema
from security import create_access_token, get_current_user, hash_password, random_code, verify_password
from serializers import safe_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_CODE_TTL = timedelta(minutes=10)
RESET_TOKEN_TTL = timedelta(hours=1)


class RegisterInput(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordInput(BaseModel):
    email: EmailStr


class ResetPasswordInput(BaseModel):
    token: str
    password: str = Field(..., min_length=6)


class VerifyEmailInput(BaseModel):
    code: str


def issue_email_code(db: Database, user_id) -> str:
    code = random_code()
    db["user"].update_one(
        {"_id": user_id},
        {"$set": {
            "email_verification_code": code,
            "email_verification_expires": utcnow() + EMAIL_CODE_TTL,
            "updated_at": utcnow(),
        }},
    )
    return code


@router.post("/register", status_code=201)
def register(payload: RegisterInput, background: BackgroundTasks, db: Database = Depends(get_db),
             notifier: Notifier = Depends(get_notifier)):
    email = payload.email.lower()
    if db["user"].find_one({"email": email}):
        raise Conflict("Email already in use")
    user_model = UserSchema(name=payload.name, email=email, password_hash=hash_password(payload.password))
    user_id = create_document(db, "user", user_model)
    code = issue_email_code(db, user_id)
    background.add_task(notifier.email_quietly, email, "Verify your email", f"Your email verification code is {code}")
    user = db["user"].find_one({"_id": user_id})
    logger.info("Registered user %s", user_id)
    return {"message": "User registered", "user": safe_user(user)}


@router.post("/login")
def login(payload: LoginInput, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise Unauthorized("Invalid credentials")
    token = create_access_token(settings, user)
    return {"message": "Login successful", "token": token, "user": safe_user(user)}


@router.post("/logout")
def logout(current_user: Dict[str, Any] = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy.
    return {"message": "Logout successful"}


@router.get("/me")
def me(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {"message": "OK", "user": safe_user(current_user)}


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordInput, background: BackgroundTasks, db: Database = Depends(get_db),
                    settings: Settings = Depends(get_settings), notifier: Notifier = Depends(get_notifier)):
    reply = {"message": "If that email exists, a reset link has been sent"}
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user:
        return reply
    token = secrets.token_hex(20)
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"reset_password_token": token, "reset_password_expires": utcnow() + RESET_TOKEN_TTL}},
    )
    link = f"{settings.frontend_url.rstrip('/')}/reset-password?token={token}"
    background.add_task(notifier.email_quietly, user["email"], "Reset your password",
                        f"Use this link to reset your password: {link}")
    return reply


@router.post("/reset-password")
def reset_password(payload: ResetPasswordInput, db: Database = Depends(get_db)):
    user = db["user"].find_one({
        "reset_password_token": payload.token,
        "reset_password_expires": {"$gt": utcnow()},
    })
    if not user:
        raise ValidationError("Invalid or expired reset token")
    db["user"].update_one(
        {"_id": user["_id"]},
        {
            "$set": {"password_hash": hash_password(payload.password), "updated_at": utcnow()},
            "$unset": {"reset_password_token": "", "reset_password_expires": ""},
        },
    )
    return {"message": "Password has been reset"}


@router.post("/verify-email")
def verify_email(payload: VerifyEmailInput, db: Database = Depends(get_db),
                 current_user: Dict[str, Any] = Depends(get_current_user)):
    if current_user.get("email_verified"):
        return {"message": "Email already verified"}
    expires = current_user.get("email_verification_expires")
    code = current_user.get("email_verification_code")
    matches = bool(code) and secrets.compare_digest(code.encode(), payload.code.strip().encode())
    if not matches or not expires or expires < utcnow():
        raise ValidationError("Invalid or expired verification code")
    db["user"].update_one(
        {"_id": current_user["_id"]},
        {
            "$set": {"email_verified": True, "updated_at": utcnow()},
            "$unset": {"email_verification_code": "", "email_verification_expires": ""},
        },
    )
    return {"message": "Email verified"}


@router.post("/resend-verification")
def resend_verification(background: BackgroundTasks, db: Database = Depends(get_db),
                        notifier: Notifier = Depends(get_notifier),
                        current_user: Dict[str, Any] = Depends(get_current_user)):
    if current_user.get("email_verified"):
        return {"message": "Email already verified"}
    code = issue_email_code(db, current_user["_id"])
    background.add_task(notifier.email_quietly, current_user["email"], "Verify your email",
                        f"Your email verification code is {code}")
    return {"message": "Verification code sent"}
