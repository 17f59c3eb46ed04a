import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings, get_settings
from database import get_db
from errors import Forbidden, ServiceUnavailable, Unauthorized

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(settings: Settings, user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode = {"sub": str(user["_id"]), "role": user.get("role", "user"), "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise Unauthorized("Invalid or expired token")


def random_code(digits: int = 6) -> str:
    """Numeric one-time code for email/phone verification."""
    return str(secrets.randbelow(9 * 10 ** (digits - 1)) + 10 ** (digits - 1))


# Dependencies

def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Resolve the bearer token to the stored user document."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized()
    token = authorization.split(" ", 1)[1]
    payload = decode_token(settings, token)
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise Unauthorized("Invalid token")
    user = db["user"].find_one({"_id": ObjectId(user_id)})
    if not user:
        raise Unauthorized()
    return user


def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != "admin":
        raise Forbidden("Admins only")
    return current_user


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"


def ensure_owner_or_admin(user: Dict[str, Any], owner_id: Any) -> None:
    if owner_id is not None and str(owner_id) == str(user["_id"]):
        return
    if is_admin(user):
        return
    raise Forbidden()


# Payment verification

def payment_signature(secret: str, order_id: str, payment_id: str) -> str:
    message = f"{order_id}:{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(secret: Optional[str], order_id: str, payment_id: str, signature: str) -> bool:
    if not secret:
        raise ServiceUnavailable("Payment verification is not configured")
    expected = payment_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
