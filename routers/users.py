"""Profile, phone verification, wishlist and the account overview."""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database

from database import get_db, parse_object_id, utcnow
from errors import Conflict, NotFound, ValidationError
from notifications import Notifier, get_notifier
from schemas import ApiModel
from security import get_current_user, hash_password, random_code
from serializers import (
    safe_user,
    to_account_order,
    to_address_response,
    to_product_response,
    to_return_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])
wishlist_router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])
account_router = APIRouter(prefix="/api/account", tags=["account"])

EMAIL_CODE_TTL = timedelta(minutes=10)
SMS_CODE_TTL = timedelta(minutes=10)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)


class PhoneInput(BaseModel):
    phone: str = Field(..., min_length=6, max_length=20)


class CodeInput(BaseModel):
    code: str


class WishlistInput(ApiModel):
    product_id: str


@router.get("/profile")
def get_profile(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {"message": "OK", "user": safe_user(current_user)}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, background: BackgroundTasks, db: Database = Depends(get_db),
                   notifier: Notifier = Depends(get_notifier),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    changes: Dict[str, Any] = {}
    email_code = None

    if payload.name:
        changes["name"] = payload.name
    if payload.email:
        email = payload.email.lower()
        if email != current_user.get("email"):
            if db["user"].find_one({"email": email, "_id": {"$ne": current_user["_id"]}}):
                raise Conflict("Email already in use")
            email_code = random_code()
            changes.update({
                "email": email,
                "email_verified": False,
                "email_verification_code": email_code,
                "email_verification_expires": utcnow() + EMAIL_CODE_TTL,
            })
    if payload.password:
        changes["password_hash"] = hash_password(payload.password)

    if changes:
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": current_user["_id"]}, {"$set": changes})
    user = db["user"].find_one({"_id": current_user["_id"]})

    if email_code:
        background.add_task(notifier.email_quietly, user["email"], "Verify your updated email",
                            f"Your email verification code is {email_code}")
        return {"message": "Profile updated. Please verify your new email address.", "user": safe_user(user)}
    return {"message": "Profile updated", "user": safe_user(user)}


@router.delete("/profile")
def delete_profile(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    db["user"].delete_one({"_id": current_user["_id"]})
    db["cart"].delete_one({"user_id": current_user["_id"]})
    logger.info("User %s deleted their profile", current_user["_id"])
    return {"message": "User deleted"}


@router.post("/phone")
def set_phone(payload: PhoneInput, background: BackgroundTasks, db: Database = Depends(get_db),
              notifier: Notifier = Depends(get_notifier),
              current_user: Dict[str, Any] = Depends(get_current_user)):
    phone = payload.phone.strip()
    code = random_code()
    db["user"].update_one(
        {"_id": current_user["_id"]},
        {"$set": {
            "phone": phone,
            "phone_verified": False,
            "sms_verification_code": code,
            "sms_verification_expires": utcnow() + SMS_CODE_TTL,
            "updated_at": utcnow(),
        }},
    )
    background.add_task(notifier.sms_quietly, phone, f"Your verification code is {code}")
    return {"message": "Verification code sent"}


@router.post("/phone/verify")
def verify_phone(payload: CodeInput, db: Database = Depends(get_db),
                 current_user: Dict[str, Any] = Depends(get_current_user)):
    code = current_user.get("sms_verification_code")
    expires = current_user.get("sms_verification_expires")
    if not code or not expires or expires < utcnow():
        raise ValidationError("Invalid or expired verification code")
    if not secrets.compare_digest(code.encode(), payload.code.strip().encode()):
        raise ValidationError("Invalid or expired verification code")
    db["user"].update_one(
        {"_id": current_user["_id"]},
        {
            "$set": {"phone_verified": True, "updated_at": utcnow()},
            "$unset": {"sms_verification_code": "", "sms_verification_expires": ""},
        },
    )
    return {"message": "Phone verified"}


# Wishlist

@wishlist_router.get("")
def get_wishlist(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    product_ids = current_user.get("wishlist") or []
    products = {p["_id"]: p for p in db["product"].find({"_id": {"$in": product_ids}})}
    # keep wishlist order, skip products deleted since
    wishlist = [to_product_response(products[pid], card_only=True) for pid in product_ids if pid in products]
    return {"message": "OK", "wishlist": wishlist}


@wishlist_router.post("")
def add_wishlist(payload: WishlistInput, db: Database = Depends(get_db),
                 current_user: Dict[str, Any] = Depends(get_current_user)):
    product_id = parse_object_id(payload.product_id, "productId")
    if not db["product"].find_one({"_id": product_id}, {"_id": 1}):
        raise NotFound("Product not found")
    db["user"].update_one({"_id": current_user["_id"]}, {"$addToSet": {"wishlist": product_id}})
    return {"message": "Added to wishlist"}


@wishlist_router.delete("/{product_id}")
def remove_wishlist(product_id: str, db: Database = Depends(get_db),
                    current_user: Dict[str, Any] = Depends(get_current_user)):
    obj_id = parse_object_id(product_id, "productId")
    db["user"].update_one({"_id": current_user["_id"]}, {"$pull": {"wishlist": obj_id}})
    return {"message": "Removed from wishlist"}


# Account overview

@account_router.get("")
def get_account(db: Database = Depends(get_db), current_user: Dict[str, Any] = Depends(get_current_user)):
    user_id = current_user["_id"]
    orders = db["order"].find({"user_id": user_id}).sort("created_at", -1)
    addresses = db["address"].find({"user_id": user_id}).sort([("is_default", -1), ("created_at", -1)])
    returns = db["return"].find({"user_id": user_id}).sort("created_at", -1)
    profile = safe_user(current_user)
    return {
        "message": "OK",
        "profile": profile,
        "orders": [to_account_order(o) for o in orders],
        "addresses": [to_address_response(a) for a in addresses],
        "paymentMethods": profile["paymentMethods"],
        "rewards": profile["rewards"],
        "returns": [to_return_response(r) for r in returns],
    }
