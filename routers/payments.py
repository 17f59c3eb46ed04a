import logging
import secrets
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pymongo.database import Database

from config import Settings, get_settings
from database import get_db, parse_object_id, touch
from errors import NotFound, ValidationError
from schemas import ApiModel, PaymentMethodName
from security import ensure_owner_or_admin, get_current_user, verify_payment_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


class CreatePaymentRequest(ApiModel):
    order_id: str
    payment_method: PaymentMethodName


class VerifyPaymentRequest(ApiModel):
    order_id: str
    payment_id: str
    signature: str


def _owned_order(db: Database, user: Dict[str, Any], order_id: str) -> Dict[str, Any]:
    order = db["order"].find_one({"_id": parse_object_id(order_id, "orderId")})
    if not order:
        raise NotFound("Order not found")
    ensure_owner_or_admin(user, order.get("user_id"))
    return order


@router.post("/create", status_code=201)
def create_payment(payload: CreatePaymentRequest, db: Database = Depends(get_db),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    order = _owned_order(db, current_user, payload.order_id)
    if order.get("payment_status") == "paid":
        raise ValidationError("Order is already paid")
    payment_id = secrets.token_hex(16)
    db["order"].update_one(
        {"_id": order["_id"]},
        {"$set": touch({"payment_id": payment_id, "payment_status": "pending"})},
    )
    payment = {
        "paymentId": payment_id,
        "orderId": str(order["_id"]),
        "amount": order.get("total_amount"),
        "currency": "USD",
        "paymentMethod": payload.payment_method,
        "status": "pending",
    }
    return {"message": "Payment created", "payment": payment}


@router.post("/verify")
def verify_payment(payload: VerifyPaymentRequest, db: Database = Depends(get_db),
                   settings: Settings = Depends(get_settings),
                   current_user: Dict[str, Any] = Depends(get_current_user)):
    order = _owned_order(db, current_user, payload.order_id)
    if order.get("payment_status") == "paid":
        raise ValidationError("Order is already paid")
    if order.get("payment_id") != payload.payment_id:
        raise ValidationError("Invalid payment id")

    valid = verify_payment_signature(
        settings.payment_webhook_secret, payload.order_id, payload.payment_id, payload.signature
    )
    status = "paid" if valid else "failed"
    db["order"].update_one(
        {"_id": order["_id"], "payment_status": {"$ne": "paid"}},
        {"$set": touch({"payment_status": status})},
    )
    if not valid:
        logger.warning("Payment signature mismatch for order %s", order["_id"])
        raise ValidationError("Invalid payment signature")
    logger.info("Payment %s verified for order %s", payload.payment_id, order["_id"])
    return {"message": "Payment verified", "orderId": str(order["_id"]), "paymentStatus": status}


@router.get("/{order_id}")
def get_payment(order_id: str, db: Database = Depends(get_db),
                current_user: Dict[str, Any] = Depends(get_current_user)):
    order = _owned_order(db, current_user, order_id)
    return {
        "message": "OK",
        "paymentId": order.get("payment_id"),
        "paymentStatus": order.get("payment_status"),
        "totalAmount": order.get("total_amount"),
    }
